"""Archive capability package for dirpack."""

from .archiver import write_archive
from .errors import (
    ArchiveFinalizeError,
    ArchiveFormatError,
    ArchiveOpenError,
    ArchiveWriteError,
    DirectoryCreateError,
    EntryReadError,
    FileCreateError,
    OutputCreateError,
    PathEncodingError,
    PathResolutionError,
    PermissionRestoreError,
    SourceReadError,
    TraversalError,
    UnsafePathError,
)
from .extractor import read_archive
from .patterns import ExcludeMatcher
from .platform import platform_supports_permission_bits
from .service import ArchiveService, pack, pack_async, unpack, unpack_async
from .types import (
    ArchiveOptions,
    InvalidPatternPolicy,
    OpEvent,
    OpPhase,
    PackResult,
    UnpackResult,
    UnsafePathPolicy,
)

__all__ = [
    "ArchiveFinalizeError",
    "ArchiveFormatError",
    "ArchiveOpenError",
    "ArchiveOptions",
    "ArchiveService",
    "ArchiveWriteError",
    "DirectoryCreateError",
    "EntryReadError",
    "ExcludeMatcher",
    "FileCreateError",
    "InvalidPatternPolicy",
    "OpEvent",
    "OpPhase",
    "OutputCreateError",
    "PackResult",
    "PathEncodingError",
    "PathResolutionError",
    "PermissionRestoreError",
    "SourceReadError",
    "TraversalError",
    "UnpackResult",
    "UnsafePathError",
    "UnsafePathPolicy",
    "pack",
    "pack_async",
    "platform_supports_permission_bits",
    "read_archive",
    "unpack",
    "unpack_async",
    "write_archive",
]
