"""dirpack - pack a directory tree into a ZIP archive and back.

    import dirpack

    count = dirpack.pack("build", "build.zip", {"level": 6, "exclude": ["*.tmp"]})
    dirpack.unpack("build.zip", "restored")
"""

__version__ = "0.1.0"

from dirpack.archives import (
    ArchiveOptions,
    ArchiveService,
    InvalidPatternPolicy,
    UnsafePathPolicy,
    pack,
    pack_async,
    platform_supports_permission_bits,
    unpack,
    unpack_async,
)
from dirpack.core.errors import (
    ConfigError,
    DirpackError,
    DiskFullError,
    FileError,
    InvalidOptionsError,
)

__all__ = [
    "__version__",
    "ArchiveOptions",
    "ArchiveService",
    "ConfigError",
    "DirpackError",
    "DiskFullError",
    "FileError",
    "InvalidOptionsError",
    "InvalidPatternPolicy",
    "UnsafePathPolicy",
    "pack",
    "pack_async",
    "platform_supports_permission_bits",
    "unpack",
    "unpack_async",
]
