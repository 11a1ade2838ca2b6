"""Archive pipeline errors.

Every failure mode of the archiver and extractor has its own type so callers
can react to a phase without parsing messages.
"""

from __future__ import annotations

from dirpack.core.errors import DirpackError, FileError


class OutputCreateError(FileError):
    """The archive file could not be created."""

    phase = "create_output"


class TraversalError(FileError):
    """The source tree (or part of it) could not be listed."""

    phase = "traverse"


class PathResolutionError(FileError):
    """A traversed path could not be made relative to the source root."""

    phase = "relativize"


class PathEncodingError(FileError):
    """A traversed path is not representable as text."""

    phase = "relativize"


class SourceReadError(FileError):
    """A source file could not be opened or read."""

    phase = "read_source"


class ArchiveWriteError(FileError):
    """Writing an entry into the archive failed."""

    phase = "write_archive"


class ArchiveFinalizeError(FileError):
    """Writing the central directory or closing the archive failed."""

    phase = "finalize"


class ArchiveOpenError(FileError):
    """The archive file could not be opened."""

    phase = "open_archive"


class ArchiveFormatError(FileError):
    """The input is not a valid ZIP container."""

    phase = "parse_archive"


class EntryReadError(FileError):
    """An entry could not be read or decompressed."""

    phase = "read_entry"


class DirectoryCreateError(FileError):
    """An output directory could not be created."""

    phase = "create_dir"


class FileCreateError(FileError):
    """An output file could not be created or written."""

    phase = "create_file"


class PermissionRestoreError(FileError):
    """A stored permission mode could not be applied."""

    phase = "restore_mode"


class UnsafePathError(DirpackError):
    """An entry would be written outside the output directory.

    Only raised under UnsafePathPolicy.ERROR.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Archive entry escapes destination: {name!r}",
            "Inspect the archive; it may be malicious",
        )
