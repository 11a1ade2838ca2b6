"""Error handling with friendly messages."""

from __future__ import annotations

import errno
from pathlib import Path


class DirpackError(Exception):
    """Base exception for all dirpack errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(DirpackError):
    """Configuration error."""

    pass


class InvalidOptionsError(DirpackError):
    """Archive options failed validation (raised before any I/O)."""

    pass


class FileError(DirpackError):
    """File operation error.

    Carries the filesystem path and the pipeline phase that failed so callers
    can tell apart e.g. a source read from an archive write.
    """

    phase: str = "io"

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        *,
        path: str | Path | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, suggestion)
        self.path = None if path is None else str(path)
        if phase is not None:
            self.phase = phase


class DiskFullError(FileError):
    """Disk is full."""

    phase = "write"

    def __init__(self, path: str | Path) -> None:
        super().__init__(
            f"Disk full: Cannot write to '{path}'",
            "Free up space and try again",
            path=path,
        )


def is_disk_full(exc: BaseException) -> bool:
    return isinstance(exc, OSError) and exc.errno == errno.ENOSPC
