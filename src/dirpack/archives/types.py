"""Archive capability types for dirpack."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

MIN_LEVEL = 0
MAX_LEVEL = 9
DEFAULT_LEVEL = 1


class EntryKind(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"


class InvalidPatternPolicy(StrEnum):
    """What to do with an exclusion pattern that does not compile."""

    IGNORE = "ignore"
    ERROR = "error"


class UnsafePathPolicy(StrEnum):
    """What to do with an archive entry that would land outside the output dir."""

    SKIP = "skip"
    ERROR = "error"


class OpPhase(StrEnum):
    PLANNED = "planned"
    STARTED = "started"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class ArchiveOptions:
    """Caller options for pack.

    level=None means "use the configured default".
    """

    level: int | None = None
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class DirectoryEntry:
    abs_path: Path
    rel_path: str  # '/'-separated, never empty for emitted entries
    kind: EntryKind


@dataclass(frozen=True)
class EntryOptions:
    """Per-entry write options."""

    level: int
    unix_mode: int | None = None
    compress_type: int = zipfile.ZIP_DEFLATED
    force_zip64: bool = True


@dataclass(frozen=True)
class OpEvent:
    op: str
    phase: OpPhase
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PackStats:
    files: int
    dirs: int
    total_bytes: int
    excluded: int


@dataclass(frozen=True)
class UnpackStats:
    files: int
    dirs: int
    total_bytes: int
    skipped: list[str]


@dataclass(frozen=True)
class PackResult:
    source_dir: str
    output_path: str
    level: int
    files_packed: int
    dirs_packed: int
    total_bytes: int
    excluded: int
    trace: list[OpEvent]


@dataclass(frozen=True)
class UnpackResult:
    archive_path: str
    output_dir: str
    files_unpacked: int
    dirs_unpacked: int
    total_bytes: int
    skipped: list[str]
    trace: list[OpEvent]
