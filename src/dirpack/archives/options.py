"""Option validation for pack.

Everything here runs before any filesystem work.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from dirpack.core.errors import InvalidOptionsError

from .types import MAX_LEVEL, MIN_LEVEL, ArchiveOptions


def validate_level(level: Any) -> int:
    """Return level if it is an int in [MIN_LEVEL, MAX_LEVEL].

    Raises:
        InvalidOptionsError
    """
    if isinstance(level, bool) or not isinstance(level, int):
        raise InvalidOptionsError(
            f"Compression level must be an integer (current: {level!r})",
            f"Use a value between {MIN_LEVEL} and {MAX_LEVEL}",
        )
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise InvalidOptionsError(
            f"Compression level must be between {MIN_LEVEL} and {MAX_LEVEL} (current: {level})",
            f"Use a value between {MIN_LEVEL} and {MAX_LEVEL}",
        )
    return level


def validate_exclude(exclude: Any) -> tuple[str, ...]:
    if exclude is None:
        return ()
    if isinstance(exclude, str) or not isinstance(exclude, Iterable):
        raise InvalidOptionsError(
            f"exclude must be a list of glob patterns (got {type(exclude).__name__})",
            'Pass e.g. ["*.tmp", "build/**"]',
        )
    patterns = tuple(exclude)
    for p in patterns:
        if not isinstance(p, str):
            raise InvalidOptionsError(
                f"exclude patterns must be strings (got {type(p).__name__}: {p!r})"
            )
    return patterns


def coerce_options(options: ArchiveOptions | Mapping[str, Any] | None) -> ArchiveOptions:
    """Accept ArchiveOptions, a plain mapping, or None."""
    if options is None:
        return ArchiveOptions()
    if isinstance(options, ArchiveOptions):
        return ArchiveOptions(level=options.level, exclude=validate_exclude(options.exclude))
    if isinstance(options, Mapping):
        unknown = set(options) - {"level", "exclude"}
        if unknown:
            raise InvalidOptionsError(
                f"Unknown option(s): {', '.join(sorted(unknown))}",
                "Supported options: level, exclude",
            )
        return ArchiveOptions(
            level=options.get("level"),
            exclude=validate_exclude(options.get("exclude")),
        )
    raise InvalidOptionsError(f"options must be a mapping (got {type(options).__name__})")
