"""Entry name normalization and output-root jail resolution.

Archive entry names always use '/' separators. On extraction every stored name
is mapped to a path enclosed in the output directory or rejected.
"""

from __future__ import annotations

import os
import re
from pathlib import Path, PurePosixPath

from .errors import PathEncodingError, PathResolutionError

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def entry_name(root: Path, path: Path) -> str:
    """Return the '/'-separated name of path relative to root.

    Returns '' for the root itself.

    Raises:
        PathResolutionError: path is not under root
        PathEncodingError: the name is not representable as UTF-8 text
    """
    try:
        rel = path.relative_to(root)
    except ValueError:
        raise PathResolutionError(
            f"Path resolution error: {path} is not under {root}", path=path
        ) from None

    name = rel.as_posix()
    if name == ".":
        return ""
    try:
        # Undecodable bytes survive os.fsdecode as lone surrogates.
        name.encode("utf-8")
    except UnicodeEncodeError:
        raise PathEncodingError(
            f"Path contains invalid characters: {os.fsencode(path)!r}",
            "Rename the file to a UTF-8 name",
            path=path,
        ) from None
    return name


def enclosed_name(name: str, *, windows: bool | None = None) -> PurePosixPath | None:
    """Map a stored entry name to a safe relative path.

    Rules:
    - NUL bytes and absolute names are rejected
    - on Windows hosts backslashes are separators and drive/UNC prefixes are
      rejected; elsewhere both are ordinary filename characters
    - '.' segments are dropped
    - '..' segments may only cancel earlier segments, never climb above root

    Args:
        name: Stored entry name
        windows: Apply the Windows rules (default: os.name == "nt")

    Returns:
        Normalized relative path (may be '.' for names like './'), or None
        when the name cannot be enclosed.
    """
    if "\0" in name:
        return None
    if windows is None:
        windows = os.name == "nt"

    norm = name
    if windows:
        norm = name.replace("\\", "/")
        if _DRIVE_RE.match(norm):
            return None
    if norm.startswith("/"):
        return None

    parts: list[str] = []
    for part in norm.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                return None
            parts.pop()
            continue
        parts.append(part)
    return PurePosixPath(*parts)


def resolve_within(root: Path, rel: PurePosixPath) -> Path | None:
    """Join rel onto root and make sure the result stays inside root on disk.

    Symlinks already present under root are followed, so a link pointing
    elsewhere cannot redirect a write.

    Returns:
        The joined (unresolved) path, or None if it escapes root.
    """
    target = root.joinpath(*rel.parts)
    root_resolved = root.resolve()
    try:
        target.resolve().relative_to(root_resolved)
    except ValueError:
        return None
    return target
