"""Source tree traversal."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

from dirpack.core.logging import get_logger

from .errors import TraversalError
from .paths import entry_name
from .types import DirectoryEntry, EntryKind

log = get_logger(__name__)


def _scan_sorted(path: Path) -> Iterator[os.DirEntry[str]]:
    try:
        with os.scandir(path) as it:
            return iter(sorted(it, key=lambda e: e.name))
    except OSError as e:
        raise TraversalError(f"Failed to list directory: {e}", path=path) from e


def walk_tree(root: Path) -> Iterator[DirectoryEntry]:
    """Yield every entry under root, depth-first, directories before contents.

    Children are visited in name order. Symlinks are not descended into: a
    link to a file yields a FILE entry, a link to a directory yields a
    DIRECTORY entry with no children. Dangling links and special files
    (sockets, FIFOs, devices) are skipped with a warning, as are entries
    below the root that cannot be stat'ed or listed (the marker of an
    unreadable subdirectory is still yielded, its contents are not).
    The root itself is not yielded.

    Raises:
        TraversalError: root is missing, not a directory or cannot be listed
        PathResolutionError, PathEncodingError: see entry_name
    """
    if not root.is_dir():
        raise TraversalError(f"Source directory not found: {root}", path=root)

    stack = [_scan_sorted(root)]
    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
            continue

        path = Path(child.path)
        name = entry_name(root, path)
        try:
            is_file = child.is_file()
            is_dir = not is_file and child.is_dir()
        except OSError as e:
            log.warning(f"skip entry (cannot stat): {name!r} error={e}")
            continue

        if is_file:
            yield DirectoryEntry(abs_path=path, rel_path=name, kind=EntryKind.FILE)
        elif is_dir:
            yield DirectoryEntry(abs_path=path, rel_path=name, kind=EntryKind.DIRECTORY)
            if child.is_symlink():
                continue
            try:
                stack.append(_scan_sorted(path))
            except TraversalError as e:
                log.warning(f"skip directory contents (cannot list): {name!r} error={e.message}")
        else:
            log.warning(f"skip entry (not a regular file or directory): {name!r}")
