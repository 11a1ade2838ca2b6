"""Directory -> ZIP archiver.

Walks a source tree, filters entries through the exclusion patterns and streams
every remaining file into a deflate-compressed, Zip64-enabled archive.
Directories become '/'-terminated marker entries.
"""

from __future__ import annotations

import os
import time
import zipfile
from pathlib import Path

from dirpack.core.errors import DiskFullError, is_disk_full
from dirpack.core.logging import get_logger

from .errors import ArchiveWriteError, SourceReadError, TraversalError
from .options import validate_level
from .patterns import ExcludeMatcher
from .platform import external_attr_for, mode_from_stat, platform_supports_permission_bits
from .streams import archive_writer, copy_stream, entry_writer, new_buffer, open_output
from .types import DirectoryEntry, EntryKind, EntryOptions, PackStats
from .walk import walk_tree

log = get_logger(__name__)

_MIN_DATE = (1980, 1, 1, 0, 0, 0)
_MAX_DATE = (2107, 12, 31, 23, 59, 59)


def _zip_date_time(mtime: float | None) -> tuple[int, int, int, int, int, int]:
    if mtime is None:
        mtime = time.time()
    date_time = time.localtime(mtime)[0:6]
    if date_time[0] < 1980:
        return _MIN_DATE
    if date_time[0] > 2107:
        return _MAX_DATE
    return date_time  # type: ignore[return-value]


def entry_info(
    name: str, options: EntryOptions, *, is_dir: bool, mtime: float | None
) -> zipfile.ZipInfo:
    """Build the ZipInfo for one entry."""
    if is_dir:
        info = zipfile.ZipInfo(name + "/", date_time=_zip_date_time(mtime))
        # ZipFile.mkdir() only fills these for a str argument.
        info.CRC = 0
        info.compress_size = 0
        info.file_size = 0
        info.external_attr = external_attr_for(options.unix_mode, is_dir=True)
        return info

    info = zipfile.ZipInfo(name, date_time=_zip_date_time(mtime))
    info.compress_type = options.compress_type
    # ZipFile.open() does not apply the archive-level compresslevel to a
    # caller-built ZipInfo. Python 3.13 made the attribute public.
    if hasattr(info, "compress_level"):
        info.compress_level = options.level
    else:
        info._compresslevel = options.level  # type: ignore[attr-defined]
    info.external_attr = external_attr_for(options.unix_mode, is_dir=False)
    return info


def _same_file(st: os.stat_result, other: os.stat_result | None) -> bool:
    if other is None or not st.st_ino:
        return False
    return (st.st_dev, st.st_ino) == (other.st_dev, other.st_ino)


def _write_file(
    zf: zipfile.ZipFile,
    entry: DirectoryEntry,
    *,
    level: int,
    supports_permissions: bool,
    buffer: bytearray,
    output_path: Path,
    output_stat: os.stat_result | None,
) -> int | None:
    """Stream one file into the archive.

    Returns:
        Bytes written, or None when the entry is the archive itself.
    """
    try:
        src = open(entry.abs_path, "rb")
    except OSError as e:
        raise SourceReadError(f"Failed to read source file: {e}", path=entry.abs_path) from e

    with src:
        try:
            st = os.fstat(src.fileno())
        except OSError as e:
            raise SourceReadError(f"Failed to read source file: {e}", path=entry.abs_path) from e
        if _same_file(st, output_stat):
            log.debug(f"skip entry (archive output itself): {entry.rel_path!r}")
            return None

        options = EntryOptions(
            level=level,
            unix_mode=mode_from_stat(st, is_dir=False) if supports_permissions else None,
        )
        info = entry_info(entry.rel_path, options, is_dir=False, mtime=st.st_mtime)
        with entry_writer(zf, info, path=output_path) as dst:
            return copy_stream(
                src,
                dst,
                buffer,
                on_read_error=lambda e: SourceReadError(
                    f"File stream read interrupted: {e}", path=entry.abs_path
                ),
                on_write_error=lambda e: ArchiveWriteError(
                    f"Failed to write data: {e}", path=output_path
                ),
                dst_path=output_path,
            )


def _write_dir(
    zf: zipfile.ZipFile,
    entry: DirectoryEntry,
    *,
    level: int,
    supports_permissions: bool,
    output_path: Path,
) -> None:
    try:
        st: os.stat_result | None = os.stat(entry.abs_path)
    except OSError:
        st = None

    unix_mode = None
    if supports_permissions and st is not None:
        unix_mode = mode_from_stat(st, is_dir=True)
    options = EntryOptions(level=level, unix_mode=unix_mode)
    info = entry_info(
        entry.rel_path, options, is_dir=True, mtime=None if st is None else st.st_mtime
    )
    try:
        zf.mkdir(info)
    except OSError as e:
        if is_disk_full(e):
            raise DiskFullError(output_path) from e
        raise ArchiveWriteError(f"Failed to add directory: {e}", path=output_path) from e


def write_archive(
    source_dir: str | Path,
    output_path: str | Path,
    *,
    level: int,
    exclude: ExcludeMatcher | None = None,
    supports_permissions: bool | None = None,
) -> PackStats:
    """Pack source_dir into a ZIP file at output_path.

    Args:
        source_dir: Directory to pack (not included as an entry itself)
        output_path: Archive to create or overwrite
        level: Deflate level, 0-9
        exclude: Compiled exclusion patterns
        supports_permissions: Override for platform_supports_permission_bits()

    Returns:
        PackStats; stats.files is the number of file entries written

    Raises:
        InvalidOptionsError: level out of range (before any I/O)
        FileError subclasses: see dirpack.archives.errors
    """
    validate_level(level)
    src_root = Path(source_dir)
    out = Path(output_path)
    matcher = exclude if exclude is not None else ExcludeMatcher()
    if supports_permissions is None:
        supports_permissions = platform_supports_permission_bits()
    if not src_root.is_dir():
        raise TraversalError(f"Source directory not found: {src_root}", path=src_root)

    files = 0
    dirs = 0
    total = 0
    excluded = 0
    buffer = new_buffer()

    with open_output(out) as fp, archive_writer(fp, level=level, path=out) as zf:
        try:
            output_stat: os.stat_result | None = os.fstat(fp.fileno())
        except OSError:
            output_stat = None

        for entry in walk_tree(src_root):
            pattern = matcher.first_match(entry.rel_path)
            if pattern is not None:
                log.debug(f"exclude entry={entry.rel_path!r} pattern={pattern!r}")
                excluded += 1
                continue

            if entry.kind == EntryKind.FILE:
                written = _write_file(
                    zf,
                    entry,
                    level=level,
                    supports_permissions=supports_permissions,
                    buffer=buffer,
                    output_path=out,
                    output_stat=output_stat,
                )
                if written is None:
                    continue
                log.debug(f"add file entry={entry.rel_path!r} bytes={written}")
                total += written
                files += 1
            else:
                _write_dir(
                    zf,
                    entry,
                    level=level,
                    supports_permissions=supports_permissions,
                    output_path=out,
                )
                log.debug(f"add dir entry={entry.rel_path + '/'!r}")
                dirs += 1

    return PackStats(files=files, dirs=dirs, total_bytes=total, excluded=excluded)
