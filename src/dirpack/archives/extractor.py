"""ZIP -> directory extractor.

Entries are processed in stored order. Each stored name must resolve to a path
inside the output directory; names that do not are handled by the
UnsafePathPolicy (skipped by default).
"""

from __future__ import annotations

import os
import stat
import zipfile
from pathlib import Path, PurePosixPath

from dirpack.core.logging import get_logger

from .errors import (
    ArchiveFormatError,
    ArchiveOpenError,
    DirectoryCreateError,
    EntryReadError,
    FileCreateError,
    PermissionRestoreError,
    UnsafePathError,
)
from .paths import enclosed_name, resolve_within
from .platform import platform_supports_permission_bits, stored_mode
from .streams import READ_ERRORS, copy_stream, new_buffer
from .types import UnpackStats, UnsafePathPolicy

log = get_logger(__name__)


def _open_archive(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path, "r")
    except zipfile.BadZipFile as e:
        raise ArchiveFormatError(
            f"Failed to read zip archive: {e}",
            "The file is not a ZIP archive or is truncated",
            path=path,
        ) from e
    except OSError as e:
        raise ArchiveOpenError(f"Failed to open zip file: {e}", path=path) from e


def _mkdirs(path: Path, *, what: str) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreateError(f"Failed to create {what}: {e}", path=path) from e


def _extract_file(
    zf: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path, buffer: bytearray
) -> int:
    if not target.parent.exists():
        _mkdirs(target.parent, what="parent directory")

    try:
        src = zf.open(info, "r")
    except (*READ_ERRORS, NotImplementedError, RuntimeError) as e:
        raise EntryReadError(
            f"Failed to read zip entry {info.filename!r}: {e}", path=target
        ) from e

    with src:
        try:
            dst = open(target, "wb")
        except OSError as e:
            raise FileCreateError(f"Failed to create output file: {e}", path=target) from e
        with dst:
            return copy_stream(
                src,
                dst,
                buffer,
                on_read_error=lambda e: EntryReadError(
                    f"Failed to decompress file content of {info.filename!r}: {e}", path=target
                ),
                on_write_error=lambda e: FileCreateError(
                    f"Failed to write output file: {e}", path=target
                ),
                dst_path=target,
            )


def _restore_mode(info: zipfile.ZipInfo, target: Path) -> None:
    mode = stored_mode(info)
    if mode is None:
        return
    try:
        os.chmod(target, stat.S_IMODE(mode))
    except OSError as e:
        raise PermissionRestoreError(f"Failed to set file permissions: {e}", path=target) from e


def _unsafe(name: str, policy: UnsafePathPolicy, skipped: list[str]) -> None:
    if policy == UnsafePathPolicy.ERROR:
        raise UnsafePathError(name)
    log.debug(f"skip unsafe entry={name!r}")
    skipped.append(name)


def read_archive(
    archive_path: str | Path,
    output_dir: str | Path,
    *,
    on_unsafe_path: UnsafePathPolicy = UnsafePathPolicy.SKIP,
    supports_permissions: bool | None = None,
) -> UnpackStats:
    """Extract archive_path into output_dir.

    Args:
        archive_path: ZIP file to read
        output_dir: Destination root; created when missing
        on_unsafe_path: Policy for entries that would escape output_dir
        supports_permissions: Override for platform_supports_permission_bits()

    Returns:
        UnpackStats; stats.skipped lists entry names dropped as unsafe

    Raises:
        UnsafePathError: only under UnsafePathPolicy.ERROR
        FileError subclasses: see dirpack.archives.errors
    """
    src = Path(archive_path)
    out_root = Path(output_dir)
    if supports_permissions is None:
        supports_permissions = platform_supports_permission_bits()

    files = 0
    dirs = 0
    total = 0
    skipped: list[str] = []
    buffer = new_buffer()

    with _open_archive(src) as zf:
        _mkdirs(out_root, what="output directory")

        for info in zf.infolist():
            name = info.filename
            is_dir = name.endswith("/")

            rel = enclosed_name(name)
            if rel is None or (not is_dir and rel == PurePosixPath(".")):
                _unsafe(name, on_unsafe_path, skipped)
                continue
            target = resolve_within(out_root, rel)
            if target is None:
                _unsafe(name, on_unsafe_path, skipped)
                continue

            if is_dir:
                _mkdirs(target, what="directory")
                dirs += 1
                log.debug(f"extract dir entry={name!r}")
            else:
                written = _extract_file(zf, info, target, buffer)
                total += written
                files += 1
                log.debug(f"extract file entry={name!r} bytes={written}")

            if supports_permissions:
                _restore_mode(info, target)

    return UnpackStats(files=files, dirs=dirs, total_bytes=total, skipped=skipped)
