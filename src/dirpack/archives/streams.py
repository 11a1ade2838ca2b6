"""Streaming helpers shared by the archiver and extractor.

All handles are scoped by context managers. On the failure path close errors
are suppressed so the original error reaches the caller; on the success path
a close error is the operation's error.
"""

from __future__ import annotations

import contextlib
import zipfile
import zlib
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from dirpack.core.errors import DiskFullError, FileError, is_disk_full

from .errors import ArchiveFinalizeError, ArchiveWriteError, OutputCreateError

READ_BUFFER_SIZE = 64 * 1024
WRITE_BUFFER_SIZE = 64 * 1024

# Errors a decompressing entry stream can raise mid-read.
READ_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    EOFError,
    zlib.error,
    zipfile.BadZipFile,
)

ErrorFactory = Callable[[BaseException], FileError]


def new_buffer() -> bytearray:
    return bytearray(READ_BUFFER_SIZE)


def copy_stream(
    src: BinaryIO,
    dst: BinaryIO,
    buffer: bytearray,
    *,
    on_read_error: ErrorFactory,
    on_write_error: ErrorFactory,
    dst_path: Path,
) -> int:
    """Copy src to dst through a reusable buffer until EOF.

    Short reads are normal; only a raised error stops the copy.

    Returns:
        Number of bytes copied
    """
    view = memoryview(buffer)
    total = 0
    while True:
        try:
            count = src.readinto(view)
        except READ_ERRORS as e:
            raise on_read_error(e) from e
        if not count:
            break
        try:
            dst.write(view[:count])
        except OSError as e:
            if is_disk_full(e):
                raise DiskFullError(dst_path) from e
            raise on_write_error(e) from e
        total += count
    return total


def _close_quietly(closer: Callable[[], object]) -> None:
    with contextlib.suppress(Exception):
        closer()


@contextmanager
def open_output(path: Path) -> Iterator[BinaryIO]:
    """Create (or truncate) the archive file behind a buffered writer."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fp = open(path, "wb", buffering=WRITE_BUFFER_SIZE)
    except OSError as e:
        raise OutputCreateError(f"Failed to create zip file: {e}", path=path) from e

    try:
        yield fp
    except BaseException:
        _close_quietly(fp.close)
        raise
    try:
        fp.close()
    except OSError as e:
        if is_disk_full(e):
            raise DiskFullError(path) from e
        raise ArchiveFinalizeError(f"Zip finalization failed: {e}", path=path) from e


@contextmanager
def archive_writer(fp: BinaryIO, *, level: int, path: Path) -> Iterator[zipfile.ZipFile]:
    """ZipFile in write mode with deflate and Zip64 enabled.

    The central directory is written on a clean exit only; an exception leaves
    the partial file without one, so it never opens as a valid archive.
    """
    zf = zipfile.ZipFile(
        fp,
        "w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=level,
        allowZip64=True,
    )
    try:
        yield zf
    except BaseException:
        # ZipFile.close() (also reached from __del__) writes the central
        # directory only while the private _didModify flag is set. Clearing it
        # makes close() release the handle without finalizing; there is no
        # public API for abandoning a write-mode ZipFile.
        zf._didModify = False  # type: ignore[attr-defined]
        _close_quietly(zf.close)
        raise
    try:
        zf.close()
    except (OSError, zipfile.LargeZipFile) as e:
        if is_disk_full(e):
            raise DiskFullError(path) from e
        raise ArchiveFinalizeError(f"Zip finalization failed: {e}", path=path) from e


@contextmanager
def entry_writer(zf: zipfile.ZipFile, info: zipfile.ZipInfo, *, path: Path) -> Iterator[BinaryIO]:
    """Open a file entry for streaming writes with Zip64 forced."""
    try:
        dst = zf.open(info, "w", force_zip64=True)
    except (OSError, ValueError, RuntimeError) as e:
        raise ArchiveWriteError(f"Failed to write zip entry: {e}", path=path) from e

    try:
        yield dst
    except BaseException:
        _close_quietly(dst.close)
        raise
    try:
        dst.close()
    except OSError as e:
        if is_disk_full(e):
            raise DiskFullError(path) from e
        raise ArchiveWriteError(f"Failed to write data: {e}", path=path) from e
