"""Archive capability service for dirpack.

This module wires configuration, validation, logging and tracing around the
archiver and extractor. Options are validated before any filesystem work.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dirpack.core.config import ConfigResolver
from dirpack.core.errors import DirpackError, FileError
from dirpack.core.logging import get_logger

from .archiver import write_archive
from .extractor import read_archive
from .options import coerce_options, validate_exclude, validate_level
from .patterns import ExcludeMatcher
from .types import (
    ArchiveOptions,
    InvalidPatternPolicy,
    OpEvent,
    OpPhase,
    PackResult,
    UnpackResult,
    UnsafePathPolicy,
)

log = get_logger(__name__)


def _bool_from_resolver(resolver: ConfigResolver, key: str, default: bool) -> bool:
    try:
        return resolver.resolve_bool(key)
    except Exception:
        return default


class ArchiveService:
    """Pack directories into ZIP archives and unpack them again.

    Defaults not passed explicitly (compression level, extra exclusion
    patterns, the invalid-pattern and unsafe-path policies, tracing) come from
    the ConfigResolver under the 'archives.*' keys.
    """

    def __init__(
        self,
        resolver: ConfigResolver | None = None,
        *,
        supports_permissions: bool | None = None,
    ) -> None:
        self._resolver = resolver or ConfigResolver(cli_args={})
        self._supports_permissions = supports_permissions

    def validate_options(
        self, options: ArchiveOptions | Mapping[str, Any] | None = None
    ) -> ArchiveOptions:
        """Resolve options against config and validate them.

        Returns:
            ArchiveOptions with a concrete level and the full exclude list
            (configured patterns first, then the caller's).

        Raises:
            InvalidOptionsError, ConfigError
        """
        opts = coerce_options(options)
        level = opts.level
        if level is None:
            level = self._resolver.resolve_int("archives.level")
        validate_level(level)

        configured = validate_exclude(self._resolver.resolve_str_list("archives.exclude"))
        return ArchiveOptions(level=level, exclude=configured + opts.exclude)

    def invalid_pattern_policy(self) -> InvalidPatternPolicy:
        return InvalidPatternPolicy(self._resolver.resolve_enum("archives.on_invalid_pattern"))

    def unsafe_path_policy(self) -> UnsafePathPolicy:
        return UnsafePathPolicy(self._resolver.resolve_enum("archives.on_unsafe_path"))

    def pack(
        self,
        source_dir: str | Path,
        output_path: str | Path,
        options: ArchiveOptions | Mapping[str, Any] | None = None,
        *,
        debug_trace: bool | None = None,
    ) -> PackResult:
        """Pack source_dir into output_path.

        Raises:
            InvalidOptionsError: before any file is created
            FileError: any I/O failure (the partial archive is left on disk)
        """
        opts = self.validate_options(options)
        level = validate_level(opts.level)
        matcher = ExcludeMatcher(opts.exclude, policy=self.invalid_pattern_policy())
        _debug_trace = debug_trace
        if _debug_trace is None:
            _debug_trace = _bool_from_resolver(
                self._resolver, "archives.debug.include_trace", False
            )

        trace: list[OpEvent] = [
            OpEvent(
                op="pack",
                phase=OpPhase.PLANNED,
                details={
                    "source_dir": str(source_dir),
                    "output_path": str(output_path),
                    "level": level,
                    "exclude": list(matcher.patterns),
                    "dropped_patterns": list(matcher.dropped),
                },
            )
        ]
        log.verbose(
            f"pack start source_dir={str(source_dir)!r} output_path={str(output_path)!r} "
            f"level={level} exclude={len(matcher)}"
        )
        start = time.perf_counter()
        try:
            trace.append(OpEvent(op="pack", phase=OpPhase.STARTED))
            stats = write_archive(
                source_dir,
                output_path,
                level=level,
                exclude=matcher,
                supports_permissions=self._supports_permissions,
            )
        except Exception as e:
            self._record_failure("pack", trace, e, start)
            if isinstance(e, DirpackError):
                raise
            raise FileError(str(e)) from e

        duration_ms = int((time.perf_counter() - start) * 1000)
        trace.append(
            OpEvent(
                op="pack",
                phase=OpPhase.OK,
                details={
                    "files": stats.files,
                    "dirs": stats.dirs,
                    "bytes": stats.total_bytes,
                    "excluded": stats.excluded,
                    "duration_ms": duration_ms,
                },
            )
        )
        log.info(
            f"packed {stats.files} file(s) into {str(output_path)!r} "
            f"dirs={stats.dirs} bytes={stats.total_bytes} duration_ms={duration_ms}"
        )
        return PackResult(
            source_dir=str(source_dir),
            output_path=str(output_path),
            level=level,
            files_packed=stats.files,
            dirs_packed=stats.dirs,
            total_bytes=stats.total_bytes,
            excluded=stats.excluded,
            trace=trace if _debug_trace else [],
        )

    def unpack(
        self,
        archive_path: str | Path,
        output_dir: str | Path,
        *,
        on_unsafe_path: UnsafePathPolicy | None = None,
        debug_trace: bool | None = None,
    ) -> UnpackResult:
        """Unpack archive_path into output_dir.

        Raises:
            FileError: open/parse/read/create/chmod failure; entries already
                extracted stay on disk
            UnsafePathError: only under UnsafePathPolicy.ERROR
        """
        policy = on_unsafe_path or self.unsafe_path_policy()
        _debug_trace = debug_trace
        if _debug_trace is None:
            _debug_trace = _bool_from_resolver(
                self._resolver, "archives.debug.include_trace", False
            )

        trace: list[OpEvent] = [
            OpEvent(
                op="unpack",
                phase=OpPhase.PLANNED,
                details={
                    "archive_path": str(archive_path),
                    "output_dir": str(output_dir),
                    "on_unsafe_path": policy.value,
                },
            )
        ]
        log.verbose(
            f"unpack start archive_path={str(archive_path)!r} output_dir={str(output_dir)!r}"
        )
        start = time.perf_counter()
        try:
            trace.append(OpEvent(op="unpack", phase=OpPhase.STARTED))
            stats = read_archive(
                archive_path,
                output_dir,
                on_unsafe_path=policy,
                supports_permissions=self._supports_permissions,
            )
        except Exception as e:
            self._record_failure("unpack", trace, e, start)
            if isinstance(e, DirpackError):
                raise
            raise FileError(str(e)) from e

        duration_ms = int((time.perf_counter() - start) * 1000)
        trace.append(
            OpEvent(
                op="unpack",
                phase=OpPhase.OK,
                details={
                    "files": stats.files,
                    "dirs": stats.dirs,
                    "bytes": stats.total_bytes,
                    "skipped": list(stats.skipped),
                    "duration_ms": duration_ms,
                },
            )
        )
        if stats.skipped:
            log.verbose(f"unpack skipped {len(stats.skipped)} unsafe entr(y/ies)")
        log.info(
            f"unpacked {stats.files} file(s) into {str(output_dir)!r} "
            f"dirs={stats.dirs} bytes={stats.total_bytes} duration_ms={duration_ms}"
        )
        return UnpackResult(
            archive_path=str(archive_path),
            output_dir=str(output_dir),
            files_unpacked=stats.files,
            dirs_unpacked=stats.dirs,
            total_bytes=stats.total_bytes,
            skipped=list(stats.skipped),
            trace=trace if _debug_trace else [],
        )

    def _record_failure(
        self, op: str, trace: list[OpEvent], e: Exception, start: float
    ) -> None:
        details: dict[str, object] = {
            "error": str(e),
            "error_type": type(e).__name__,
            "duration_ms": int((time.perf_counter() - start) * 1000),
        }
        if isinstance(e, FileError):
            details["path"] = e.path
            details["phase"] = e.phase
        if _bool_from_resolver(self._resolver, "archives.debug.include_stack", False):
            import traceback

            details["stack"] = traceback.format_exc()
        trace.append(OpEvent(op=op, phase=OpPhase.ERROR, details=details))
        log.verbose(f"{op} failed error_type={type(e).__name__} error={e}")
        log.debug(f"{op} trace: {trace!r}")


def pack(
    source_dir: str | Path,
    output_path: str | Path,
    options: ArchiveOptions | Mapping[str, Any] | None = None,
) -> int:
    """Pack source_dir into a ZIP archive at output_path.

    Args:
        source_dir: Directory to pack
        output_path: Archive file to create or overwrite
        options: ArchiveOptions or a mapping with 'level' (0-9) and 'exclude'
            (list of glob patterns)

    Returns:
        Number of files written (directories are not counted)
    """
    return ArchiveService().pack(source_dir, output_path, options).files_packed


def unpack(archive_path: str | Path, output_dir: str | Path) -> None:
    """Unpack a ZIP archive into output_dir."""
    ArchiveService().unpack(archive_path, output_dir)


async def pack_async(
    source_dir: str | Path,
    output_path: str | Path,
    options: ArchiveOptions | Mapping[str, Any] | None = None,
) -> int:
    """pack() in a worker thread; options are validated before it starts."""
    service = ArchiveService()
    service.validate_options(options)
    result = await asyncio.to_thread(service.pack, source_dir, output_path, options)
    return result.files_packed


async def unpack_async(archive_path: str | Path, output_dir: str | Path) -> None:
    """unpack() in a worker thread."""
    await asyncio.to_thread(ArchiveService().unpack, archive_path, output_dir)
