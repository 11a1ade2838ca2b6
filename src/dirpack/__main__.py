"""dirpack command line entry point.

This module enables running the project with:

    python -m dirpack pack SOURCE_DIR OUTPUT [-l N] [-x PATTERN ...]
    python -m dirpack unpack ARCHIVE OUTPUT_DIR
    python -m dirpack config

The installed 'dirpack' console script calls main().
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml

from dirpack import __version__
from dirpack.archives import ArchiveOptions, ArchiveService
from dirpack.core.config import ConfigResolver
from dirpack.core.errors import DirpackError
from dirpack.core.logging import apply_logging_policy, set_colors


def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    verbosity = common.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-q", "--quiet", dest="log_level", action="store_const", const="quiet",
        help="Only print warnings and errors",
    )
    verbosity.add_argument(
        "-v", "--verbose", dest="log_level", action="store_const", const="verbose",
        help="Print detailed progress",
    )
    verbosity.add_argument(
        "-d", "--debug", dest="log_level", action="store_const", const="debug",
        help="Print every entry decision",
    )
    common.add_argument("--no-color", action="store_true", help="Disable colored output")
    common.add_argument(
        "--config", type=Path, default=None, metavar="PATH",
        help="User config file (default: ~/.config/dirpack/config.yaml)",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_parser()
    parser = argparse.ArgumentParser(
        prog="dirpack",
        description="Pack a directory tree into a ZIP archive and unpack it again.",
    )
    parser.add_argument("--version", action="version", version=f"dirpack {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    p_pack = sub.add_parser("pack", parents=[common], help="Pack SOURCE_DIR into OUTPUT")
    p_pack.add_argument("source_dir", type=Path)
    p_pack.add_argument("output", type=Path)
    p_pack.add_argument(
        "-l", "--level", type=int, default=None,
        help="Deflate level 0-9 (default: archives.level, 1)",
    )
    p_pack.add_argument(
        "-x", "--exclude", action="append", default=[], metavar="PATTERN",
        help="Glob pattern matched against the relative path; repeatable",
    )

    p_unpack = sub.add_parser("unpack", parents=[common], help="Unpack ARCHIVE into OUTPUT_DIR")
    p_unpack.add_argument("archive", type=Path)
    p_unpack.add_argument("output_dir", type=Path)
    p_unpack.add_argument(
        "--strict", action="store_true",
        help="Fail on entries that would escape OUTPUT_DIR instead of skipping them",
    )

    sub.add_parser("config", parents=[common], help="Print the effective configuration")
    return parser


def _cli_args(ns: argparse.Namespace) -> dict[str, Any]:
    """Map parsed flags onto resolver keys (CLI has the highest priority)."""
    cli: dict[str, Any] = {}
    logging_cfg: dict[str, Any] = {}
    if ns.log_level:
        logging_cfg["level"] = ns.log_level
    if ns.no_color:
        logging_cfg["color"] = False
    if logging_cfg:
        cli["logging"] = logging_cfg
    if getattr(ns, "strict", False):
        cli["archives"] = {"on_unsafe_path": "error"}
    return cli


def _show_config(resolver: ConfigResolver) -> None:
    rows = {
        key: {"value": src.value, "source": src.source}
        for key, src in resolver.effective_config().items()
    }
    sys.stdout.write(yaml.safe_dump(rows, sort_keys=True, default_flow_style=False))


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)

    try:
        resolver = ConfigResolver(cli_args=_cli_args(ns), user_config_path=ns.config)
        apply_logging_policy(resolver.resolve_logging_policy())
        set_colors(resolver.resolve_bool("logging.color"))

        if ns.command == "config":
            _show_config(resolver)
            return 0

        service = ArchiveService(resolver)
        if ns.command == "pack":
            options = ArchiveOptions(level=ns.level, exclude=tuple(ns.exclude))
            result = service.pack(ns.source_dir, ns.output, options)
            print(result.files_packed)
            return 0

        service.unpack(ns.archive, ns.output_dir)
        return 0
    except DirpackError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
