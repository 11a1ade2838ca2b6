"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path (for 'dirpack.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))


@pytest.fixture(autouse=True)
def _isolate_config_and_logging(tmp_path_factory, monkeypatch):
    """Keep user config, DIRPACK_* env vars and global verbosity out of tests."""
    from dirpack.core.logging import (
        VerbosityLevel,
        clear_log_listeners,
        set_colors,
        set_verbosity,
    )

    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.startswith("DIRPACK_"):
            monkeypatch.delenv(key)

    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(False)
    yield
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(True)
    clear_log_listeners()


@pytest.fixture
def src_tree(tmp_path):
    """Create a small source tree.

    Layout:
        file1.txt, file2.txt, ignore.tmp, script.sh (0755),
        subdir/file3.txt, empty/

    Returns:
        Path to the tree root
    """
    src = tmp_path / "src"
    src.mkdir()
    (src / "file1.txt").write_text("Hello World")
    (src / "file2.txt").write_text("Zip it")
    (src / "ignore.tmp").write_text("Should be ignored")
    (src / "script.sh").write_text("#!/bin/sh\necho hi\n")
    (src / "script.sh").chmod(0o755)
    (src / "subdir").mkdir()
    (src / "subdir" / "file3.txt").write_text("Nested File")
    (src / "empty").mkdir()
    return src


@pytest.fixture
def config_resolver(tmp_path):
    """ConfigResolver that only sees built-in defaults."""
    from dirpack.core.config import ConfigResolver

    return ConfigResolver(
        cli_args={},
        user_config_path=tmp_path / "nonexistent-user.yaml",
        system_config_path=tmp_path / "nonexistent-system.yaml",
    )
