"""Permission-bit capability and ZIP external attribute helpers."""

from __future__ import annotations

import os
import stat
import zipfile

# ZipInfo.create_system values
_SYSTEM_DOS = 0
_SYSTEM_UNIX = 3

_DOS_READONLY = 0x01
_DOS_DIRECTORY = 0x10


def platform_supports_permission_bits() -> bool:
    """True when the host exposes POSIX permission bits."""
    return os.name == "posix"


def mode_from_stat(st: os.stat_result, *, is_dir: bool) -> int:
    """Full Unix mode (type + permission bits) to store for an entry."""
    file_type = stat.S_IFDIR if is_dir else stat.S_IFREG
    return file_type | stat.S_IMODE(st.st_mode)


def external_attr_for(unix_mode: int | None, *, is_dir: bool) -> int:
    attr = 0
    if unix_mode is not None:
        attr = (unix_mode & 0xFFFF) << 16
    if is_dir:
        attr |= _DOS_DIRECTORY
    return attr


def stored_mode(info: zipfile.ZipInfo) -> int | None:
    """Return the Unix mode stored for an entry, if any.

    Unix-made entries carry the mode in the high 16 bits of external_attr.
    For DOS-made entries a mode is derived from the attribute byte.
    """
    attr = info.external_attr
    if attr == 0:
        return None
    if info.create_system == _SYSTEM_UNIX:
        mode = attr >> 16
        return mode or None
    if info.create_system == _SYSTEM_DOS:
        if attr & _DOS_DIRECTORY:
            mode = stat.S_IFDIR | 0o775
        else:
            mode = stat.S_IFREG | 0o664
        if attr & _DOS_READONLY:
            mode &= ~0o222
        return mode
    return None
