"""Tests for packing a directory tree into a ZIP archive."""

import io
import os
import stat
import struct
import zipfile

import pytest

from dirpack.archives import (
    ArchiveService,
    SourceReadError,
    TraversalError,
    pack,
    unpack,
    write_archive,
)
from dirpack.archives import archiver as archiver_mod
from dirpack.archives.archiver import entry_info
from dirpack.archives.types import EntryOptions
from dirpack.core.errors import InvalidOptionsError

posix_only = pytest.mark.skipif(os.name != "posix", reason="requires POSIX permission bits")

_LOCAL_HEADER = struct.Struct("<4s5H3L2H")


def _local_extra_ids(path, info):
    """Header ids found in the local file header's extra field."""
    with open(path, "rb") as f:
        f.seek(info.header_offset)
        fields = _LOCAL_HEADER.unpack(f.read(_LOCAL_HEADER.size))
        name_len, extra_len = fields[-2], fields[-1]
        f.seek(name_len, os.SEEK_CUR)
        extra = f.read(extra_len)

    ids = []
    i = 0
    while i + 4 <= len(extra):
        tp, ln = struct.unpack("<HH", extra[i : i + 4])
        ids.append(tp)
        i += 4 + ln
    return ids


def test_pack_round_trip(src_tree, tmp_path):
    out = tmp_path / "out.zip"
    dest = tmp_path / "restored"

    count = pack(src_tree, out)
    unpack(out, dest)

    assert count == 5
    assert (dest / "file1.txt").read_text() == "Hello World"
    assert (dest / "file2.txt").read_text() == "Zip it"
    assert (dest / "ignore.tmp").read_text() == "Should be ignored"
    assert (dest / "subdir" / "file3.txt").read_text() == "Nested File"
    assert (dest / "empty").is_dir()
    assert list((dest / "empty").iterdir()) == []


def test_pack_exclude_pattern(src_tree, tmp_path):
    out = tmp_path / "out.zip"

    count = pack(src_tree, out, {"level": 6, "exclude": ["*.tmp"]})

    assert count == 4
    with zipfile.ZipFile(out) as zf:
        assert "ignore.tmp" not in zf.namelist()


def test_pack_exclude_leaves_single_file(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "keep.txt").write_text("keep")
    (src / "scratch.tmp").write_text("drop")
    out = tmp_path / "out.zip"

    assert pack(src, out, {"exclude": ["*.tmp"]}) == 1
    with zipfile.ZipFile(out) as zf:
        assert zf.namelist() == ["keep.txt"]


def test_pack_counts_files_not_directories(tmp_path):
    src = tmp_path / "src"
    (src / "a" / "b").mkdir(parents=True)
    (src / "one.txt").write_text("1")
    (src / "a" / "two.txt").write_text("2")
    (src / "a" / "b" / "three.txt").write_text("3")

    result = ArchiveService().pack(src, tmp_path / "out.zip")

    assert result.files_packed == 3
    assert result.dirs_packed == 2


def test_pack_entry_order_and_directory_markers(src_tree, tmp_path):
    out = tmp_path / "out.zip"
    pack(src_tree, out)

    with zipfile.ZipFile(out) as zf:
        names = zf.namelist()
        dir_infos = [i for i in zf.infolist() if i.is_dir()]

    assert names == [
        "empty/",
        "file1.txt",
        "file2.txt",
        "ignore.tmp",
        "script.sh",
        "subdir/",
        "subdir/file3.txt",
    ]
    assert [i.file_size for i in dir_infos] == [0, 0]


def test_excluding_directory_does_not_prune_children(src_tree, tmp_path):
    out = tmp_path / "out.zip"
    pack(src_tree, out, {"exclude": ["subdir"]})

    with zipfile.ZipFile(out) as zf:
        names = zf.namelist()

    assert "subdir/" not in names
    assert "subdir/file3.txt" in names


def test_star_matches_across_separators(src_tree, tmp_path):
    out = tmp_path / "out.zip"

    count = pack(src_tree, out, {"exclude": ["sub*"]})

    assert count == 4
    with zipfile.ZipFile(out) as zf:
        assert not any(n.startswith("subdir") for n in zf.namelist())


@pytest.mark.parametrize("level", range(10))
def test_pack_accepts_every_valid_level(src_tree, tmp_path, level):
    out = tmp_path / f"out{level}.zip"

    assert pack(src_tree, out, {"level": level}) == 5
    with zipfile.ZipFile(out) as zf:
        assert zf.testzip() is None
        assert zf.getinfo("file1.txt").compress_type == zipfile.ZIP_DEFLATED


@pytest.mark.parametrize("level", [-1, 10, 42])
def test_pack_rejects_level_before_any_io(src_tree, tmp_path, level):
    out = tmp_path / "nested" / "out.zip"

    with pytest.raises(InvalidOptionsError) as exc:
        pack(src_tree, out, {"level": level})

    assert f"(current: {level})" in str(exc.value)
    assert not out.exists()
    assert not out.parent.exists()


def test_write_archive_revalidates_level(src_tree, tmp_path):
    out = tmp_path / "out.zip"

    with pytest.raises(InvalidOptionsError):
        write_archive(src_tree, out, level=11)

    assert not out.exists()


def test_pack_rejects_non_integer_level(src_tree, tmp_path):
    with pytest.raises(InvalidOptionsError):
        pack(src_tree, tmp_path / "out.zip", {"level": "6"})
    with pytest.raises(InvalidOptionsError):
        pack(src_tree, tmp_path / "out.zip", {"level": True})


def test_pack_rejects_unknown_option(src_tree, tmp_path):
    with pytest.raises(InvalidOptionsError):
        pack(src_tree, tmp_path / "out.zip", {"compression": "lzma"})


def test_every_file_entry_carries_zip64_extra(src_tree, tmp_path):
    out = tmp_path / "out.zip"
    pack(src_tree, out)

    with zipfile.ZipFile(out) as zf:
        file_infos = [i for i in zf.infolist() if not i.is_dir()]

    assert file_infos
    for info in file_infos:
        assert info.extract_version >= 45
        assert 0x0001 in _local_extra_ids(out, info)


def test_pack_beyond_zip64_thresholds(tmp_path, monkeypatch):
    # Shrink the classic-format limits so sizes, offsets and the entry count
    # all need Zip64 records.
    monkeypatch.setattr(zipfile, "ZIP64_LIMIT", 64)
    monkeypatch.setattr(zipfile, "ZIP_FILECOUNT_LIMIT", 3)

    src = tmp_path / "src"
    src.mkdir()
    payload = {f"f{i:02d}.bin": os.urandom(200 + i) for i in range(8)}
    for name, data in payload.items():
        (src / name).write_bytes(data)

    out = tmp_path / "big.zip"
    dest = tmp_path / "restored"

    assert pack(src, out, {"level": 0}) == 8
    unpack(out, dest)

    for name, data in payload.items():
        assert (dest / name).read_bytes() == data


def test_pack_never_includes_its_own_output(src_tree):
    out = src_tree / "self.zip"

    count = pack(src_tree, out)

    assert count == 5
    with zipfile.ZipFile(out) as zf:
        assert "self.zip" not in zf.namelist()


def test_pack_creates_output_parent_dirs(src_tree, tmp_path):
    out = tmp_path / "a" / "b" / "out.zip"

    pack(src_tree, out)

    assert zipfile.is_zipfile(out)


def test_pack_overwrites_existing_output(src_tree, tmp_path):
    out = tmp_path / "out.zip"
    out.write_bytes(b"stale content" * 100)

    pack(src_tree, out)

    assert zipfile.is_zipfile(out)


def test_pack_missing_source_dir(tmp_path):
    out = tmp_path / "out.zip"

    with pytest.raises(TraversalError) as exc:
        pack(tmp_path / "missing", out)

    assert exc.value.phase == "traverse"
    assert not out.exists()


def test_pack_empty_source_dir(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    out = tmp_path / "out.zip"

    assert pack(src, out) == 0
    with zipfile.ZipFile(out) as zf:
        assert zf.namelist() == []


def test_failed_pack_leaves_unusable_partial_archive(src_tree, tmp_path, monkeypatch):
    out = tmp_path / "out.zip"
    calls = {"n": 0}
    real_copy = archiver_mod.copy_stream

    def flaky_copy(src, dst, buffer, **kwargs):
        calls["n"] += 1
        if calls["n"] == 3:
            raise SourceReadError("File stream read interrupted: boom")
        return real_copy(src, dst, buffer, **kwargs)

    monkeypatch.setattr(archiver_mod, "copy_stream", flaky_copy)

    with pytest.raises(SourceReadError):
        pack(src_tree, out)

    assert out.exists()
    assert not zipfile.is_zipfile(out)


@posix_only
def test_pack_stores_unix_modes(src_tree, tmp_path):
    out = tmp_path / "out.zip"
    pack(src_tree, out)

    with zipfile.ZipFile(out) as zf:
        script = zf.getinfo("script.sh")
        subdir = zf.getinfo("subdir/")

    assert script.create_system == 3
    assert stat.S_IMODE(script.external_attr >> 16) == 0o755
    assert stat.S_ISREG(script.external_attr >> 16)
    assert stat.S_ISDIR(subdir.external_attr >> 16)
    assert subdir.external_attr & 0x10


@posix_only
def test_pack_without_permission_support_stores_no_mode_for_dirs(src_tree, tmp_path):
    out = tmp_path / "out.zip"
    ArchiveService(supports_permissions=False).pack(src_tree, out)

    with zipfile.ZipFile(out) as zf:
        subdir = zf.getinfo("subdir/")

    assert subdir.external_attr >> 16 == 0


@posix_only
def test_pack_skips_special_files_and_dangling_links(src_tree, tmp_path):
    os.mkfifo(src_tree / "pipe")
    os.symlink(tmp_path / "nowhere", src_tree / "dangling")
    out = tmp_path / "out.zip"

    count = pack(src_tree, out)

    assert count == 5
    with zipfile.ZipFile(out) as zf:
        names = zf.namelist()
    assert "pipe" not in names
    assert "dangling" not in names


@posix_only
def test_pack_does_not_descend_into_linked_directories(src_tree, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("x")
    os.symlink(outside, src_tree / "link")
    out = tmp_path / "out.zip"

    pack(src_tree, out)

    with zipfile.ZipFile(out) as zf:
        names = zf.namelist()
    assert "link/" in names
    assert "link/secret.txt" not in names


def _deny_listing(monkeypatch, blocked):
    real_scandir = os.scandir

    def scandir(path="."):
        if os.fspath(path) == os.fspath(blocked):
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", scandir)


def test_pack_skips_unlistable_subdirectory(src_tree, tmp_path, monkeypatch):
    _deny_listing(monkeypatch, src_tree / "subdir")
    out = tmp_path / "out.zip"

    count = pack(src_tree, out)

    assert count == 4
    with zipfile.ZipFile(out) as zf:
        names = zf.namelist()
    assert "subdir/" in names
    assert "subdir/file3.txt" not in names


def test_pack_unlistable_root_fails(src_tree, tmp_path, monkeypatch):
    _deny_listing(monkeypatch, src_tree)

    with pytest.raises(TraversalError):
        pack(src_tree, tmp_path / "out.zip")


@pytest.mark.skipif(
    os.name != "posix" or os.geteuid() == 0, reason="needs a non-root POSIX user"
)
def test_pack_skips_unreadable_subdirectory(src_tree, tmp_path):
    locked = src_tree / "subdir"
    locked.chmod(0)
    try:
        count = pack(src_tree, tmp_path / "out.zip")
    finally:
        locked.chmod(0o755)

    assert count == 4


def test_directory_entry_info_is_writable():
    buf = io.BytesIO()
    options = EntryOptions(level=1, unix_mode=0o40750)
    info = entry_info("nested/dir", options, is_dir=True, mtime=None)

    with zipfile.ZipFile(buf, "w") as zf:
        zf.mkdir(info)

    with zipfile.ZipFile(buf) as zf:
        (read_back,) = zf.infolist()
    assert read_back.filename == "nested/dir/"
    assert (read_back.CRC, read_back.file_size, read_back.compress_size) == (0, 0, 0)
    assert read_back.is_dir()


def test_file_entry_info_carries_level():
    info = entry_info("a.txt", EntryOptions(level=7), is_dir=False, mtime=None)

    level = getattr(info, "compress_level", None)
    if level is None:
        level = info._compresslevel
    assert level == 7
    assert info.compress_type == zipfile.ZIP_DEFLATED
