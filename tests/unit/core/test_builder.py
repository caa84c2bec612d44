from __future__ import annotations

"""
Unit tests for the InitRamfs builder.

Verifies:
1. Construction seeds /init with the entry point.
2. add_file / add_files naming rules under /files.
3. Serialization dispatch per entry type, error wrapping and abort rules.
"""

from pathlib import Path

import pytest

from pyinitramfs.core.builder import InitRamfs
from pyinitramfs.core.tree import Tree
from pyinitramfs.domain.errors import (
    EntryExistsError,
    SourceOpenError,
    UnknownFileTypeError,
    WriterError,
)
from pyinitramfs.domain.tree_models import Entry, EntryType
from pyinitramfs.infra.fs import LocalFS


def _bare(source_fs=None) -> InitRamfs:
    """Builder whose root is emptied so tests control every entry."""
    builder = InitRamfs("unused", source_fs)
    builder.tree = Tree()
    return builder


# -----------------------------------------------------------------------------
# CONSTRUCTION AND CONTENT
# -----------------------------------------------------------------------------

def test_new_seeds_init():
    builder = InitRamfs("first")
    entry = builder.tree.get_entry("/init")

    assert builder.source_fs == LocalFS()
    assert entry.type == EntryType.REGULAR
    assert entry.related_path == "first"


def test_add_file():
    builder = InitRamfs("first")
    builder.add_file("second", "rel/third")
    builder.add_file("", "/abs/fourth")

    expected = {"second": "rel/third", "fourth": "/abs/fourth"}
    for name, rel_path in expected.items():
        e = builder.tree.get_entry(f"files/{name}")
        assert e.type == EntryType.REGULAR
        assert e.related_path == rel_path


def test_add_file_duplicate():
    builder = InitRamfs("first")
    builder.add_file("", "a/tool")
    with pytest.raises(EntryExistsError) as exc_info:
        builder.add_file("", "b/tool")
    assert exc_info.value.entry.related_path == "a/tool"


def test_add_files():
    builder = InitRamfs("first")
    builder.add_files("second", "rel/third", "/abs/fourth")
    builder.add_files("fifth")
    builder.add_files()

    expected = {
        "second": "second",
        "third": "rel/third",
        "fourth": "/abs/fourth",
        "fifth": "fifth",
    }
    for name, rel_path in expected.items():
        e = builder.tree.get_entry(f"files/{name}")
        assert e.type == EntryType.REGULAR
        assert e.related_path == rel_path


def test_add_files_without_arguments_changes_nothing():
    builder = InitRamfs("first")
    builder.add_files()
    assert [p for p, _ in builder.tree.walk()] == ["/init"]


# -----------------------------------------------------------------------------
# SERIALIZATION
# -----------------------------------------------------------------------------

def test_write_unknown_file_type(recording_writer):
    builder = _bare()
    builder.tree.get_root().add_entry("init", Entry(99))

    with pytest.raises(UnknownFileTypeError, match="unknown file type 99"):
        builder.write_to(recording_writer)
    assert recording_writer.calls == []


def test_write_nonexisting_source(tmp_path: Path, recording_writer):
    builder = _bare(LocalFS(str(tmp_path)))
    builder.tree.get_root().add_file("init", "nonexisting")

    with pytest.raises(SourceOpenError, match="cannot open nonexisting") as exc_info:
        builder.write_to(recording_writer)
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)
    assert recording_writer.calls == []


@pytest.mark.parametrize(
    "entry, expected",
    [
        (Entry(EntryType.REGULAR, "/input"), ("regular", "/init", b"payload", 0o755)),
        (Entry(EntryType.DIRECTORY), ("directory", "/init")),
        (Entry(EntryType.LINK, "/lib"), ("link", "/init", "/lib")),
    ],
    ids=["regular", "directory", "link"],
)
def test_write_single_entry(tmp_path: Path, recording_writer, entry, expected):
    (tmp_path / "input").write_bytes(b"payload")
    builder = _bare(LocalFS(str(tmp_path)))
    builder.tree.get_root().add_entry("init", entry)

    assert builder.write_to(recording_writer) == 1
    assert recording_writer.calls == [expected]


@pytest.mark.parametrize(
    "entry",
    [Entry(EntryType.REGULAR, "/input"), Entry(EntryType.DIRECTORY), Entry(EntryType.LINK, "/lib")],
    ids=["regular", "directory", "link"],
)
def test_write_single_entry_writer_fails(tmp_path: Path, failing_writer, entry):
    (tmp_path / "input").write_bytes(b"payload")
    builder = _bare(LocalFS(str(tmp_path)))
    builder.tree.get_root().add_entry("init", entry)

    with pytest.raises(WriterError, match="disk full") as exc_info:
        builder.write_to(failing_writer)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_write_mixed_tree_parent_before_child(tmp_path: Path, recording_writer):
    (tmp_path / "init").write_bytes(b"#!init")
    (tmp_path / "tool").write_bytes(b"tool")
    builder = InitRamfs("/init", LocalFS(str(tmp_path)))
    builder.add_file("", "/tool")
    builder.tree.ln("/files/tool", "/bin/tool")

    builder.write_to(recording_writer)

    assert sorted(recording_writer.calls, key=lambda c: c[1]) == [
        ("directory", "/bin"),
        ("link", "/bin/tool", "/files/tool"),
        ("directory", "/files"),
        ("regular", "/files/tool", b"tool", 0o755),
        ("regular", "/init", b"#!init", 0o755),
    ]
    paths = recording_writer.paths
    assert paths.index("/bin") < paths.index("/bin/tool")
    assert paths.index("/files") < paths.index("/files/tool")


def test_write_stops_at_first_error(tmp_path: Path, recording_writer):
    builder = _bare(LocalFS(str(tmp_path)))
    root = builder.tree.get_root()
    root.add_file("missing", "/missing")
    root.add_directory("after")

    with pytest.raises(SourceOpenError):
        builder.write_to(recording_writer)
    assert recording_writer.calls == []


def test_write_archive_removes_partial_file(tmp_path: Path):
    builder = InitRamfs("/missing", LocalFS(str(tmp_path / "root")))
    output = tmp_path / "out" / "initramfs.cpio"

    with pytest.raises(SourceOpenError):
        builder.write_archive(str(output))
    assert not output.exists()


def test_write_archive(source_root: Path, tmp_path: Path):
    builder = InitRamfs("/bin/main", LocalFS(str(source_root)))
    builder.add_files("/etc/motd")
    output = tmp_path / "initramfs.cpio"

    assert builder.write_archive(str(output)) == 3
    data = output.read_bytes()
    assert data.startswith(b"070701")
    assert b"TRAILER!!!" in data
    assert b"files/motd\x00" in data
