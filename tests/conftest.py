from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. A recording archive writer shared by the serialization tests.
3. A small source filesystem with a symlinked library directory.
"""

import os
import sys
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Tuple

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from pyinitramfs.core.archive.writer import ArchiveWriter  # noqa: E402


# -----------------------------------------------------------------------------
# Test Doubles
# -----------------------------------------------------------------------------
class RecordingWriter(ArchiveWriter):
    """
    Archive writer that records every call.

    Regular file calls record the bytes read from the source. When error is
    set, every call raises it after being recorded.
    """

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.error = error

    def write_regular(self, path: str, source: BinaryIO, mode: int) -> None:
        self.calls.append(("regular", path, source.read(), mode))
        self._maybe_fail()

    def write_directory(self, path: str) -> None:
        self.calls.append(("directory", path))
        self._maybe_fail()

    def write_link(self, path: str, target: str) -> None:
        self.calls.append(("link", path, target))
        self._maybe_fail()

    @property
    def paths(self) -> List[str]:
        return [c[1] for c in self.calls]

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error


class StaticDiscoverer:
    """Discoverer returning canned library lists per binary."""

    name = "static"

    def __init__(self, libs: Any, error: Optional[Exception] = None) -> None:
        self.libs = libs
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    def discover(self, binary: str, search_root: str = "") -> List[str]:
        self.calls.append((binary, search_root))
        if self.error is not None:
            raise self.error
        if isinstance(self.libs, dict):
            return list(self.libs.get(binary, []))
        return list(self.libs)


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def recording_writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    """
    Create a fake root filesystem.

    Structure:
    /bin/main
    /opt/app/real-lib/libfunc1.so
    /opt/app/real-lib/libfunc2.so
    /opt/app/real-lib/libfunc3.so
    /opt/app/lib -> real-lib
    /etc/motd
    """
    root = tmp_path / "root"
    (root / "bin").mkdir(parents=True)
    (root / "bin" / "main").write_bytes(b"\x7fELF-not-really")

    real_lib = root / "opt" / "app" / "real-lib"
    real_lib.mkdir(parents=True)
    for i in (1, 2, 3):
        (real_lib / f"libfunc{i}.so").write_bytes(f"libfunc{i}".encode())
    os.symlink("real-lib", root / "opt" / "app" / "lib")

    (root / "etc").mkdir()
    (root / "etc" / "motd").write_text("hello\n", encoding="utf-8")
    return root


@pytest.fixture
def failing_writer() -> RecordingWriter:
    return RecordingWriter(error=RuntimeError("disk full"))


@pytest.fixture
def make_discoverer():
    """Factory for canned discoverers: make_discoverer(libs, error=None)."""
    return StaticDiscoverer
