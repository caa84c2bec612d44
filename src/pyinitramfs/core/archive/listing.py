from __future__ import annotations

"""
Dry-run writer that renders one line per archive entry.
"""

import sys
from typing import BinaryIO, List, Optional, TextIO

from pyinitramfs.core.archive.writer import ArchiveWriter


class ListingWriter(ArchiveWriter):
    """Describe entries instead of encoding them."""

    def __init__(self, out: Optional[TextIO] = None) -> None:
        self.out = out if out is not None else sys.stdout
        self.lines: List[str] = []

    def write_regular(self, path: str, source: BinaryIO, mode: int) -> None:
        name = getattr(source, "name", "")
        self._emit(f"f {path} {mode:04o}" + (f" ({name})" if name else ""))

    def write_directory(self, path: str) -> None:
        self._emit(f"d {path}")

    def write_link(self, path: str, target: str) -> None:
        self._emit(f"l {path} -> {target}")

    def _emit(self, line: str) -> None:
        self.lines.append(line)
        print(line, file=self.out)
