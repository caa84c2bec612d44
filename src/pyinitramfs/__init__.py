from __future__ import annotations

"""
pyinitramfs: build initramfs archives from an in-memory file tree.
"""

__version__ = "0.1.0"

from pyinitramfs.core.archive.cpio import CpioWriter
from pyinitramfs.core.archive.writer import ArchiveWriter
from pyinitramfs.core.builder import InitRamfs
from pyinitramfs.domain.errors import (
    EntryExistsError,
    EntryNotDirError,
    EntryNotExistsError,
    InitramfsError,
)
from pyinitramfs.domain.tree_models import Entry, EntryType

__all__ = [
    "ArchiveWriter",
    "CpioWriter",
    "Entry",
    "EntryExistsError",
    "EntryNotDirError",
    "EntryNotExistsError",
    "EntryType",
    "InitRamfs",
    "InitramfsError",
]
