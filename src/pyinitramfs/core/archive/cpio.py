from __future__ import annotations

"""
CPIO Archive Writer.

Encodes writer calls as an SVR4 "newc" archive (ASCII headers, no CRC), the
format the Linux kernel unpacks into its initial root filesystem.

Record layout:
    header : 110 bytes ("070701" + 13 fields of 8 hex digits)
    name   : NUL-terminated, padded to a 4-byte boundary (with the header)
    data   : file body or link target, padded to a 4-byte boundary
"""

import logging
import stat
from typing import BinaryIO, Optional

from pyinitramfs.core.archive.writer import ArchiveWriter

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# FORMAT CONSTANTS
# -----------------------------------------------------------------------------

MAGIC = "070701"
HEADER_SIZE = 110
TRAILER_NAME = "TRAILER!!!"

DIRECTORY_MODE = 0o755
LINK_MODE = 0o777


class CpioWriter(ArchiveWriter):
    """
    Write entries to a binary stream in newc format.

    The trailer record is emitted by close(); used as a context manager the
    trailer is only written when the block exits without an exception.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream
        self._inode = 1
        self._closed = False

    def __enter__(self) -> CpioWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()

    # -------------------------------------------------------------------------
    # ARCHIVE WRITER CONTRACT
    # -------------------------------------------------------------------------

    def write_regular(self, path: str, source: BinaryIO, mode: int) -> None:
        data = source.read()
        self._write_record(path, stat.S_IFREG | stat.S_IMODE(mode), data)

    def write_directory(self, path: str) -> None:
        self._write_record(path, stat.S_IFDIR | DIRECTORY_MODE, b"", nlink=2)

    def write_link(self, path: str, target: str) -> None:
        self._write_record(path, stat.S_IFLNK | LINK_MODE, target.encode("utf-8"))

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Terminate the archive with the trailer record. Idempotent."""
        if self._closed:
            return
        self._write_record(TRAILER_NAME, 0, b"", inode=0, nlink=1)
        self._closed = True
        logger.debug(f"CPIO archive closed after {self._inode - 1} entries")

    # -------------------------------------------------------------------------
    # PRIVATE HELPERS
    # -------------------------------------------------------------------------

    def _write_record(
            self,
            path: str,
            mode: int,
            data: bytes,
            nlink: int = 1,
            inode: Optional[int] = None,
    ) -> None:
        """Write one header, name and body, each padded to 4 bytes."""
        if self._closed:
            raise ValueError("write to closed cpio archive")

        if inode is None:
            inode = self._inode
            self._inode += 1

        name = path.lstrip("/").encode("utf-8") + b"\x00"
        fields = (
            inode,
            mode,
            0,          # uid
            0,          # gid
            nlink,
            0,          # mtime
            len(data),
            0,          # devmajor
            0,          # devminor
            0,          # rdevmajor
            0,          # rdevminor
            len(name),
            0,          # check
        )
        header = MAGIC + "".join(f"{f:08X}" for f in fields)

        self.stream.write(header.encode("ascii"))
        self.stream.write(name)
        self.stream.write(b"\x00" * _pad4(HEADER_SIZE + len(name)))
        self.stream.write(data)
        self.stream.write(b"\x00" * _pad4(len(data)))


def _pad4(size: int) -> int:
    """Return padding needed to reach a 4-byte boundary."""
    return (4 - (size % 4)) % 4
