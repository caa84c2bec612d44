from __future__ import annotations

"""
Archive Writer Contract.

The builder emits the file tree one entry at a time through this interface,
so the tree never depends on a concrete archive byte format.
"""

import abc
from typing import BinaryIO


class ArchiveWriter(abc.ABC):
    """
    Capability interface consumed by the serialization pass.

    Calls arrive depth-first, parents before children, exactly once per
    entry. There is no retry: an exception aborts the whole serialization.
    """

    @abc.abstractmethod
    def write_regular(self, path: str, source: BinaryIO, mode: int) -> None:
        """Write a regular file read from source with the given permission bits."""

    @abc.abstractmethod
    def write_directory(self, path: str) -> None:
        """Write a directory."""

    @abc.abstractmethod
    def write_link(self, path: str, target: str) -> None:
        """Write a symbolic link; target is stored verbatim."""
