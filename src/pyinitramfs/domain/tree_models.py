from __future__ import annotations

"""
Virtual File Tree Data Models.

Provides the recursive node type used to describe the future root filesystem
entirely in memory. Entries carry no bytes; regular files only reference the
source path their content is read from at archive time.
"""

import enum
import posixpath
from typing import Any, Dict, Iterator, List, Tuple

from pyinitramfs.domain.errors import (
    EntryExistsError,
    EntryNotDirError,
    EntryNotExistsError,
)

# -----------------------------------------------------------------------------
# ENTRY TYPES
# -----------------------------------------------------------------------------

class EntryType(enum.IntEnum):
    """Kinds of file tree entries."""
    REGULAR = 0
    DIRECTORY = 1
    LINK = 2


# -----------------------------------------------------------------------------
# STRUCTURAL COMPONENTS
# -----------------------------------------------------------------------------

class Entry:
    """
    A single file tree entry.

    Attributes:
        type: Kind of the entry. Plain values outside EntryType are accepted
            by the generic constructor and rejected at serialization time.
        related_path: Meaning depends on the type: empty for directories,
            link target for links, source file for regular files.
    """

    __slots__ = ("type", "related_path", "_children")

    def __init__(self, type: Any, related_path: str = "") -> None:
        self.type = type
        self.related_path = related_path
        self._children: Dict[str, Entry] = {}

    def __repr__(self) -> str:
        return f"Entry(type={self.type!r}, related_path={self.related_path!r})"

    # -------------------------------------------------------------------------
    # PREDICATES
    # -------------------------------------------------------------------------

    def is_dir(self) -> bool:
        return self.type == EntryType.DIRECTORY

    def is_link(self) -> bool:
        return self.type == EntryType.LINK

    def is_regular(self) -> bool:
        return self.type == EntryType.REGULAR

    @property
    def children(self) -> Dict[str, Entry]:
        """Read-only view of the child mapping (copy)."""
        return dict(self._children)

    # -------------------------------------------------------------------------
    # INSERTION API
    # -------------------------------------------------------------------------

    def add_file(self, name: str, related_path: str) -> Entry:
        """Add a new regular file child reading its bytes from related_path."""
        return self.add_entry(name, Entry(EntryType.REGULAR, related_path))

    def add_directory(self, name: str) -> Entry:
        """Add a new, empty directory child."""
        return self.add_entry(name, Entry(EntryType.DIRECTORY))

    def add_link(self, name: str, target: str) -> Entry:
        """Add a new symbolic link child pointing at target."""
        return self.add_entry(name, Entry(EntryType.LINK, target))

    def add_entry(self, name: str, entry: Entry) -> Entry:
        """
        Insert an arbitrary entry as child.

        The caller is responsible for using a valid type and matching
        related_path.

        Args:
            name: Single path segment, without separators.
            entry: Entry to insert.

        Returns:
            Entry: The inserted entry.

        Raises:
            EntryNotDirError: If this entry is not a directory.
            EntryExistsError: If the name is taken. The exception carries
                the pre-existing entry.
        """
        if not self.is_dir():
            raise EntryNotDirError(name)
        if not name or "/" in name or name in (".", ".."):
            raise ValueError(f"invalid entry name: {name!r}")
        existing = self._children.get(name)
        if existing is not None:
            raise EntryExistsError(name, existing)
        self._children[name] = entry
        return entry

    # -------------------------------------------------------------------------
    # LOOKUP API
    # -------------------------------------------------------------------------

    def get_entry(self, path: str) -> Entry:
        """
        Resolve a slash-separated path relative to this directory.

        Raises:
            EntryNotDirError: If a traversed segment is not a directory.
            EntryNotExistsError: If a segment is missing.
        """
        current = self
        walked: List[str] = []
        for segment in split_path(path):
            if not current.is_dir():
                raise EntryNotDirError("/".join(walked))
            child = current._children.get(segment)
            walked.append(segment)
            if child is None:
                raise EntryNotExistsError("/".join(walked))
            current = child
        return current

    def walk(self, base: str = "") -> Iterator[Tuple[str, Entry]]:
        """
        Depth-first traversal of all descendants.

        Parents are yielded before their children. Sibling order follows the
        child mapping and is not part of the contract.

        Yields:
            Tuple[str, Entry]: Full path (joined onto base) and entry.
        """
        for name, entry in list(self._children.items()):
            path = posixpath.join(base, name)
            yield path, entry
            if entry.is_dir():
                yield from entry.walk(path)


# -----------------------------------------------------------------------------
# PATH HELPERS
# -----------------------------------------------------------------------------

def split_path(path: str) -> List[str]:
    """Split a slash-separated path into segments, dropping empty and '.' parts."""
    return [p for p in path.split("/") if p and p != "."]


def new_directory() -> Entry:
    """Create a detached directory entry, usually a tree root."""
    return Entry(EntryType.DIRECTORY)
