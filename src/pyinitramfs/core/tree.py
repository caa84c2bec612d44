from __future__ import annotations

"""
Rooted File Tree.

Wraps a root directory entry with absolute-path helpers (mkdir -p, ln -s,
nested file insertion) used by the builder and the dependency resolver.
"""

import logging
import posixpath
from typing import Iterator, Tuple

from pyinitramfs.domain.errors import EntryExistsError, EntryNotDirError
from pyinitramfs.domain.tree_models import Entry, EntryType, new_directory, split_path

logger = logging.getLogger(__name__)


class Tree:
    """A file tree whose root is always a directory."""

    def __init__(self) -> None:
        self._root = new_directory()

    def get_root(self) -> Entry:
        return self._root

    def get_entry(self, path: str) -> Entry:
        """Resolve an absolute (or root-relative) path."""
        return self._root.get_entry(path)

    def walk(self) -> Iterator[Tuple[str, Entry]]:
        """Depth-first traversal yielding absolute paths, parents first."""
        return self._root.walk("/")

    # -------------------------------------------------------------------------
    # PATH-LEVEL MUTATIONS
    # -------------------------------------------------------------------------

    def mkdir(self, path: str) -> Entry:
        """
        Create a directory and all missing parents.

        Existing directories along the way are reused.

        Raises:
            EntryNotDirError: If a segment exists but is not a directory.
        """
        current = self._root
        walked = "/"
        for segment in split_path(path):
            walked = posixpath.join(walked, segment)
            try:
                current = current.add_directory(segment)
                logger.debug(f"Directory added: {walked}")
            except EntryExistsError as e:
                if not e.entry.is_dir():
                    raise EntryNotDirError(walked) from e
                current = e.entry
        return current

    def ln(self, target: str, path: str) -> Entry:
        """
        Create a symbolic link at path pointing at target.

        Parent directories are created as needed. An existing link with the
        same target is returned unchanged.

        Raises:
            EntryExistsError: If path is taken by anything else.
        """
        parent_path, name = _split_parent(path)
        parent = self.mkdir(parent_path)
        try:
            entry = parent.add_link(name, target)
        except EntryExistsError as e:
            if e.entry.is_link() and e.entry.related_path == target:
                return e.entry
            raise
        logger.debug(f"Link added: {path} -> {target}")
        return entry

    def add_file(self, path: str, related_path: str) -> Entry:
        """Create a regular file entry at path, creating parents as needed."""
        parent_path, name = _split_parent(path)
        parent = self.mkdir(parent_path)
        entry = parent.add_entry(name, Entry(EntryType.REGULAR, related_path))
        logger.debug(f"File added: {path} ({related_path})")
        return entry


def _split_parent(path: str) -> Tuple[str, str]:
    """Split a path into its parent directory and final segment."""
    segments = split_path(path)
    if not segments:
        raise ValueError(f"path has no final segment: {path!r}")
    return "/".join(segments[:-1]), segments[-1]
