from __future__ import annotations

"""
Shared Library Dependency Resolver.

Inserts the shared libraries required by the binaries of a file tree. Every
library is stored once under LIB_DIR; the directory the dynamic linker
expects it in is reconstructed as a link to LIB_DIR, with symlinked source
directories along the way preserved as links.

Two views of each library path are kept apart:
- the real path, every symlink resolved, is where the bytes are read from;
- the as-seen path, segment by segment, is what the tree has to reproduce.
"""

import errno
import logging
import os
import posixpath
from typing import Iterable, List, Optional

from pyinitramfs.core.deps.discovery import Discoverer, LddDiscoverer
from pyinitramfs.core.tree import Tree
from pyinitramfs.domain.errors import (
    EntryExistsError,
    EntryNotExistsError,
    LibraryNotFoundError,
)
from pyinitramfs.domain.tree_models import Entry, split_path
from pyinitramfs.infra.fs import MAX_SYMLINKS, SourceFS, resolve_path

logger = logging.getLogger(__name__)

LIB_DIR = "/lib"

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def resolve_linked_libs(
        tree: Tree,
        source_fs: SourceFS,
        search_root: str = "",
        binaries: Optional[Iterable[str]] = None,
        discoverer: Optional[Discoverer] = None,
) -> List[str]:
    """
    Discover and insert the shared libraries needed by binaries.

    Args:
        tree: File tree to populate.
        source_fs: Filesystem the libraries are read from.
        search_root: Library directory searched before the system defaults.
        binaries: Source paths to inspect. Defaults to the related path of
            every regular file in the tree.
        discoverer: Dependency discovery binding. Defaults to ldd.

    Returns:
        List[str]: Discovered library paths, as seen by the dynamic linker.

    Raises:
        DiscoveryError: If discovery fails for a binary.
        LibraryNotFoundError: If a library is missing on the source filesystem
            or its path cannot be resolved (symlink loops, unreadable links).
    """
    if discoverer is None:
        discoverer = LddDiscoverer()
    if binaries is None:
        binaries = [e.related_path for _, e in tree.walk() if e.is_regular()]

    libraries: List[str] = []
    for binary in binaries:
        for lib in discoverer.discover(binary, search_root):
            if lib not in libraries:
                libraries.append(lib)

    for lib in libraries:
        _add_library(tree, source_fs, lib)

    logger.info(f"Resolved {len(libraries)} shared libraries into {LIB_DIR}")
    return libraries


# -----------------------------------------------------------------------------
# INTERNAL HELPERS
# -----------------------------------------------------------------------------

def _add_library(tree: Tree, source_fs: SourceFS, lib: str) -> None:
    """Insert one library file and mirror the directory it is loaded from."""
    lib_dir, name = posixpath.split(lib)
    try:
        real = resolve_path(source_fs, lib)
        if not source_fs.exists(real):
            raise LibraryNotFoundError(lib)
        shadow_dir = _mirror_directory(tree, source_fs, lib_dir)
    except OSError as e:
        raise LibraryNotFoundError(lib) from e

    stored = posixpath.join(LIB_DIR, name)
    try:
        tree.add_file(stored, real)
    except EntryExistsError as e:
        if e.entry.related_path != real:
            logger.warning(f"{stored} already provided by {e.entry.related_path}, skipping {real}")

    # The loader directory already exists as a real directory in the tree,
    # so the library gets an individual link inside it.
    if shadow_dir is not None:
        try:
            tree.ln(stored, posixpath.join(shadow_dir, name))
        except EntryExistsError:
            logger.debug(f"{shadow_dir}/{name} already present, not linking")


def _mirror_directory(tree: Tree, source_fs: SourceFS, directory: str) -> Optional[str]:
    """
    Reproduce the as-seen library directory in the tree.

    Intermediate segments become directories, or links when the source
    segment is a symlink, in which case the walk continues at the resolved
    location. The final segment becomes a link to LIB_DIR.

    Returns:
        Optional[str]: Tree path of the final directory if it already exists
        as a real directory and could not be turned into a link.
    """
    absolute = directory.startswith("/")
    pending = split_path(directory)
    source_parts: List[str] = []
    tree_parts: List[str] = []
    restarts = 0

    while pending:
        segment = pending.pop(0)
        if segment == "..":
            if source_parts:
                source_parts.pop()
            if tree_parts:
                tree_parts.pop()
            continue

        source_parts.append(segment)
        tree_parts.append(segment)
        source_path = _join(absolute, source_parts)
        tree_path = "/" + "/".join(tree_parts)
        is_last = not pending

        if tree_path == LIB_DIR:
            if not is_last:
                tree.mkdir(tree_path)
            continue

        existing = _lookup(tree, tree_path)

        if existing is None and not is_last and source_fs.is_link(source_path):
            existing = tree.ln(source_fs.readlink(source_path), tree_path)

        if existing is not None and existing.is_link():
            if existing.related_path == LIB_DIR:
                if is_last:
                    return None
                tree_parts = split_path(LIB_DIR)
                continue
            restarts += 1
            if restarts > MAX_SYMLINKS:
                raise OSError(errno.ELOOP, os.strerror(errno.ELOOP), directory)
            resolved = resolve_path(source_fs, source_path)
            absolute = resolved.startswith("/")
            pending = split_path(resolved) + pending
            source_parts, tree_parts = [], []
            continue

        if is_last:
            if existing is None:
                tree.ln(LIB_DIR, tree_path)
                return None
            return tree_path if existing.is_dir() else None

        tree.mkdir(tree_path)

    return None


def _lookup(tree: Tree, path: str) -> Optional[Entry]:
    try:
        return tree.get_entry(path)
    except EntryNotExistsError:
        return None


def _join(absolute: bool, parts: List[str]) -> str:
    joined = "/".join(parts)
    return "/" + joined if absolute else joined
