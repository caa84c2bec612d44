from __future__ import annotations

"""
Initramfs Builder.

Owns the virtual file tree of the future root filesystem and serializes it
through an ArchiveWriter. File bytes are only read from the source
filesystem during serialization.
"""

import logging
import os
import posixpath
from typing import Iterable, List, Optional

from pyinitramfs.core.archive.cpio import CpioWriter
from pyinitramfs.core.archive.writer import ArchiveWriter
from pyinitramfs.core.deps.discovery import Discoverer
from pyinitramfs.core.deps.resolver import resolve_linked_libs
from pyinitramfs.core.tree import Tree
from pyinitramfs.domain.errors import (
    SourceOpenError,
    UnknownFileTypeError,
    WriterError,
)
from pyinitramfs.domain.tree_models import Entry, EntryType
from pyinitramfs.infra.fs import LocalFS, SourceFS, safe_mkdir

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# CONSTANTS
# -----------------------------------------------------------------------------

INIT_NAME = "init"
FILES_DIR = "files"
REGULAR_MODE = 0o755


class InitRamfs:
    """
    Archive builder seeded with the entry point the kernel executes.

    Attributes:
        source_fs: Filesystem regular file bytes are read from.
        tree: The virtual file tree, always containing /init.
    """

    def __init__(self, init_path: str, source_fs: Optional[SourceFS] = None) -> None:
        self.source_fs = source_fs if source_fs is not None else LocalFS()
        self.tree = Tree()
        self.tree.get_root().add_file(INIT_NAME, init_path)
        logger.debug(f"Entry point /{INIT_NAME} -> {init_path}")

    # -------------------------------------------------------------------------
    # CONTENT API
    # -------------------------------------------------------------------------

    def add_file(self, name: str, related_path: str) -> Entry:
        """
        Add a regular file to the files directory.

        Args:
            name: Name inside the files directory. The base name of
                related_path is used when empty.
            related_path: Source path of the file.

        Raises:
            EntryExistsError: If the name is already taken.
        """
        if not name:
            name = posixpath.basename(related_path)
        files_dir = self.tree.mkdir(FILES_DIR)
        entry = files_dir.add_file(name, related_path)
        logger.debug(f"File added: /{FILES_DIR}/{name} ({related_path})")
        return entry

    def add_files(self, *paths: str) -> None:
        """Add several files under their base names. Stops at the first error."""
        for path in paths:
            self.add_file("", path)

    def resolve_linked_libs(
            self,
            search_root: str = "",
            binaries: Optional[Iterable[str]] = None,
            discoverer: Optional[Discoverer] = None,
    ) -> List[str]:
        """Add the shared libraries required by the tree's binaries."""
        return resolve_linked_libs(
            self.tree,
            self.source_fs,
            search_root=search_root,
            binaries=binaries,
            discoverer=discoverer,
        )

    # -------------------------------------------------------------------------
    # SERIALIZATION API
    # -------------------------------------------------------------------------

    def write_to(self, writer: ArchiveWriter) -> int:
        """
        Emit every tree entry through writer, depth-first.

        Args:
            writer: Archive writer receiving one call per entry.

        Returns:
            int: Number of entries written.

        Raises:
            UnknownFileTypeError: If an entry carries an invalid type.
            SourceOpenError: If a regular file cannot be opened.
            WriterError: If the writer fails.
        """
        count = 0
        for path, entry in self.tree.walk():
            self._write_entry(writer, path, entry)
            count += 1
        return count

    def write_archive(self, output_path: str) -> int:
        """
        Serialize the tree into a newc cpio file.

        A partially written file is removed when serialization fails.

        Returns:
            int: Number of entries written.
        """
        parent = os.path.dirname(os.path.abspath(output_path))
        ok, err = safe_mkdir(parent)
        if not ok:
            raise OSError(f"cannot create output directory '{parent}': {err}")

        try:
            with open(output_path, "wb") as f, CpioWriter(f) as writer:
                count = self.write_to(writer)
        except BaseException:
            logger.debug(f"Removing incomplete archive {output_path}")
            try:
                os.remove(output_path)
            except OSError:
                pass
            raise

        logger.info(f"Archive written: {output_path} ({count} entries)")
        return count

    # -------------------------------------------------------------------------
    # PRIVATE HELPERS
    # -------------------------------------------------------------------------

    def _write_entry(self, writer: ArchiveWriter, path: str, entry: Entry) -> None:
        """Dispatch a single entry to the matching writer operation."""
        if entry.type == EntryType.DIRECTORY:
            logger.debug(f"Writing directory {path}")
            self._call_writer(path, writer.write_directory, path)
        elif entry.type == EntryType.LINK:
            logger.debug(f"Writing link {path} -> {entry.related_path}")
            self._call_writer(path, writer.write_link, path, entry.related_path)
        elif entry.type == EntryType.REGULAR:
            try:
                source = self.source_fs.open(entry.related_path)
            except OSError as e:
                raise SourceOpenError(entry.related_path, e) from e
            logger.debug(f"Writing file {path} from {entry.related_path}")
            with source:
                self._call_writer(path, writer.write_regular, path, source, REGULAR_MODE)
        else:
            raise UnknownFileTypeError(entry.type)

    @staticmethod
    def _call_writer(path: str, operation, *args) -> None:
        try:
            operation(*args)
        except Exception as e:
            raise WriterError(path, e) from e
