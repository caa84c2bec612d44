from __future__ import annotations

"""
Domain Exception Hierarchy.

Every failure raised by the tree, the builder and the dependency resolver
derives from InitramfsError, so interface layers can catch build failures
with a single clause while still discriminating on the concrete type.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from pyinitramfs.domain.tree_models import Entry


class InitramfsError(Exception):
    """Base class for all pyinitramfs failures."""


# -----------------------------------------------------------------------------
# FILE TREE ERRORS
# -----------------------------------------------------------------------------

class EntryError(InitramfsError):
    """Base class for file tree invariant violations."""


class EntryNotDirError(EntryError):
    """A child operation was attempted on a non-directory entry."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        msg = "entry is not a directory"
        super().__init__(f"{name}: {msg}" if name else msg)


class EntryExistsError(EntryError):
    """
    An entry with the same name already exists in the directory.

    Attributes:
        name: The conflicting child name.
        entry: The pre-existing entry, left untouched.
    """

    def __init__(self, name: str, entry: "Entry") -> None:
        self.name = name
        self.entry = entry
        super().__init__(f"{name}: entry already exists")


class EntryNotExistsError(EntryError):
    """A path lookup did not find the requested entry."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        msg = "entry does not exist"
        super().__init__(f"{name}: {msg}" if name else msg)


# -----------------------------------------------------------------------------
# SERIALIZATION ERRORS
# -----------------------------------------------------------------------------

class UnknownFileTypeError(InitramfsError):
    """The tree holds an entry whose type tag is not a known EntryType."""

    def __init__(self, file_type: Any) -> None:
        self.file_type = file_type
        value = getattr(file_type, "value", file_type)
        super().__init__(f"unknown file type {value}")


class SourceOpenError(InitramfsError):
    """The bytes of a regular file could not be opened on the source filesystem."""

    def __init__(self, path: str, reason: Optional[BaseException] = None) -> None:
        self.path = path
        detail = _describe(reason) if reason is not None else "unknown error"
        super().__init__(f"cannot open {path}: {detail}")


class WriterError(InitramfsError):
    """The archive writer reported a failure for an entry."""

    def __init__(self, path: str, reason: BaseException) -> None:
        self.path = path
        super().__init__(f"cannot write {path}: {reason}")


# -----------------------------------------------------------------------------
# DEPENDENCY RESOLUTION ERRORS
# -----------------------------------------------------------------------------

class DiscoveryError(InitramfsError):
    """The dependency discovery collaborator failed for a binary."""

    def __init__(self, binary: str, detail: str) -> None:
        self.binary = binary
        super().__init__(f"cannot discover dependencies of {binary}: {detail}")


class LibraryNotFoundError(InitramfsError):
    """A required shared library could not be located."""

    def __init__(self, library: str, binary: str = "") -> None:
        self.library = library
        self.binary = binary
        suffix = f" (required by {binary})" if binary else ""
        super().__init__(f"shared library not found: {library}{suffix}")


# -----------------------------------------------------------------------------
# CONFIGURATION ERRORS
# -----------------------------------------------------------------------------

class ConfigError(InitramfsError):
    """A configuration file is missing or malformed."""


def _describe(exc: BaseException) -> str:
    """Render an OSError without its repeated filename."""
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror.lower()
    return str(exc)
