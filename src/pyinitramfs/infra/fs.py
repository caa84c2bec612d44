from __future__ import annotations

"""
Source FileSystem Infrastructure Layer.

Provides the read-only filesystem abstraction the builder reads file bytes
and directory-layout metadata from, its default binding to the host
filesystem, and path utilities shared by the interface layers.
"""

import abc
import errno
import os
import stat
from typing import BinaryIO, List, Optional, Tuple

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

# Same bound as the Linux kernel's MAXSYMLINKS
MAX_SYMLINKS = 40

# -----------------------------------------------------------------------------
# SOURCE FILESYSTEM CONTRACT
# -----------------------------------------------------------------------------

class SourceFS(abc.ABC):
    """
    Read-only view of the filesystem the archive content comes from.

    Paths are slash-separated. Absolute paths are rooted at the filesystem
    root, relative paths are interpreted by the implementation.
    """

    @abc.abstractmethod
    def open(self, path: str) -> BinaryIO:
        """Open a file for binary reading, following symlinks."""

    @abc.abstractmethod
    def lstat(self, path: str) -> os.stat_result:
        """Stat a path without following a final symlink."""

    @abc.abstractmethod
    def readlink(self, path: str) -> str:
        """Return the verbatim target of a symlink."""

    @abc.abstractmethod
    def listdir(self, path: str) -> List[str]:
        """List the names in a directory, following symlinks."""

    def exists(self, path: str) -> bool:
        """Return True if path exists after following all symlinks."""
        try:
            real = resolve_path(self, path)
            self.lstat(real)
        except OSError:
            return False
        return True

    def is_link(self, path: str) -> bool:
        try:
            return stat.S_ISLNK(self.lstat(path).st_mode)
        except OSError:
            return False

    def is_dir(self, path: str) -> bool:
        try:
            real = resolve_path(self, path)
            return stat.S_ISDIR(self.lstat(real).st_mode)
        except OSError:
            return False


class LocalFS(SourceFS):
    """
    Host filesystem binding.

    Without a base, paths are used as given (relative ones against the
    current working directory). With a base, every path is confined below
    it and absolute symlink targets are re-rooted at the base, which makes
    a sysroot or a test directory behave like a root filesystem.
    """

    def __init__(self, base: Optional[str] = None) -> None:
        self.base = os.path.abspath(base) if base else None

    def __repr__(self) -> str:
        return f"LocalFS(base={self.base!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LocalFS) and other.base == self.base

    def __hash__(self) -> int:
        return hash((LocalFS, self.base))

    def host_path(self, path: str) -> str:
        """Translate a source path into a path on the host."""
        if self.base is None:
            return path
        return os.path.join(self.base, path.lstrip("/"))

    def open(self, path: str) -> BinaryIO:
        if self.base is not None:
            path = resolve_path(self, path)
        return open(self.host_path(path), "rb")

    def lstat(self, path: str) -> os.stat_result:
        return os.lstat(self.host_path(path))

    def readlink(self, path: str) -> str:
        return os.readlink(self.host_path(path))

    def listdir(self, path: str) -> List[str]:
        if self.base is not None:
            path = resolve_path(self, path)
        return os.listdir(self.host_path(path))


# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def resolve_path(fs: SourceFS, path: str) -> str:
    """
    Follow every symlink in path on the given source filesystem.

    Works component by component so that absolute link targets are
    interpreted against the source root rather than the host root. Relative
    inputs stay relative; missing components are kept as they are.

    Args:
        fs: Source filesystem to inspect.
        path: Path to resolve.

    Returns:
        str: Normalized path free of symlinks.

    Raises:
        OSError: ELOOP if more than MAX_SYMLINKS links are traversed.
    """
    absolute = path.startswith("/")
    pending = list(reversed(_segments(path)))
    resolved: List[str] = []
    followed = 0

    while pending:
        segment = pending.pop()
        if segment == "..":
            if resolved and resolved[-1] != "..":
                resolved.pop()
            elif not absolute:
                resolved.append("..")
            continue

        candidate = _join(absolute, resolved + [segment])
        if not fs.is_link(candidate):
            resolved.append(segment)
            continue

        followed += 1
        if followed > MAX_SYMLINKS:
            raise OSError(errno.ELOOP, os.strerror(errno.ELOOP), path)

        target = fs.readlink(candidate)
        if target.startswith("/"):
            absolute = True
            resolved = []
        pending.extend(reversed(_segments(target)))

    return _join(absolute, resolved)


def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a host path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR) and user home shortcuts
    (~/). Reverts to fallback if the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is empty.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)


def safe_mkdir(path: str) -> Tuple[bool, Optional[str]]:
    """
    Attempt to recursively create a directory structure safely.

    Args:
        path: Target directory path.

    Returns:
        Tuple[bool, Optional[str]]: (Success flag, Error message if applicable).
    """
    try:
        os.makedirs(path, exist_ok=True)
        return True, None
    except OSError as e:
        return False, str(e)


# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _segments(path: str) -> List[str]:
    return [p for p in path.split("/") if p and p != "."]


def _join(absolute: bool, segments: List[str]) -> str:
    joined = "/".join(segments)
    if absolute:
        return "/" + joined
    return joined or "."
