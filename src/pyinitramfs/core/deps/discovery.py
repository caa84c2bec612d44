from __future__ import annotations

"""
Shared Library Discovery.

Answers one question for the resolver: which shared libraries does a binary
need at run time. Two bindings are provided: asking the host dynamic linker
through ldd, and reading the dynamic section with pyelftools, which also
works for foreign-architecture sysroots.
"""

import abc
import collections
import fnmatch
import logging
import os
import posixpath
import re
import subprocess
from typing import Deque, Dict, Iterator, List, Optional, Set, Tuple

from elftools.common.exceptions import ELFError
from elftools.elf.dynamic import DynamicSection
from elftools.elf.elffile import ELFFile

from pyinitramfs.domain.errors import DiscoveryError, LibraryNotFoundError
from pyinitramfs.infra.fs import LocalFS, SourceFS

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# CONSTANTS
# -----------------------------------------------------------------------------

DEFAULT_LIB_DIRS: Tuple[str, ...] = ("/lib64", "/usr/lib64", "/lib", "/usr/lib")
LD_SO_CONF = "/etc/ld.so.conf"

_LDD_NOT_DYNAMIC = ("not a dynamic executable", "statically linked")
_LDD_NOT_FOUND_RX = re.compile(r"^(\S+)\s+=>\s+not found")
_LDD_MAPPED_RX = re.compile(r"^(\S+)\s+=>\s+(\S+)\s+\(0x[0-9a-fA-F]+\)")
_LDD_DIRECT_RX = re.compile(r"^(\S+)\s+\(0x[0-9a-fA-F]+\)")


# -----------------------------------------------------------------------------
# DISCOVERY CONTRACT
# -----------------------------------------------------------------------------

class Discoverer(abc.ABC):
    """Dependency discovery collaborator."""

    name = ""

    @abc.abstractmethod
    def discover(self, binary: str, search_root: str = "") -> List[str]:
        """
        List the shared libraries binary needs, transitively.

        Args:
            binary: Path of the binary on the source filesystem.
            search_root: Directory searched for libraries before the
                system defaults.

        Returns:
            List[str]: Library paths as the dynamic linker sees them.

        Raises:
            DiscoveryError: If the discovery mechanism fails.
            LibraryNotFoundError: If a needed library cannot be located.
        """


# -----------------------------------------------------------------------------
# LDD BINDING
# -----------------------------------------------------------------------------

class LddDiscoverer(Discoverer):
    """Query the host dynamic linker. Only meaningful for the host filesystem."""

    name = "ldd"

    def __init__(self, command: str = "ldd") -> None:
        self.command = command

    def discover(self, binary: str, search_root: str = "") -> List[str]:
        env = dict(os.environ)
        if search_root:
            env["LD_LIBRARY_PATH"] = search_root

        cmd = [self.command, binary]
        logger.debug(f"Running {' '.join(cmd)} (LD_LIBRARY_PATH={search_root or '-'})")
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, env=env, check=False)
        except OSError as e:
            raise DiscoveryError(binary, str(e)) from e

        combined = f"{proc.stdout}\n{proc.stderr}"
        if any(marker in combined for marker in _LDD_NOT_DYNAMIC):
            logger.debug(f"{binary} is not dynamically linked")
            return []

        if proc.returncode != 0:
            detail = proc.stderr.strip() or f"exit status {proc.returncode}"
            raise DiscoveryError(binary, detail)

        return parse_ldd_output(proc.stdout, binary)


def parse_ldd_output(output: str, binary: str = "") -> List[str]:
    """
    Extract library paths from ldd output.

    Entries without a path (the vDSO) are skipped.

    Raises:
        LibraryNotFoundError: On the first "not found" entry.
    """
    libs: List[str] = []
    for raw in output.splitlines():
        line = raw.strip()
        if not line:
            continue

        m = _LDD_NOT_FOUND_RX.match(line)
        if m:
            raise LibraryNotFoundError(m.group(1), binary)

        m = _LDD_MAPPED_RX.match(line)
        path = m.group(2) if m else None
        if path is None:
            m = _LDD_DIRECT_RX.match(line)
            path = m.group(1) if m else None

        if path and "/" in path and path not in libs:
            libs.append(path)
    return libs


# -----------------------------------------------------------------------------
# ELF BINDING
# -----------------------------------------------------------------------------

class ElfDiscoverer(Discoverer):
    """
    Walk DT_NEEDED entries on the source filesystem.

    Search order per binary: DT_RPATH, search_root, DT_RUNPATH, the
    directories listed in the source filesystem's ld.so.conf, then
    default_dirs. The program interpreter is reported as a dependency.
    """

    name = "elf"

    def __init__(self, source_fs: Optional[SourceFS] = None,
                 default_dirs: Tuple[str, ...] = DEFAULT_LIB_DIRS,
                 ld_so_conf: str = LD_SO_CONF) -> None:
        self.source_fs = source_fs if source_fs is not None else LocalFS()
        self.default_dirs = default_dirs
        self.ld_so_conf = ld_so_conf
        self._system_dirs: Optional[List[str]] = None

    @property
    def system_dirs(self) -> List[str]:
        """ld.so.conf directories followed by default_dirs, read once."""
        if self._system_dirs is None:
            dirs: List[str] = []
            for d in list(parse_ld_so_conf(self.source_fs, self.ld_so_conf)) + list(self.default_dirs):
                if d not in dirs:
                    dirs.append(d)
            logger.debug(f"Library search directories: {':'.join(dirs)}")
            self._system_dirs = dirs
        return self._system_dirs

    def discover(self, binary: str, search_root: str = "") -> List[str]:
        libs: List[str] = []
        resolved_names: Dict[Tuple[str, Tuple[str, ...]], str] = {}
        queue: Deque[str] = collections.deque([binary])
        visited = {binary}

        while queue:
            current = queue.popleft()
            info = self._read_dynamic(current)
            if info is None:
                continue
            interp, needed, rpath, runpath = info

            found: List[str] = []
            if interp:
                if not self.source_fs.exists(interp):
                    raise LibraryNotFoundError(interp, current)
                found.append(interp)

            origin = posixpath.dirname(current)
            dirs = tuple(
                _expand_origin(rpath, origin)
                + ([search_root] if search_root else [])
                + _expand_origin(runpath, origin)
                + self.system_dirs
            )
            for name in needed:
                key = (name, dirs)
                if key not in resolved_names:
                    resolved_names[key] = self._locate(name, dirs, current)
                found.append(resolved_names[key])

            for path in found:
                if path not in libs:
                    libs.append(path)
                if path not in visited:
                    visited.add(path)
                    queue.append(path)

        return libs

    def _locate(self, name: str, dirs: Tuple[str, ...], binary: str) -> str:
        if "/" in name:
            if self.source_fs.exists(name):
                return name
            raise LibraryNotFoundError(name, binary)
        for d in dirs:
            candidate = posixpath.join(d, name)
            if self.source_fs.exists(candidate):
                return candidate
        raise LibraryNotFoundError(name, binary)

    def _read_dynamic(self, path: str) -> Optional[Tuple[str, List[str], str, str]]:
        """Return (interpreter, needed, rpath, runpath), or None for non-ELF files."""
        try:
            with self.source_fs.open(path) as f:
                try:
                    elf = ELFFile(f)
                    interp = ""
                    for segment in elf.iter_segments():
                        if segment.header.p_type == "PT_INTERP":
                            interp = segment.get_interp_name()

                    needed: List[str] = []
                    rpath = runpath = ""
                    for section in elf.iter_sections():
                        if not isinstance(section, DynamicSection):
                            continue
                        for tag in section.iter_tags():
                            if tag.entry.d_tag == "DT_NEEDED":
                                needed.append(tag.needed)
                            elif tag.entry.d_tag == "DT_RPATH":
                                rpath = tag.rpath
                            elif tag.entry.d_tag == "DT_RUNPATH":
                                runpath = tag.runpath
                except ELFError:
                    logger.debug(f"{path} is not an ELF file")
                    return None
        except OSError as e:
            raise DiscoveryError(path, str(e)) from e

        return interp, needed, rpath, runpath


# -----------------------------------------------------------------------------
# LD.SO.CONF
# -----------------------------------------------------------------------------

def parse_ld_so_conf(source_fs: SourceFS, conf_path: str = LD_SO_CONF,
                     _seen: Optional[Set[str]] = None) -> Iterator[str]:
    """
    Yield the library directories listed in a dynamic linker config file.

    Comments and hwcap lines are skipped; include statements are followed,
    with wildcards allowed in the last path segment. A missing file yields
    nothing.

    Args:
        source_fs: Filesystem the config files are read from.
        conf_path: Config file to parse.

    Yields:
        str: Library directories in file order.
    """
    seen = _seen if _seen is not None else set()
    if conf_path in seen or not source_fs.exists(conf_path):
        return
    seen.add(conf_path)

    logger.debug(f"Parsing {conf_path}")
    try:
        with source_fs.open(conf_path) as f:
            text = f.read().decode("utf-8", errors="replace")
    except OSError as e:
        raise DiscoveryError(conf_path, str(e)) from e

    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or line.startswith("hwcap "):
            continue
        if line.startswith("include "):
            for pattern in line[len("include "):].split():
                if not pattern.startswith("/"):
                    pattern = posixpath.join(posixpath.dirname(conf_path), pattern)
                for included in _glob(source_fs, pattern):
                    yield from parse_ld_so_conf(source_fs, included, seen)
        else:
            yield line


def _glob(source_fs: SourceFS, pattern: str) -> List[str]:
    """Expand wildcards in the last segment of pattern, sorted."""
    directory, name = posixpath.split(pattern)
    if not any(c in name for c in "*?["):
        return [pattern]
    try:
        names = source_fs.listdir(directory)
    except OSError:
        return []
    return [posixpath.join(directory, n) for n in sorted(fnmatch.filter(names, name))]


# -----------------------------------------------------------------------------
# FACTORY
# -----------------------------------------------------------------------------

DISCOVERERS = ("ldd", "elf")


def get_discoverer(name: str, source_fs: Optional[SourceFS] = None) -> Discoverer:
    """
    Instantiate a discovery binding by name.

    Raises:
        ValueError: For unknown names.
    """
    if name == "ldd":
        return LddDiscoverer()
    if name == "elf":
        return ElfDiscoverer(source_fs)
    raise ValueError(f"unknown discoverer '{name}', expected one of {', '.join(DISCOVERERS)}")


def _expand_origin(paths: str, origin: str) -> List[str]:
    """Split a colon-separated run path and substitute $ORIGIN."""
    out: List[str] = []
    for p in paths.split(":"):
        if not p:
            continue
        p = p.replace("${ORIGIN}", origin).replace("$ORIGIN", origin)
        out.append(p or ".")
    return out
