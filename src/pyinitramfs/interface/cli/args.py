from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line schema and translates the parsed namespace into
configuration overrides understood by the validator.
"""

import argparse
from typing import Any, Dict

from pyinitramfs import __version__
from pyinitramfs.core.deps.discovery import DISCOVERERS

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the pyinitramfs CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog="pyinitramfs",
        description="Build an initramfs cpio archive around a single init binary.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # --- Content ---
    p.add_argument(
        "init_path",
        nargs="?",
        default=None,
        help="Binary installed as /init, the process the kernel executes.",
    )
    p.add_argument(
        "-f", "--file",
        dest="files",
        action="append",
        default=None,
        metavar="PATH",
        help="Additional file placed in /files (repeatable).",
    )

    # --- Shared Libraries ---
    p.add_argument(
        "-l", "--libs",
        dest="resolve_libs",
        action="store_true",
        help="Add the shared libraries required by the binaries.",
    )
    p.add_argument(
        "--lib-search-path",
        dest="lib_search_path",
        default=None,
        help="Directory searched for shared libraries first.",
    )
    p.add_argument(
        "--discoverer",
        choices=DISCOVERERS,
        default=None,
        help="Dependency discovery method (default: ldd).",
    )

    # --- IO ---
    p.add_argument(
        "--source-root",
        dest="source_root",
        default=None,
        help="Root of the filesystem content is read from (default: /).",
    )
    p.add_argument(
        "-o", "--output",
        dest="output",
        default=None,
        help="Archive path (default: initramfs.cpio).",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="List the archive entries instead of writing them.",
    )

    # --- Configuration and Diagnostics ---
    p.add_argument(
        "-c", "--config",
        dest="config_file",
        default=None,
        help="JSON build configuration; command line values take precedence.",
    )
    p.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the effective configuration as JSON and exit.",
    )
    p.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Also write the build log to this file.",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Elevate logging verbosity to DEBUG.",
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into configuration overrides.

    Only values given on the command line are included, so that the
    configuration file keeps the rest.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.
    """
    overrides: Dict[str, Any] = {}

    for key in ("init_path", "files", "lib_search_path", "discoverer", "source_root", "output"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value

    if args.resolve_libs:
        overrides["resolve_libs"] = True
    if args.dry_run:
        overrides["dry_run"] = True

    return overrides
