from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: logging bootstrap, configuration merging
(defaults, JSON file, command line overrides), the build itself and the
final report.
"""

import json
import sys
from typing import Any, Dict, List, Optional

from pyinitramfs.core.archive.listing import ListingWriter
from pyinitramfs.core.builder import InitRamfs
from pyinitramfs.core.deps.discovery import get_discoverer
from pyinitramfs.core.validator import validate_config
from pyinitramfs.domain.config import DEFAULT_SOURCE_ROOT, get_default_config, load_config
from pyinitramfs.domain.errors import ConfigError, InitramfsError
from pyinitramfs.infra.fs import LocalFS, normalize_path
from pyinitramfs.infra.logging import LoggingConfig, configure_logging, get_logger
from pyinitramfs.interface.cli import args as cli_args

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the main CLI application workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: Process exit code (0 success, 1 build failure, 2 usage error,
        130 interrupted).
    """
    # 1. Argument parsing phase
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    # 2. Resolve base configuration (defaults vs JSON file)
    try:
        base_conf = load_config(args.config_file) if args.config_file else get_default_config()
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    # 3. Merge and validate
    raw_conf = _merge_config(base_conf, cli_args.args_to_overrides(args))
    conf, warnings = validate_config(raw_conf, strict=False)

    # 4. Build logging, labelled with the archive being produced
    configure_logging(LoggingConfig.for_build(
        debug=args.debug,
        log_file=args.log_file,
        output=conf["output"],
        dry_run=conf["dry_run"],
    ))
    for w in warnings:
        logger.warning(f"Configuration constraint: {w}")

    if args.dump_config:
        print(json.dumps(conf, ensure_ascii=False, indent=2))
        return 0

    # 5. Pre-flight checks
    init_path = conf["init_path"]
    if not init_path:
        print("ERROR: no init binary given", file=sys.stderr)
        return 2

    source_fs = _make_source_fs(conf["source_root"])
    if not source_fs.exists(init_path):
        msg = f"init binary does not exist: {init_path}"
        logger.error(msg)
        print(f"ERROR: {msg}", file=sys.stderr)
        return 2

    # 6. Build phase
    try:
        count = _build(conf, source_fs)
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130
    except (InitramfsError, OSError) as e:
        logger.debug("Build failed", exc_info=True)
        logger.error(f"Build failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if not conf["dry_run"]:
        print(f"{conf['output']}: {count} entries")
    return 0

# -----------------------------------------------------------------------------
# BUILD ORCHESTRATION
# -----------------------------------------------------------------------------

def _build(conf: Dict[str, Any], source_fs: LocalFS) -> int:
    """Assemble the tree and serialize it. Returns the number of entries."""
    initramfs = InitRamfs(conf["init_path"], source_fs)
    initramfs.add_files(*conf["files"])

    if conf["resolve_libs"]:
        if conf["discoverer"] == "ldd" and source_fs.base is not None:
            logger.warning("ldd inspects the host system and ignores --source-root; "
                           "consider --discoverer elf")
        discoverer = get_discoverer(conf["discoverer"], source_fs)
        initramfs.resolve_linked_libs(conf["lib_search_path"], discoverer=discoverer)

    if conf["dry_run"]:
        return initramfs.write_to(ListingWriter())

    output = normalize_path(conf["output"], fallback=get_default_config()["output"])
    conf["output"] = output
    return initramfs.write_archive(output)


def _make_source_fs(source_root: str) -> LocalFS:
    """Bind the host root, or a sysroot below it."""
    if not source_root or source_root == DEFAULT_SOURCE_ROOT:
        return LocalFS()
    return LocalFS(normalize_path(source_root, fallback=DEFAULT_SOURCE_ROOT))

# -----------------------------------------------------------------------------
# CONFIGURATION MERGING
# -----------------------------------------------------------------------------

def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge of override values into the base configuration.

    Only known keys are merged; None values never override.
    """
    out = dict(base)
    keys_to_merge = [
        "init_path", "files", "resolve_libs", "lib_search_path",
        "discoverer", "source_root", "output", "dry_run",
    ]
    for k in keys_to_merge:
        if k in overrides and overrides[k] is not None:
            out[k] = overrides[k]
    return out

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
