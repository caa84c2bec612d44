from __future__ import annotations

"""
Build Configuration Domain.

Dict-based description of one initramfs build, loadable from a JSON file so
that recurring builds do not have to repeat their command line.
"""

import json
import logging
import os
from typing import Any, Dict

from pyinitramfs.domain.errors import ConfigError

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants & Defaults
# -----------------------------------------------------------------------------
DEFAULT_OUTPUT = "initramfs.cpio"
DEFAULT_DISCOVERER = "ldd"
DEFAULT_SOURCE_ROOT = "/"


def get_default_config() -> Dict[str, Any]:
    """
    Generate the default build configuration.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # Content
        "init_path": "",
        "files": [],

        # Shared libraries
        "resolve_libs": False,
        "lib_search_path": "",
        "discoverer": DEFAULT_DISCOVERER,

        # IO
        "source_root": DEFAULT_SOURCE_ROOT,
        "output": DEFAULT_OUTPUT,
        "dry_run": False,
    }


def load_config(path: str) -> Dict[str, Any]:
    """
    Read a JSON build configuration.

    Args:
        path: Path to the JSON file.

    Returns:
        Dict[str, Any]: Raw configuration values (not validated).

    Raises:
        ConfigError: If the file is missing, unreadable or not a JSON object.
    """
    if not os.path.exists(path):
        raise ConfigError(f"configuration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read configuration '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"configuration '{path}' must contain a JSON object")

    logger.debug(f"Configuration loaded from {path}")
    return data
