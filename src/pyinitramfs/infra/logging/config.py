from __future__ import annotations

"""
Build Logging Settings.

One LoggingConfig describes the logging of a single CLI run: console
verbosity and the optional persistent build log, whose records are stamped
with the archive being built.
"""

import logging
from dataclasses import dataclass
from typing import Optional

CONSOLE_FORMAT = "%(levelname)s | %(message)s"
BUILD_LOG_FORMAT = "%(asctime)s | %(archive)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DRY_RUN_LABEL = "dry-run"


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        debug: Log DEBUG records (tree mutations, writer dispatch).
        log_file: Build log appended to across runs, rotated by size.
        archive: Label stamped into every build log record.
        max_bytes: Build log size that triggers rotation.
        backup_count: Rotated build logs to keep.
    """
    debug: bool = False
    log_file: Optional[str] = None
    archive: str = "-"

    max_bytes: int = 512 * 1024
    backup_count: int = 2

    @property
    def level(self) -> int:
        return logging.DEBUG if self.debug else logging.INFO

    @classmethod
    def for_build(cls, debug: bool, log_file: Optional[str], output: str,
                  dry_run: bool = False) -> LoggingConfig:
        """Settings for a CLI build of output (or a dry run)."""
        return cls(debug=debug, log_file=log_file,
                   archive=DRY_RUN_LABEL if dry_run else output)
