from __future__ import annotations

"""
Build Logging Setup.

Records go through a QueueHandler on the root logger; a QueueListener
thread forwards them to stderr and, when requested, to a rotating build log.
Only the handler installed here is ever removed again, so handlers added by
the host application or by pytest survive reconfiguration.
"""

import atexit
import logging
import os
import queue
import sys
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from typing import List, Optional

from pyinitramfs.infra.logging.config import (
    BUILD_LOG_FORMAT,
    CONSOLE_FORMAT,
    DATE_FORMAT,
    LoggingConfig,
)

_queue_handler: Optional[QueueHandler] = None
_listener: Optional[QueueListener] = None
_atexit_registered = False


class ArchiveLabelFilter(logging.Filter):
    """Stamp the archive label onto every record as record.archive."""

    def __init__(self, archive: str) -> None:
        super().__init__()
        self.archive = archive

    def filter(self, record: logging.LogRecord) -> bool:
        record.archive = self.archive
        return True


def configure_logging(cfg: LoggingConfig, *, force: bool = False) -> logging.Logger:
    """
    Install the build logging on the root logger.

    A second call is a no-op unless force is set, in which case the
    previous setup is shut down first.

    Returns:
        logging.Logger: The root logger.
    """
    global _queue_handler, _listener, _atexit_registered

    root = logging.getLogger()
    if _queue_handler is not None:
        if not force:
            return root
        shutdown_logging()

    root.setLevel(cfg.level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    outputs: List[logging.Handler] = [console]

    build_log = _open_build_log(cfg)
    if build_log is not None:
        outputs.append(build_log)

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(-1)
    _queue_handler = QueueHandler(log_queue)
    _queue_handler.addFilter(ArchiveLabelFilter(cfg.archive))
    _listener = QueueListener(log_queue, *outputs, respect_handler_level=True)
    _listener.start()
    root.addHandler(_queue_handler)

    if not _atexit_registered:
        atexit.register(shutdown_logging)
        _atexit_registered = True

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Flush pending records, then detach and close everything installed."""
    global _queue_handler, _listener

    if _listener is not None:
        _listener.stop()
        for h in _listener.handlers:
            h.close()
        _listener = None

    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler.close()
        _queue_handler = None


def is_configured() -> bool:
    return _queue_handler is not None


def _open_build_log(cfg: LoggingConfig) -> Optional[RotatingFileHandler]:
    """Open the rotating build log, or warn on stderr and return None."""
    if not cfg.log_file:
        return None
    try:
        os.makedirs(os.path.dirname(os.path.abspath(cfg.log_file)), exist_ok=True)
        handler = RotatingFileHandler(
            cfg.log_file,
            maxBytes=cfg.max_bytes,
            backupCount=cfg.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"WARNING: build log disabled, cannot open '{cfg.log_file}': {e}\n")
        return None
    handler.setFormatter(logging.Formatter(BUILD_LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler
