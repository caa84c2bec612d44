from __future__ import annotations

from .config import LoggingConfig
from .core import configure_logging, get_logger, is_configured, shutdown_logging

__all__ = [
    "LoggingConfig",
    "configure_logging",
    "get_logger",
    "is_configured",
    "shutdown_logging",
]
