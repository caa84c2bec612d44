from __future__ import annotations

"""
Integration tests for Logging Infrastructure.

Verifies the asynchronous QueueListener architecture, idempotency
of configuration, the archive-labelled build log and its rotation.
"""

import logging
from logging.handlers import QueueHandler
from pathlib import Path

import pytest

from pyinitramfs.infra.logging import (
    LoggingConfig,
    configure_logging,
    is_configured,
    shutdown_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Tear down the build logging before and after each test."""
    shutdown_logging()
    yield
    shutdown_logging()


def _queue_handlers():
    return [h for h in logging.getLogger().handlers if isinstance(h, QueueHandler)]


def test_logging_idempotency() -> None:
    """TC-01: Verify that multiple config calls do not duplicate handlers."""
    configure_logging(LoggingConfig())
    initial_handler_count = len(logging.getLogger().handlers)

    configure_logging(LoggingConfig(debug=True))

    assert len(logging.getLogger().handlers) == initial_handler_count, "Handlers were duplicated."
    assert logging.getLogger().level == logging.INFO


def test_force_reconfigures_level() -> None:
    """TC-02: force=True replaces the queue handler and applies the new level."""
    configure_logging(LoggingConfig())
    configure_logging(LoggingConfig(debug=True), force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert len(_queue_handlers()) == 1


def test_build_log_carries_archive_label(tmp_path: Path) -> None:
    """TC-03: Build log records name the archive being built."""
    log_file = tmp_path / "logs" / "build.log"
    cfg = LoggingConfig.for_build(debug=False, log_file=str(log_file), output="/out/initramfs.cpio")

    configure_logging(cfg)
    logging.getLogger("pyinitramfs.test").info("Archive written")
    logging.getLogger("pyinitramfs.test").debug("filtered out at INFO")
    shutdown_logging()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert "| /out/initramfs.cpio | INFO    | pyinitramfs.test | Archive written" in lines[0]


def test_dry_run_label() -> None:
    """TC-04: Dry runs are labelled instead of naming an archive that is never written."""
    cfg = LoggingConfig.for_build(debug=True, log_file=None, output="x.cpio", dry_run=True)
    assert cfg.archive == "dry-run"
    assert cfg.level == logging.DEBUG


def test_log_rotation(tmp_path: Path) -> None:
    """TC-05: Verify file rotation when size limit is exceeded."""
    log_file = tmp_path / "build.log"
    configure_logging(LoggingConfig(
        debug=True,
        log_file=str(log_file),
        max_bytes=100,
        backup_count=1,
    ))
    logger = logging.getLogger("test_rotate")

    for _ in range(10):
        logger.debug("This is a long log message to trigger rotation." * 5)
    shutdown_logging()

    assert log_file.exists()
    assert (tmp_path / "build.log.1").exists(), "Rotation backup file was not created."


def test_unwritable_build_log_keeps_console(tmp_path: Path, capsys) -> None:
    """TC-06: A build log that cannot be opened is reported and skipped."""
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    configure_logging(LoggingConfig(log_file=str(blocker / "build.log")))

    assert is_configured()
    assert "build log disabled" in capsys.readouterr().err


def test_shutdown_detaches_handlers() -> None:
    """TC-07: shutdown_logging removes the queue handler and allows reconfiguration."""
    configure_logging(LoggingConfig())
    shutdown_logging()

    assert not is_configured()
    assert _queue_handlers() == []

    configure_logging(LoggingConfig())
    assert len(_queue_handlers()) == 1
