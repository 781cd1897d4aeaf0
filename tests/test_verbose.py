"""Tests for verbose logging."""

import logging
from pathlib import Path

from codequest.verbose import setup_logger


def test_verbose_logger_creates_debug_log(tmp_path: Path):
    """Logger should always create debug.log file."""
    debug_file = tmp_path / "debug.log"
    logger = setup_logger(debug_file=debug_file, verbose=False)

    assert not logger.disabled
    assert logger.level == logging.DEBUG
    assert debug_file.exists()


def test_verbose_logger_writes_to_file(tmp_path: Path):
    """Logger should write messages to debug file."""
    debug_file = tmp_path / "nested" / "debug.log"
    logger = setup_logger(debug_file=debug_file, verbose=False)

    logger.debug("test message")

    content = debug_file.read_text()
    assert "test message" in content
    assert "[" in content  # timestamp


def test_verbose_mode_adds_stderr_handler(tmp_path: Path):
    logger = setup_logger(tmp_path / "debug.log", verbose=True)

    assert len(logger.handlers) == 2
    handler_types = [type(h).__name__ for h in logger.handlers]
    assert "StreamHandler" in handler_types
    assert "FileHandler" in handler_types


def test_non_verbose_mode_only_file_handler(tmp_path: Path):
    logger = setup_logger(tmp_path / "debug.log", verbose=False)

    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.FileHandler)


def test_reconfiguring_same_name_replaces_handlers(tmp_path: Path):
    first = setup_logger(tmp_path / "a.log", logger_name="codequest_reuse")
    second = setup_logger(tmp_path / "b.log", logger_name="codequest_reuse")

    assert first is second
    assert len(second.handlers) == 1

    second.debug("only in b")
    assert "only in b" not in (tmp_path / "a.log").read_text()
    assert "only in b" in (tmp_path / "b.log").read_text()


def test_unique_logger_names_are_isolated(tmp_path: Path):
    log1 = tmp_path / "sub1.log"
    log2 = tmp_path / "sub2.log"
    logger1 = setup_logger(log1, logger_name="codequest_heading_0")
    logger2 = setup_logger(log2, logger_name="codequest_heading_1")

    logger1.debug("from first")
    logger2.debug("from second")

    assert "from second" not in log1.read_text()
    assert "from first" not in log2.read_text()
