import logging
from pathlib import Path

import pytest

from gmfind import logging_config
from gmfind.logging_config import LoggerSink, discard, emit


def test_discard_accepts_anything() -> None:
    assert discard("ignored") is None


def test_discard_sink_only_formats_for_debug_logger(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("gmfind.test.discard")
    logger.setLevel(logging.WARNING)
    emit(discard, logger, "%d", "not a number")
    with caplog.at_level(logging.DEBUG, logger="gmfind.test.discard"):
        emit(discard, logger, "offset 0x%X", 16)
    assert "offset 0x10" in caplog.text


def test_emit_formats_once_for_sink(messages: list) -> None:
    emit(messages.append, logging.getLogger("gmfind.test.emit"), "value 0x%X at %d", 255, 7)
    assert messages == ["value 0xFF at 7"]


def test_emit_without_listeners_is_silent() -> None:
    logger = logging.getLogger("gmfind.test.silent")
    logger.setLevel(logging.WARNING)
    emit(None, logger, "%d", "not a number")


def test_emit_mirrors_to_debug_logger(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("gmfind.test.debug")
    with caplog.at_level(logging.DEBUG, logger="gmfind.test.debug"):
        emit(None, logger, "Found %s", "antidec81")
    assert "Found antidec81" in caplog.text


def test_logger_sink(caplog: pytest.LogCaptureFixture) -> None:
    sink = LoggerSink(logging.getLogger("gmfind.test.sink"), level=logging.WARNING)
    with caplog.at_level(logging.WARNING, logger="gmfind.test.sink"):
        sink("hello")
    assert caplog.records[-1].getMessage() == "hello"


def test_debug_file_logger_replaces_previous_trace(tmp_path: Path) -> None:
    path = tmp_path / "trace.log"
    logger = logging_config.configure_debug_file_logger("gmfind.test.file", path)
    logger.debug("first")
    logger = logging_config.configure_debug_file_logger("gmfind.test.file", path)
    logger.debug("second")
    logging_config.close_debug_logger(logger)
    assert path.read_text(encoding="utf-8") == "second\n"
    assert not logger.handlers


def test_close_keeps_handlers_it_did_not_install(tmp_path: Path) -> None:
    logger = logging_config.configure_debug_file_logger("gmfind.test.mixed", tmp_path / "trace.log")
    other = logging.NullHandler()
    logger.addHandler(other)
    logging_config.close_debug_logger(logger)
    assert logger.handlers == [other]
    logger.removeHandler(other)
