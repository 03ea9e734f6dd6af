"""Diagnostic sinks and logging helpers for detection runs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

__all__ = [
    "DiagnosticSink",
    "LoggerSink",
    "TraceFileHandler",
    "discard",
    "emit",
    "configure_debug_file_logger",
    "close_debug_logger",
]


class DiagnosticSink(Protocol):
    """Receives formatted progress messages; never influences control flow."""

    def __call__(self, message: str) -> None:
        ...


def discard(message: str) -> None:
    """Sink that drops every message."""

    return None


class LoggerSink:
    """Forward diagnostic messages to a :class:`logging.Logger`."""

    def __init__(self, logger: logging.Logger, level: int = logging.INFO) -> None:
        self.logger = logger
        self.level = level

    def __call__(self, message: str) -> None:
        self.logger.log(self.level, "%s", message)


def emit(sink: Optional[DiagnosticSink], module_logger: logging.Logger, message: str, *args: object) -> None:
    """Format ``message`` once and hand it to the module logger and ``sink``.

    ``None`` stands for :func:`discard`. Formatting only happens when someone
    is listening.
    """

    if sink is None:
        sink = discard
    wants_debug = module_logger.isEnabledFor(logging.DEBUG)
    if sink is discard and not wants_debug:
        return
    text = message % args if args else message
    if wants_debug:
        module_logger.debug("%s", text)
    sink(text)


class TraceFileHandler(logging.FileHandler):
    """File handler owned by a detection run's diagnostic trace."""


def configure_debug_file_logger(
    name: str,
    path: Path,
    *,
    level: int = logging.DEBUG,
    formatter: logging.Formatter | None = None,
) -> logging.Logger:
    """Send the diagnostics logger ``name`` to a fresh trace file at ``path``.

    Each call truncates ``path`` and replaces the trace handler of an earlier
    call, so one run never leaves two traces open.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    close_debug_logger(logger)
    logger.setLevel(level)
    logger.propagate = False

    handler = TraceFileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(formatter or logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def close_debug_logger(logger: logging.Logger) -> None:
    """Flush and detach the trace file of ``logger``; other handlers stay."""

    for handler in [h for h in logger.handlers if isinstance(h, TraceFileHandler)]:
        logger.removeHandler(handler)
        handler.close()
