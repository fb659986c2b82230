# astrotransform/core/logsink.py
from __future__ import annotations

from typing import Any, Callable
import logging

__all__ = ["LogSink", "null_sink", "resolve_sink"]

LogSink = Callable[[str, str], None]


def null_sink(operation: str, message: str) -> None:
    return None


def _logger_sink(logger: logging.Logger) -> LogSink:
    def _sink(operation: str, message: str) -> None:
        logger.debug("%s - %s", operation, message)
    return _sink


def resolve_sink(logger: Any) -> LogSink:
    """
    Turn whatever the caller supplied into a `(operation, message)` sink, once.

      None                         → no-op
      logging.Logger               → DEBUG records "operation - message"
      obj.log_message(op, msg)     → that bound method
      callable(op, msg)            → used as is
    """
    if logger is None:
        return null_sink
    if isinstance(logger, logging.Logger):
        return _logger_sink(logger)
    method = getattr(logger, "log_message", None)
    if callable(method):
        return method
    if callable(logger):
        return logger
    raise TypeError(f"Unsupported logger type: {type(logger).__name__}")
