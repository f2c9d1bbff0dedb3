"""Structured logging configuration.

Stages log one JSON line per boundary call so the lifecycle of a
single upload can be followed across independent invocations.
structlog is preferred; standard logging is used when it is absent.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def get_logger(name: str, **context: object) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.
        **context: Fields bound to every event the logger emits.

    Returns:
        A structlog or stdlib logger with structured output.
    """
    try:
        import structlog
    except ImportError:
        return _get_standard_logger(name, context)

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ],
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(name).bind(**context)


def _get_standard_logger(name: str, context: dict[str, object]) -> Any:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return _StructuredStandardLogger(logger, context)


class _StructuredStandardLogger:
    """Stdlib logger adapter that accepts structured keyword fields."""

    def __init__(self, logger: logging.Logger, context: dict[str, object]) -> None:
        self._logger = logger
        self._context = dict(context)

    def bind(self, **fields: object) -> "_StructuredStandardLogger":
        return _StructuredStandardLogger(self._logger, {**self._context, **fields})

    def debug(self, event: str, **fields: object) -> None:
        self._logger.debug(self._format(event, fields))

    def info(self, event: str, **fields: object) -> None:
        self._logger.info(self._format(event, fields))

    def warning(self, event: str, **fields: object) -> None:
        self._logger.warning(self._format(event, fields))

    def error(self, event: str, **fields: object) -> None:
        self._logger.error(self._format(event, fields))

    def _format(self, event: str, fields: dict[str, object]) -> str:
        merged = {**self._context, **fields}
        if not merged:
            return event
        payload = {"event": event, **merged}
        return json.dumps(payload, sort_keys=True, default=str)
