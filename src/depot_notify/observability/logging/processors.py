"""Observability – get_logger helper and context binding."""
from __future__ import annotations

from typing import Any

import structlog


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bound_context(**values: Any) -> Any:
    """Context manager binding ``values`` onto every log line emitted inside it.

    Workers use it to tag all output produced while a single row is processed::

        with bound_context(intent_id=row.id, event_type=row.event_type):
            await dispatcher.send_notification(...)
    """
    return structlog.contextvars.bound_contextvars(**values)


__all__ = ["bound_context", "get_logger"]
