"""Observability – structured logging helpers."""
from depot_notify.observability.logging.factory import configure_logging
from depot_notify.observability.logging.filters import DEFAULT_SENSITIVE_FIELDS, SensitiveFieldsFilter
from depot_notify.observability.logging.processors import bound_context, get_logger

__all__ = [
    "DEFAULT_SENSITIVE_FIELDS",
    "SensitiveFieldsFilter",
    "bound_context",
    "configure_logging",
    "get_logger",
]
