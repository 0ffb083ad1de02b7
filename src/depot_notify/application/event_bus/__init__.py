"""Application – typed in-process event bus."""
from depot_notify.application.event_bus.bus import (
    DEFAULT_MAX_LISTENERS,
    WILDCARD,
    EmitReport,
    EventBus,
    EventSubscription,
    Handler,
    HandlerFailure,
)

__all__ = [
    "DEFAULT_MAX_LISTENERS",
    "WILDCARD",
    "EmitReport",
    "EventBus",
    "EventSubscription",
    "Handler",
    "HandlerFailure",
]
