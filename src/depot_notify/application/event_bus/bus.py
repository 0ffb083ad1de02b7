"""Application event bus – typed in-process publish/subscribe.

Subscribers register against one :class:`EventType`. For each type the
subscriptions are kept sorted by descending priority, stable on
registration order. :meth:`EventBus.emit` starts every matching handler in
that order and lets them run concurrently; a handler that raises is logged
and reported but never stops its siblings or the emitter.

The ``"*"`` key is reserved for the event log's own broadcast channel and
is only reached through :meth:`EventBus.broadcast`.

Example::

    bus = EventBus()
    bus.on(EventType.BOOKING_REQUESTED, audit, priority=100)
    bus.on(EventType.BOOKING_REQUESTED, notify_owner, priority=10)
    report = await bus.emit(BookingRequested(booking_id="B1", ...))
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import uuid
from typing import Any, Awaitable, Callable, Mapping

from depot_notify.kernel.errors import ListenerLimitError, ValidationError
from depot_notify.kernel.events import BasePayload, EventType, parse_payload
from depot_notify.observability.logging import get_logger

logger = get_logger(__name__)

#: Reserved key for subscribers that receive every event-log broadcast.
WILDCARD = "*"

#: A handler receives the emitted value; it may be sync or async.
Handler = Callable[[Any], Awaitable[None] | None]

DEFAULT_MAX_LISTENERS = 50


@dataclasses.dataclass(frozen=True)
class EventSubscription:
    id: str
    event_type: str
    handler: Handler
    priority: int = 0
    once: bool = False


@dataclasses.dataclass(frozen=True)
class HandlerFailure:
    subscription_id: str
    error: BaseException


@dataclasses.dataclass(frozen=True)
class EmitReport:
    """Outcome of one emit: how many handlers ran and which of them failed."""

    event_type: str
    invoked: int
    failures: tuple[HandlerFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures


class EventBus:
    """Priority-ordered publish/subscribe register.

    Parameters
    ----------
    max_listeners:
        Upper bound on subscriptions per event type; :meth:`on` raises
        :class:`ListenerLimitError` beyond it.
    """

    def __init__(self, max_listeners: int = DEFAULT_MAX_LISTENERS) -> None:
        self._max_listeners = max_listeners
        self._subscriptions: dict[str, list[EventSubscription]] = {}

    @property
    def max_listeners(self) -> int:
        return self._max_listeners

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def on(self, event_type: EventType | str, handler: Handler, priority: int = 0) -> str:
        """Register *handler* and return its subscription id."""
        return self._subscribe(event_type, handler, priority, once=False)

    def once(self, event_type: EventType | str, handler: Handler, priority: int = 0) -> str:
        """Register *handler* for the next matching event only."""
        return self._subscribe(event_type, handler, priority, once=True)

    def off(self, event_type: EventType | str, subscription_id: str) -> bool:
        """Remove a subscription; returns ``False`` when it was not registered."""
        subs = self._subscriptions.get(_key(event_type))
        if not subs:
            return False
        for index, sub in enumerate(subs):
            if sub.id == subscription_id:
                del subs[index]
                if not subs:
                    del self._subscriptions[sub.event_type]
                return True
        return False

    def remove_all_listeners(self, event_type: EventType | str | None = None) -> None:
        if event_type is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(_key(event_type), None)

    def _subscribe(
        self, event_type: EventType | str, handler: Handler, priority: int, *, once: bool
    ) -> str:
        key = _key(event_type)
        subs = self._subscriptions.setdefault(key, [])
        if len(subs) >= self._max_listeners:
            raise ListenerLimitError(key, self._max_listeners)
        sub = EventSubscription(
            id=str(uuid.uuid4()), event_type=key, handler=handler, priority=priority, once=once
        )
        position = len(subs)
        for index, existing in enumerate(subs):
            if existing.priority < priority:
                position = index
                break
        subs.insert(position, sub)
        return sub.id

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def listener_count(self, event_type: EventType | str) -> int:
        return len(self._subscriptions.get(_key(event_type), ()))

    def event_names(self) -> list[str]:
        return [key for key, subs in self._subscriptions.items() if subs]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def emit(self, payload: BasePayload | Mapping[str, Any]) -> EmitReport:
        """Deliver *payload* to the subscribers of its exact event type.

        A mapping is parsed first; a malformed one raises
        :class:`ValidationError` before any handler runs.
        """
        if not isinstance(payload, BasePayload):
            payload = parse_payload(payload)
        return await self._dispatch(payload.event_type.value, payload)

    async def broadcast(self, message: Any) -> EmitReport:
        """Deliver *message* to the ``"*"`` subscribers."""
        return await self._dispatch(WILDCARD, message)

    async def _dispatch(self, key: str, message: Any) -> EmitReport:
        subs = list(self._subscriptions.get(key, ()))
        for sub in subs:
            if sub.once:
                self.off(key, sub.id)
        if not subs:
            return EmitReport(event_type=key, invoked=0)

        tasks = [asyncio.create_task(_invoke(sub.handler, message)) for sub in subs]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        failures: list[HandlerFailure] = []
        for sub, outcome in zip(subs, outcomes):
            if isinstance(outcome, BaseException):
                failures.append(HandlerFailure(subscription_id=sub.id, error=outcome))
                logger.warning(
                    "event_bus.handler_failed",
                    event_type=key,
                    subscription_id=sub.id,
                    priority=sub.priority,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
        if failures:
            logger.error(
                "event_bus.emit_completed_with_failures",
                event_type=key,
                invoked=len(subs),
                failed=len(failures),
            )
        return EmitReport(event_type=key, invoked=len(subs), failures=tuple(failures))


async def _invoke(handler: Handler, message: Any) -> None:
    result = handler(message)
    if inspect.isawaitable(result):
        await result


def _key(event_type: EventType | str) -> str:
    if isinstance(event_type, EventType):
        return event_type.value
    if event_type == WILDCARD:
        return WILDCARD
    try:
        return EventType(event_type).value
    except ValueError as exc:
        raise ValidationError(
            f"Unknown event type {event_type!r}",
            errors=[{"field": "event_type", "error": "unknown"}],
        ) from exc


__all__ = [
    "DEFAULT_MAX_LISTENERS",
    "WILDCARD",
    "EmitReport",
    "EventBus",
    "EventSubscription",
    "Handler",
    "HandlerFailure",
]
