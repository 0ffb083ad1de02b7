"""Unit tests for the application event bus."""

from __future__ import annotations

import asyncio

import pytest

from depot_notify.application.event_bus import WILDCARD, EventBus
from depot_notify.kernel.errors import ListenerLimitError, ValidationError
from depot_notify.kernel.events import BookingRequested, EventType, InvoicePaid


def _booking() -> BookingRequested:
    return BookingRequested(booking_id="B1", warehouse_id="W1", warehouse_owner_id="U1")


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_on_returns_unique_ids(self) -> None:
        bus = EventBus()
        a = bus.on(EventType.BOOKING_REQUESTED, lambda p: None)
        b = bus.on(EventType.BOOKING_REQUESTED, lambda p: None)
        assert a != b
        assert bus.listener_count(EventType.BOOKING_REQUESTED) == 2

    def test_string_event_type_accepted(self) -> None:
        bus = EventBus()
        bus.on("invoice.paid", lambda p: None)
        assert bus.listener_count(EventType.INVOICE_PAID) == 1

    def test_unknown_event_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EventBus().on("invoice.shredded", lambda p: None)

    def test_max_listeners_enforced(self) -> None:
        bus = EventBus(max_listeners=2)
        bus.on(EventType.INVOICE_PAID, lambda p: None)
        bus.on(EventType.INVOICE_PAID, lambda p: None)
        with pytest.raises(ListenerLimitError):
            bus.on(EventType.INVOICE_PAID, lambda p: None)
        # other types have their own budget
        bus.on(EventType.BOOKING_REQUESTED, lambda p: None)

    def test_off_is_idempotent(self) -> None:
        bus = EventBus()
        sid = bus.on(EventType.INVOICE_PAID, lambda p: None)
        assert bus.off(EventType.INVOICE_PAID, sid) is True
        assert bus.off(EventType.INVOICE_PAID, sid) is False
        assert bus.listener_count(EventType.INVOICE_PAID) == 0

    def test_off_unknown_type_returns_false(self) -> None:
        assert EventBus().off(EventType.INVOICE_PAID, "nope") is False

    def test_event_names(self) -> None:
        bus = EventBus()
        bus.on(EventType.INVOICE_PAID, lambda p: None)
        bus.on(EventType.BOOKING_REQUESTED, lambda p: None)
        assert set(bus.event_names()) == {"invoice.paid", "booking.requested"}

    def test_remove_all_listeners(self) -> None:
        bus = EventBus()
        bus.on(EventType.INVOICE_PAID, lambda p: None)
        bus.on(EventType.BOOKING_REQUESTED, lambda p: None)
        bus.remove_all_listeners(EventType.INVOICE_PAID)
        assert bus.event_names() == ["booking.requested"]
        bus.remove_all_listeners()
        assert bus.event_names() == []


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestEmit:
    def test_higher_priority_initiated_first(self) -> None:
        async def _run() -> list[str]:
            bus = EventBus()
            started: list[str] = []

            async def low(_p: object) -> None:
                started.append("low")

            async def high(_p: object) -> None:
                started.append("high")
                await asyncio.sleep(0.01)

            bus.on(EventType.BOOKING_REQUESTED, low, priority=5)
            bus.on(EventType.BOOKING_REQUESTED, high, priority=10)
            await bus.emit(_booking())
            return started

        assert asyncio.run(_run()) == ["high", "low"]

    def test_equal_priority_keeps_registration_order(self) -> None:
        async def _run() -> list[int]:
            bus = EventBus()
            order: list[int] = []
            for i in range(4):
                bus.on(EventType.BOOKING_REQUESTED, lambda _p, i=i: order.append(i), priority=1)
            await bus.emit(_booking())
            return order

        assert asyncio.run(_run()) == [0, 1, 2, 3]

    def test_once_fires_exactly_once(self) -> None:
        async def _run() -> int:
            bus = EventBus()
            calls: list[object] = []
            bus.once(EventType.BOOKING_REQUESTED, calls.append)
            await bus.emit(_booking())
            await bus.emit(_booking())
            assert bus.listener_count(EventType.BOOKING_REQUESTED) == 0
            return len(calls)

        assert asyncio.run(_run()) == 1

    def test_once_removed_even_when_handler_fails(self) -> None:
        async def _run() -> None:
            bus = EventBus()

            def boom(_p: object) -> None:
                raise RuntimeError("boom")

            bus.once(EventType.BOOKING_REQUESTED, boom)
            report = await bus.emit(_booking())
            assert not report.ok
            assert bus.listener_count(EventType.BOOKING_REQUESTED) == 0

        asyncio.run(_run())

    def test_failing_handler_isolated(self) -> None:
        async def _run() -> None:
            bus = EventBus()
            seen: list[str] = []

            async def broken(_p: object) -> None:
                raise RuntimeError("integration down")

            async def healthy(p: BookingRequested) -> None:
                seen.append(p.booking_id)

            bus.on(EventType.BOOKING_REQUESTED, broken, priority=10)
            bus.on(EventType.BOOKING_REQUESTED, healthy)
            report = await bus.emit(_booking())
            assert seen == ["B1"]
            assert report.invoked == 2
            assert len(report.failures) == 1
            assert str(report.failures[0].error) == "integration down"

        asyncio.run(_run())

    def test_exact_match_only(self) -> None:
        async def _run() -> None:
            bus = EventBus()
            hits: list[object] = []
            bus.on(EventType.INVOICE_PAID, hits.append)
            bus.on(WILDCARD, hits.append)
            report = await bus.emit(_booking())
            assert report.invoked == 0
            assert hits == []

        asyncio.run(_run())

    def test_emit_parses_mappings(self) -> None:
        async def _run() -> None:
            bus = EventBus()
            got: list[object] = []
            bus.on(EventType.INVOICE_PAID, got.append)
            await bus.emit({"eventType": "invoice.paid", "invoiceId": "I1", "customerId": "C1"})
            assert isinstance(got[0], InvoicePaid)

        asyncio.run(_run())

    def test_malformed_mapping_raises_before_handlers(self) -> None:
        async def _run() -> None:
            bus = EventBus()
            got: list[object] = []
            bus.on(EventType.INVOICE_PAID, got.append)
            with pytest.raises(ValidationError):
                await bus.emit({"eventType": "invoice.paid"})
            assert got == []

        asyncio.run(_run())

    def test_broadcast_reaches_wildcard_only(self) -> None:
        async def _run() -> None:
            bus = EventBus()
            star: list[object] = []
            typed: list[object] = []
            bus.on(WILDCARD, star.append)
            bus.on(EventType.INVOICE_PAID, typed.append)
            report = await bus.broadcast("anything")
            assert star == ["anything"]
            assert typed == []
            assert report.event_type == WILDCARD

        asyncio.run(_run())
