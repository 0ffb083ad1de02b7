"""Unit tests for the change-feed views."""

from __future__ import annotations

import asyncio

from depot_notify.application.notifications import InMemoryNotificationRepository
from depot_notify.application.realtime import (
    ChangeKind,
    InMemoryChangeFeed,
    InMemoryTableReader,
    RealtimeNotifications,
    RealtimeOccupancy,
    RealtimeTasks,
    SubscriptionStatus,
)
from depot_notify.kernel.errors import PersistenceError


def _note(id_: str, created_at: str, *, user_id: str = "U1", read: bool = False) -> dict:
    return {
        "id": id_,
        "user_id": user_id,
        "type": "booking",
        "channel": "email",
        "title": f"title {id_}",
        "message": "m",
        "read": read,
        "created_at": created_at,
    }


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class TestRealtimeTasks:
    def test_initial_read_newest_first_and_filtered(self) -> None:
        async def _run() -> None:
            reader = InMemoryTableReader(
                {
                    "tasks": [
                        {"id": "T1", "assigned_to": "W1", "created_at": "2025-01-01T00:00:00"},
                        {"id": "T2", "assigned_to": "W2", "created_at": "2025-01-02T00:00:00"},
                        {"id": "T3", "assigned_to": "W1", "created_at": "2025-01-03T00:00:00"},
                    ]
                }
            )
            async with RealtimeTasks(InMemoryChangeFeed(), reader, "W1") as view:
                assert [t["id"] for t in view.tasks] == ["T3", "T1"]
                assert view.connected is True

        asyncio.run(_run())

    def test_insert_update_delete_applied_in_order(self) -> None:
        async def _run() -> None:
            feed = InMemoryChangeFeed()
            reader = InMemoryTableReader({"tasks": [{"id": "T1", "assigned_to": "W1", "status": "open"}]})
            view = RealtimeTasks(feed, reader, "W1")
            await view.start()

            await feed.push("tasks", "INSERT", new={"id": "T2", "assigned_to": "W1", "status": "open"})
            await feed.push("tasks", ChangeKind.UPDATE, new={"id": "T1", "assigned_to": "W1", "status": "done"})
            assert [(t["id"], t["status"]) for t in view.tasks] == [("T2", "open"), ("T1", "done")]

            await feed.push("tasks", ChangeKind.DELETE, old={"id": "T2", "assigned_to": "W1"})
            assert [t["id"] for t in view.tasks] == ["T1"]

            delivered = await feed.push("tasks", "INSERT", new={"id": "T9", "assigned_to": "W2"})
            assert delivered == 0
            assert [t["id"] for t in view.tasks] == ["T1"]

        asyncio.run(_run())

    def test_connected_only_after_ack(self) -> None:
        async def _run() -> None:
            feed = InMemoryChangeFeed(auto_ack=False)
            view = RealtimeTasks(feed, InMemoryTableReader())
            await view.start()
            assert view.connected is False
            feed.set_status(SubscriptionStatus.SUBSCRIBED)
            assert view.connected is True
            feed.set_status(SubscriptionStatus.CHANNEL_ERROR)
            assert view.connected is False

        asyncio.run(_run())

    def test_close_releases_subscription(self) -> None:
        async def _run() -> None:
            feed = InMemoryChangeFeed()
            view = RealtimeTasks(feed, InMemoryTableReader())
            await view.start()
            assert feed.active("tasks") == 1
            await view.close()
            assert feed.active() == 0
            assert view.connected is False

        asyncio.run(_run())

    def test_initial_fetch_failure_is_kept(self) -> None:
        async def _run() -> None:
            feed = InMemoryChangeFeed()
            reader = InMemoryTableReader()
            reader.fail_with = PersistenceError("tasks")
            view = RealtimeTasks(feed, reader)
            await view.start()
            assert isinstance(view.error, PersistenceError)
            assert view.connected is False
            assert feed.active() == 0

        asyncio.run(_run())


class TestRealtimeNotifications:
    def test_unread_count_follows_rows(self) -> None:
        async def _run() -> None:
            feed = InMemoryChangeFeed()
            reader = InMemoryTableReader(
                {
                    "notifications": [
                        _note("N1", "2025-01-01T00:00:00"),
                        _note("N2", "2025-01-02T00:00:00", read=True),
                        _note("N3", "2025-01-03T00:00:00", user_id="U2"),
                    ]
                }
            )
            view = RealtimeNotifications(feed, reader, "U1")
            await view.start()
            assert [n["id"] for n in view.notifications] == ["N2", "N1"]
            assert view.unread_count == 1

            await feed.push("notifications", "INSERT", new=_note("N4", "2025-01-04T00:00:00"))
            assert view.unread_count == 2
            await feed.push("notifications", "UPDATE", new=_note("N4", "2025-01-04T00:00:00", read=True))
            assert view.unread_count == 1
            await feed.push("notifications", "DELETE", old={"id": "N1", "user_id": "U1"})
            assert view.unread_count == 0

        asyncio.run(_run())

    def test_initial_read_capped_at_fifty(self) -> None:
        async def _run() -> None:
            rows = [_note(f"N{i:03d}", f"2025-01-01T00:{i // 60:02d}:{i % 60:02d}") for i in range(60)]
            view = RealtimeNotifications(InMemoryChangeFeed(), InMemoryTableReader({"notifications": rows}), "U1")
            await view.start()
            assert len(view.notifications) == 50
            assert view.notifications[0]["id"] == "N059"

        asyncio.run(_run())

    def test_mark_as_read_writes_through_repository(self) -> None:
        async def _run() -> None:
            repo = InMemoryNotificationRepository()
            view = RealtimeNotifications(InMemoryChangeFeed(), InMemoryTableReader(), "U1", repository=repo)
            await view.start()
            assert await view.mark_as_read("missing") is False
            assert await view.mark_all_as_read() == 0

        asyncio.run(_run())

    def test_write_failure_sets_error(self) -> None:
        class BrokenRepository(InMemoryNotificationRepository):
            async def mark_all_as_read(self, user_id: str) -> int:
                raise PersistenceError("notifications")

        async def _run() -> None:
            view = RealtimeNotifications(
                InMemoryChangeFeed(), InMemoryTableReader(), "U1", repository=BrokenRepository()
            )
            await view.start()
            assert await view.mark_all_as_read() == 0
            assert isinstance(view.error, PersistenceError)

        asyncio.run(_run())

    def test_without_repository(self) -> None:
        async def _run() -> None:
            view = RealtimeNotifications(InMemoryChangeFeed(), InMemoryTableReader(), "U1")
            assert await view.mark_as_read("N1") is False

        asyncio.run(_run())


# ---------------------------------------------------------------------------
# Occupancy
# ---------------------------------------------------------------------------


def _warehouse_tables() -> dict[str, list[dict]]:
    return {
        "warehouses": [{"id": "W1"}],
        "warehouse_floors": [
            {"id": "F2", "warehouse_id": "W1", "floor_number": 2},
            {"id": "F1", "warehouse_id": "W1", "floor_number": 1},
        ],
        "warehouse_halls": [
            {"id": "H1", "floor_id": "F1", "hall_name": "B", "sq_ft": 1000, "occupied_sq_ft": 500, "available_sq_ft": 500},
            {"id": "H2", "floor_id": "F1", "hall_name": "A", "sq_ft": 3000, "occupied_sq_ft": 1000, "available_sq_ft": 2000},
            {"id": "H3", "floor_id": "F2", "hall_name": "C", "sq_ft": 0, "occupied_sq_ft": 0, "available_sq_ft": 0},
        ],
    }


class TestRealtimeOccupancy:
    def test_rollup(self) -> None:
        async def _run() -> None:
            async with RealtimeOccupancy(InMemoryChangeFeed(), InMemoryTableReader(_warehouse_tables()), "W1") as view:
                u = view.utilization
                assert u.total_sq_ft == 4000
                assert u.occupied_sq_ft == 1500
                assert u.available_sq_ft == 2500
                assert u.utilization_percent == 38  # 37.5 rounds half up
                assert [f.floor_number for f in u.floors] == [1, 2]
                floor1 = u.floors[0]
                assert [h.hall_name for h in floor1.halls] == ["A", "B"]
                assert [h.utilization_percent for h in floor1.halls] == [33, 50]
                assert u.floors[1].utilization_percent == 0
                assert view.connected is True

        asyncio.run(_run())

    def test_recomputed_on_hall_change(self) -> None:
        async def _run() -> None:
            feed = InMemoryChangeFeed()
            reader = InMemoryTableReader(_warehouse_tables())
            view = RealtimeOccupancy(feed, reader, "W1")
            await view.start()
            reader.tables["warehouse_halls"][0]["occupied_sq_ft"] = 1000
            await feed.push("warehouse_halls", "UPDATE", new={"id": "H1"})
            assert view.utilization.occupied_sq_ft == 2000
            assert view.utilization.utilization_percent == 50

        asyncio.run(_run())

    def test_connected_requires_every_table(self) -> None:
        async def _run() -> None:
            feed = InMemoryChangeFeed(auto_ack=False)
            view = RealtimeOccupancy(feed, InMemoryTableReader(_warehouse_tables()))
            await view.start()
            assert view.connected is False
            feed.set_status(SubscriptionStatus.SUBSCRIBED, table="warehouse_halls")
            assert view.connected is False
            feed.set_status(SubscriptionStatus.SUBSCRIBED, table="bookings")
            assert view.connected is True
            await view.close()
            assert view.connected is False
            assert feed.active() == 0

        asyncio.run(_run())

    def test_no_warehouse_keeps_zero_state(self) -> None:
        async def _run() -> None:
            view = RealtimeOccupancy(InMemoryChangeFeed(), InMemoryTableReader(), "missing")
            assert (await view.recalculate()).total_sq_ft == 0

        asyncio.run(_run())

    def test_read_failure_sets_error(self) -> None:
        async def _run() -> None:
            reader = InMemoryTableReader(_warehouse_tables())
            reader.fail_with = PersistenceError("warehouses")
            view = RealtimeOccupancy(InMemoryChangeFeed(), reader, "W1")
            await view.recalculate()
            assert isinstance(view.error, PersistenceError)

        asyncio.run(_run())
