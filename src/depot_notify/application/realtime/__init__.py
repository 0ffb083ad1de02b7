"""Application realtime – change-feed views over notifications, tasks and occupancy."""
from depot_notify.application.realtime.bridge import (
    ChangeFeed,
    ChangeHandler,
    ChangeKind,
    FloorUtilization,
    HallUtilization,
    InMemoryChangeFeed,
    InMemoryTableReader,
    RealtimeCollection,
    RealtimeNotifications,
    RealtimeOccupancy,
    RealtimeTasks,
    RowChange,
    StatusHandler,
    SubscriptionStatus,
    TableReader,
    WarehouseUtilization,
)

__all__ = [
    "ChangeFeed",
    "ChangeHandler",
    "ChangeKind",
    "FloorUtilization",
    "HallUtilization",
    "InMemoryChangeFeed",
    "InMemoryTableReader",
    "RealtimeCollection",
    "RealtimeNotifications",
    "RealtimeOccupancy",
    "RealtimeTasks",
    "RowChange",
    "StatusHandler",
    "SubscriptionStatus",
    "TableReader",
    "WarehouseUtilization",
]
