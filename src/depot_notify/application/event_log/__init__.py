"""Application – append-only domain event log."""
from depot_notify.application.event_log.log import EventLog, InMemoryEventLog, ReplayHandler
from depot_notify.application.event_log.relay import OutboxRelay

__all__ = ["EventLog", "InMemoryEventLog", "OutboxRelay", "ReplayHandler"]
