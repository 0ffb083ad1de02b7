"""Application event log – outbox relay for events appended but not published."""

from __future__ import annotations

from depot_notify.application.event_log.log import EventLog
from depot_notify.observability.logging import get_logger

logger = get_logger(__name__)


class OutboxRelay:
    """Re-publishes events that :meth:`EventLog.append` stored but nobody published.

    Run it at start-up or from a scheduler tick. Delivery is at-least-once:
    an event published just before a crash may be published again.
    """

    def __init__(self, log: EventLog, batch_size: int = 100) -> None:
        self._log = log
        self._batch_size = batch_size

    async def relay(self) -> int:
        """Publish one batch; returns how many events were sent."""
        pending = await self._log.unpublished(self._batch_size)
        for event in pending:
            await self._log.publish(event)
        if pending:
            logger.info("event_log.relayed", count=len(pending))
        return len(pending)

    async def drain(self) -> int:
        """Relay batches until nothing is left unpublished."""
        total = 0
        while sent := await self.relay():
            total += sent
        return total


__all__ = ["OutboxRelay"]
