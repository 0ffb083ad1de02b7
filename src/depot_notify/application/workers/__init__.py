"""Application workers – externally scheduled batch jobs."""
from depot_notify.application.workers.email_queue import (
    EmailQueueItem,
    EmailQueueRepository,
    EmailQueueSummary,
    EmailQueueWorker,
    EmailStatus,
    InMemoryEmailQueueRepository,
    add_email_to_queue,
)
from depot_notify.application.workers.event_processor import (
    EVENT_NOTIFICATIONS,
    EventProcessor,
    ProcessedIntent,
    ProcessingSummary,
)

__all__ = [
    "EVENT_NOTIFICATIONS",
    "EmailQueueItem",
    "EmailQueueRepository",
    "EmailQueueSummary",
    "EmailQueueWorker",
    "EmailStatus",
    "EventProcessor",
    "InMemoryEmailQueueRepository",
    "ProcessedIntent",
    "ProcessingSummary",
    "add_email_to_queue",
]
