"""Application workers – email queue and its drain worker.

Rows move ``pending`` → ``sending`` → ``sent`` or ``failed``. A failed row
is retried while ``retry_count < max_retries``; each failure increments
``retry_count`` up to that ceiling and no further, so a row at the ceiling
is permanently failed.
"""
from __future__ import annotations

import abc
import copy
import dataclasses
import uuid
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from depot_notify.application.channels.base import EmailMessage, EmailProvider
from depot_notify.kernel.errors import ProviderNotConfiguredError, ValidationError
from depot_notify.kernel.time import Clock, SystemClock, utc_now
from depot_notify.kernel.types import Err, Ok, Result
from depot_notify.observability.logging import bound_context, get_logger

__all__ = [
    "EmailQueueItem",
    "EmailQueueRepository",
    "EmailQueueSummary",
    "EmailQueueWorker",
    "EmailStatus",
    "InMemoryEmailQueueRepository",
    "add_email_to_queue",
]

logger = get_logger(__name__)


class EmailStatus(str, Enum):
    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


@dataclasses.dataclass
class EmailQueueItem:
    to_email: str
    subject: str
    html_content: str
    text_content: str | None = None
    priority: int = 0
    status: EmailStatus = EmailStatus.PENDING
    retry_count: int = 0
    max_retries: int = 3
    sent_at: datetime | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    id: str = dataclasses.field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    claimed_at: datetime | None = None

    @property
    def retryable(self) -> bool:
        return self.status == EmailStatus.FAILED and self.retry_count < self.max_retries

    @property
    def claimable(self) -> bool:
        return self.status == EmailStatus.PENDING or self.retryable


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class EmailQueueRepository(abc.ABC):
    """Port: the ``email_queue`` table."""

    @abc.abstractmethod
    async def add(self, item: EmailQueueItem) -> EmailQueueItem: ...

    @abc.abstractmethod
    async def get(self, item_id: str) -> EmailQueueItem | None: ...

    @abc.abstractmethod
    async def pending(self, limit: int = 10) -> list[EmailQueueItem]:
        """``pending`` rows, highest priority first, then oldest first."""

    @abc.abstractmethod
    async def retryable(self, limit: int = 10) -> list[EmailQueueItem]:
        """``failed`` rows below their retry ceiling, same ordering as :meth:`pending`."""

    @abc.abstractmethod
    async def claim(self, item_id: str, claimed_at: datetime | None = None) -> EmailQueueItem | None:
        """Move a pending or retryable row to ``sending`` and stamp ``claimed_at``; ``None`` if it is neither."""

    @abc.abstractmethod
    async def release_stale(self, claimed_before: datetime) -> int:
        """Put ``sending`` rows claimed before *claimed_before* back to ``pending``; return how many."""

    @abc.abstractmethod
    async def mark_sent(self, item_id: str, sent_at: datetime) -> None: ...

    @abc.abstractmethod
    async def mark_failed(self, item_id: str, error: str) -> None:
        """Mark ``failed`` and bump ``retry_count``, never past ``max_retries``."""


def _queue_order(item: EmailQueueItem) -> tuple[int, datetime]:
    return (-item.priority, item.created_at)


class InMemoryEmailQueueRepository(EmailQueueRepository):
    def __init__(self) -> None:
        self._rows: dict[str, EmailQueueItem] = {}

    async def add(self, item: EmailQueueItem) -> EmailQueueItem:
        self._rows[item.id] = copy.deepcopy(item)
        return item

    async def get(self, item_id: str) -> EmailQueueItem | None:
        row = self._rows.get(item_id)
        return copy.deepcopy(row) if row else None

    async def pending(self, limit: int = 10) -> list[EmailQueueItem]:
        rows = sorted((r for r in self._rows.values() if r.status == EmailStatus.PENDING), key=_queue_order)
        return [copy.deepcopy(r) for r in rows[:limit]]

    async def retryable(self, limit: int = 10) -> list[EmailQueueItem]:
        rows = sorted((r for r in self._rows.values() if r.retryable), key=_queue_order)
        return [copy.deepcopy(r) for r in rows[:limit]]

    async def claim(self, item_id: str, claimed_at: datetime | None = None) -> EmailQueueItem | None:
        row = self._rows.get(item_id)
        if row is None or not row.claimable:
            return None
        row.status = EmailStatus.SENDING
        row.claimed_at = claimed_at or utc_now()
        return copy.deepcopy(row)

    async def release_stale(self, claimed_before: datetime) -> int:
        stale = [
            r
            for r in self._rows.values()
            if r.status == EmailStatus.SENDING and (r.claimed_at is None or r.claimed_at < claimed_before)
        ]
        for row in stale:
            row.status = EmailStatus.PENDING
            row.claimed_at = None
        return len(stale)

    async def mark_sent(self, item_id: str, sent_at: datetime) -> None:
        row = self._rows.get(item_id)
        if row is not None and row.status == EmailStatus.SENDING:
            row.status = EmailStatus.SENT
            row.sent_at = sent_at
            row.error_message = None

    async def mark_failed(self, item_id: str, error: str) -> None:
        row = self._rows.get(item_id)
        if row is not None and row.status == EmailStatus.SENDING:
            row.status = EmailStatus.FAILED
            row.error_message = error
            row.retry_count = min(row.retry_count + 1, row.max_retries)

    def all(self) -> list[EmailQueueItem]:
        return [copy.deepcopy(r) for r in self._rows.values()]


async def add_email_to_queue(
    repository: EmailQueueRepository,
    *,
    to_email: str,
    subject: str,
    html_content: str,
    text_content: str | None = None,
    priority: int = 0,
    metadata: dict[str, Any] | None = None,
    max_retries: int = 3,
    clock: Clock | None = None,
) -> str:
    """Enqueue one email and return its row id."""
    if not to_email or "@" not in to_email:
        raise ValidationError(
            f"Invalid recipient address {to_email!r}",
            errors=[{"field": "to_email", "error": "invalid"}],
        )
    item = EmailQueueItem(
        to_email=to_email,
        subject=subject,
        html_content=html_content,
        text_content=text_content,
        priority=priority,
        max_retries=max_retries,
        metadata=dict(metadata or {}),
        created_at=(clock or SystemClock()).now(),
    )
    await repository.add(item)
    logger.debug("email_queue.enqueued", email_id=item.id, priority=priority)
    return item.id


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True)
class EmailQueueSummary:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"processed": self.processed, "sent": self.sent, "failed": self.failed}
        if self.error is not None:
            data["error"] = self.error
        return data


class EmailQueueWorker:
    """Drain one batch of pending rows and one batch of retryable rows per tick.

    Rows enqueued through :meth:`enqueue` carry this worker's *max_retries*
    as their retry ceiling. ``sending`` rows claimed more than *stale_after*
    ago are put back to ``pending`` at the start of each tick.
    """

    def __init__(
        self,
        repository: EmailQueueRepository,
        provider: Result[EmailProvider, ProviderNotConfiguredError],
        *,
        batch_size: int = 10,
        max_retries: int = 3,
        stale_after: timedelta | None = timedelta(minutes=15),
        clock: Clock | None = None,
    ) -> None:
        self._repository = repository
        self._provider = provider
        self._batch_size = batch_size
        self._max_retries = max_retries
        self._stale_after = stale_after
        self._clock = clock or SystemClock()

    async def enqueue(
        self,
        *,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
        priority: int = 0,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        return await add_email_to_queue(
            self._repository,
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
            priority=priority,
            metadata=metadata,
            max_retries=self._max_retries,
            clock=self._clock,
        )

    async def process(self) -> EmailQueueSummary:
        match self._provider:
            case Err(error):
                logger.warning("email_queue.provider_unavailable", error=error.message)
                return EmailQueueSummary(error=error.message)
            case Ok(provider):
                pass

        if self._stale_after is not None:
            released = await self._repository.release_stale(self._clock.now() - self._stale_after)
            if released:
                logger.warning("email_queue.stale_released", count=released)

        pending = await self._repository.pending(self._batch_size)
        retryable = await self._repository.retryable(self._batch_size)
        sent = failed = processed = 0
        seen: set[str] = set()
        for item in [*pending, *retryable]:
            if item.id in seen:
                continue
            seen.add(item.id)
            outcome = await self._process_item(provider, item.id)
            if outcome is None:
                continue
            processed += 1
            if outcome:
                sent += 1
            else:
                failed += 1

        summary = EmailQueueSummary(processed=processed, sent=sent, failed=failed)
        if processed:
            logger.info("email_queue.batch_done", **summary.to_dict())
        return summary

    async def _process_item(self, provider: EmailProvider, item_id: str) -> bool | None:
        """Send one row; ``None`` when another tick already took it."""
        item = await self._repository.claim(item_id, self._clock.now())
        if item is None:
            return None
        with bound_context(email_id=item.id, attempt=item.retry_count + 1):
            try:
                result = await provider.send(
                    EmailMessage(
                        to=item.to_email,
                        subject=item.subject,
                        html=item.html_content,
                        text=item.text_content,
                    )
                )
                error = None if result.success else (result.error or "Unknown error")
            except Exception as exc:  # noqa: BLE001
                error = str(exc) or type(exc).__name__

            if error is None:
                await self._repository.mark_sent(item.id, self._clock.now())
                return True

            await self._repository.mark_failed(item.id, error)
            terminal = item.retry_count + 1 >= item.max_retries
            logger.warning("email_queue.send_failed", error=error, terminal=terminal)
            return False
