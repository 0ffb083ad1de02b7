"""Application channels – in-memory fake providers for unit tests."""
from __future__ import annotations

from typing import Generic, TypeVar

from depot_notify.application.channels.base import (
    BulkSmsResult,
    DeliveryResult,
    EmailMessage,
    PushMessage,
    SmsMessage,
    WhatsAppMessage,
)

__all__ = [
    "InMemoryEmailProvider",
    "InMemoryPushProvider",
    "InMemorySmsProvider",
    "InMemoryWhatsAppProvider",
]

M = TypeVar("M")


class _InMemoryProvider(Generic[M]):
    """Captures every message passed to ``send``.

    ``fail_with`` makes ``send`` return a failed :class:`DeliveryResult`
    carrying that error; ``raise_with`` makes it raise instead.
    """

    name = "in-memory"
    _prefix = "mem"

    def __init__(self, fail_with: str | None = None, raise_with: Exception | None = None) -> None:
        self.sent: list[M] = []
        self.fail_with = fail_with
        self.raise_with = raise_with

    async def send(self, message: M) -> DeliveryResult:
        self.sent.append(message)
        if self.raise_with is not None:
            raise self.raise_with
        if self.fail_with is not None:
            return DeliveryResult(success=False, error=self.fail_with)
        return DeliveryResult(success=True, message_id=f"{self._prefix}-{len(self.sent)}")

    def reset(self) -> None:
        self.sent.clear()

    @property
    def count(self) -> int:
        return len(self.sent)

    def last(self) -> M | None:
        return self.sent[-1] if self.sent else None


class InMemoryEmailProvider(_InMemoryProvider[EmailMessage]):
    _prefix = "mem-email"


class InMemorySmsProvider(_InMemoryProvider[SmsMessage]):
    _prefix = "mem-sms"

    async def send_bulk(self, messages: list[SmsMessage]) -> BulkSmsResult:
        results = [(m.to, await self.send(m)) for m in messages]
        return BulkSmsResult(success=all(r.success for _, r in results), results=results)


class InMemoryPushProvider(_InMemoryProvider[PushMessage]):
    _prefix = "mem-push"


class InMemoryWhatsAppProvider(_InMemoryProvider[WhatsAppMessage]):
    _prefix = "mem-whatsapp"
