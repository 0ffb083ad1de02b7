"""Application channels – message value objects and provider ports.

Every provider wraps exactly one transport and answers ``send`` with a
:class:`DeliveryResult`. Transport failures come back as
``DeliveryResult(success=False, error=...)``; providers never retry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "BulkSmsResult",
    "DeliveryResult",
    "EmailMessage",
    "EmailProvider",
    "PushMessage",
    "PushProvider",
    "SmsMessage",
    "SmsProvider",
    "WhatsAppMessage",
    "WhatsAppProvider",
]


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str | None = None
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None


@dataclass(frozen=True)
class SmsMessage:
    to: str
    message: str
    sender: str | None = None  # header / from-number override


@dataclass(frozen=True)
class BulkSmsResult:
    success: bool
    results: list[tuple[str, DeliveryResult]] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class PushMessage:
    token: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WhatsAppMessage:
    to: str
    message: str


@runtime_checkable
class EmailProvider(Protocol):
    """Port: transactional email transport."""

    name: str

    async def send(self, message: EmailMessage) -> DeliveryResult: ...


@runtime_checkable
class SmsProvider(Protocol):
    """Port: SMS transport."""

    name: str

    async def send(self, message: SmsMessage) -> DeliveryResult: ...

    async def send_bulk(self, messages: list[SmsMessage]) -> BulkSmsResult: ...


@runtime_checkable
class PushProvider(Protocol):
    """Port: mobile / web push gateway."""

    name: str

    async def send(self, message: PushMessage) -> DeliveryResult: ...


@runtime_checkable
class WhatsAppProvider(Protocol):
    """Port: WhatsApp messaging transport."""

    name: str

    async def send(self, message: WhatsAppMessage) -> DeliveryResult: ...
