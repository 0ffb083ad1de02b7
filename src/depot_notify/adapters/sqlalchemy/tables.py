"""SQLAlchemy adapter – table layout.

Timestamps go through :class:`UtcDateTime` so values read back are always
timezone-aware UTC, including on SQLite which stores them naive.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.types import TypeDecorator


class UtcDateTime(TypeDecorator):
    impl = DateTime
    cache_ok = True

    def load_dialect_impl(self, dialect: Any) -> Any:
        return dialect.type_descriptor(DateTime(timezone=True))

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


metadata = MetaData()

notification_events = Table(
    "notification_events",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("event_type", String(64), nullable=False),
    Column("entity_type", String(64), nullable=False),
    Column("entity_id", String(128), nullable=False),
    Column("payload", JSON, nullable=False, default=dict),
    Column("status", String(16), nullable=False, default="pending"),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("error_message", Text),
    Column("created_at", UtcDateTime(), nullable=False),
    Column("processed_at", UtcDateTime()),
    Column("claimed_at", UtcDateTime()),
    Index("ix_notification_events_status_created", "status", "created_at"),
)

notifications = Table(
    "notifications",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(128), nullable=False, index=True),
    Column("type", String(16), nullable=False),
    Column("channel", String(16), nullable=False),
    Column("title", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("read", Boolean, nullable=False, default=False),
    Column("sent_at", UtcDateTime()),
    Column("delivered_at", UtcDateTime()),
    Column("failed_at", UtcDateTime()),
    Column("error_message", Text),
    Column("metadata", JSON, nullable=False, default=dict),
    Column("created_at", UtcDateTime(), nullable=False),
)

notification_preferences = Table(
    "notification_preferences",
    metadata,
    Column("user_id", String(128), primary_key=True),
    Column("email_enabled", Boolean, nullable=False, default=True),
    Column("sms_enabled", Boolean, nullable=False, default=False),
    Column("push_enabled", Boolean, nullable=False, default=True),
    Column("whatsapp_enabled", Boolean, nullable=False, default=False),
    Column("type_preferences", JSON, nullable=False, default=dict),
    Column("email_address", String(320)),
    Column("phone_number", String(32)),
    Column("whatsapp_number", String(32)),
    Column("push_token", Text),
)

email_queue = Table(
    "email_queue",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("to_email", String(320), nullable=False),
    Column("subject", Text, nullable=False),
    Column("html_content", Text, nullable=False),
    Column("text_content", Text),
    Column("priority", Integer, nullable=False, default=0),
    Column("status", String(16), nullable=False, default="pending"),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("max_retries", Integer, nullable=False, default=3),
    Column("sent_at", UtcDateTime()),
    Column("error_message", Text),
    Column("metadata", JSON, nullable=False, default=dict),
    Column("created_at", UtcDateTime(), nullable=False),
    Column("claimed_at", UtcDateTime()),
    Index("ix_email_queue_status_priority", "status", "priority", "created_at"),
)

domain_events = Table(
    "domain_events",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), nullable=False, unique=True),
    Column("type", String(64), nullable=False, index=True),
    Column("aggregate_id", String(128), nullable=False),
    Column("aggregate_type", String(32), nullable=False),
    Column("version", Integer, nullable=False),
    Column("payload", JSON, nullable=False, default=dict),
    Column("metadata", JSON, nullable=False, default=dict),
    Column("occurred_at", UtcDateTime(), nullable=False),
    Column("correlation_id", String(128), nullable=False, default=""),
    Column("causation_id", String(128)),
    Column("published", Boolean, nullable=False, default=False),
    Index("ix_domain_events_aggregate", "aggregate_id", "aggregate_type"),
)

profiles = Table(
    "profiles",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("email", String(320)),
    Column("phone_number", String(32)),
    Column("name", String(256)),
    Column("company_id", String(128), index=True),
    Column("role", String(32)),
)


__all__ = [
    "UtcDateTime",
    "domain_events",
    "email_queue",
    "metadata",
    "notification_events",
    "notification_preferences",
    "notifications",
    "profiles",
]
