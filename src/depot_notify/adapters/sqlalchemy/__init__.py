"""SQLAlchemy adapters – async repositories, event log and table reader."""
from depot_notify.adapters.sqlalchemy.email_queue import SqlAlchemyEmailQueueRepository
from depot_notify.adapters.sqlalchemy.event_log import SqlAlchemyEventLog
from depot_notify.adapters.sqlalchemy.reader import SqlAlchemyTableReader
from depot_notify.adapters.sqlalchemy.repositories import (
    SqlAlchemyNotificationIntentRepository,
    SqlAlchemyNotificationRepository,
    SqlAlchemyPreferenceRepository,
    SqlAlchemyUserDirectory,
)
from depot_notify.adapters.sqlalchemy.session import SqlAlchemySessionFactory, transaction
from depot_notify.adapters.sqlalchemy.tables import metadata

__all__ = [
    "SqlAlchemyEmailQueueRepository",
    "SqlAlchemyEventLog",
    "SqlAlchemyNotificationIntentRepository",
    "SqlAlchemyNotificationRepository",
    "SqlAlchemyPreferenceRepository",
    "SqlAlchemySessionFactory",
    "SqlAlchemyTableReader",
    "SqlAlchemyUserDirectory",
    "metadata",
    "transaction",
]
