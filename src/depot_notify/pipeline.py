"""NotificationPipeline – explicit composition root.

Every pipeline owns its bus, event log, stores and providers; nothing is
shared through module globals, so independent pipelines (one per test, or
one per process) never see each other's subscriptions or rows.

Example::

    pipeline = NotificationPipeline.for_testing()
    pipeline.register_reactions()
    await pipeline.bus.emit(BookingRequested(...))
    await pipeline.event_processor.process_pending()
"""
from __future__ import annotations

import dataclasses
from datetime import timedelta
from typing import Any

import httpx
from fastapi import FastAPI

from depot_notify.adapters.fastapi import FastAPIExceptionMapper, FastAPIWorkerRouter
from depot_notify.adapters.sqlalchemy import (
    SqlAlchemyEmailQueueRepository,
    SqlAlchemyEventLog,
    SqlAlchemyNotificationIntentRepository,
    SqlAlchemyNotificationRepository,
    SqlAlchemyPreferenceRepository,
    SqlAlchemySessionFactory,
    SqlAlchemyUserDirectory,
)
from depot_notify.application.channels import (
    ChannelProviders,
    InMemoryEmailProvider,
    InMemoryPushProvider,
    InMemorySmsProvider,
    InMemoryWhatsAppProvider,
)
from depot_notify.application.event_bus import EventBus
from depot_notify.application.event_log import EventLog, InMemoryEventLog, OutboxRelay
from depot_notify.application.notifications import (
    EmailTemplateRenderer,
    InMemoryNotificationIntentRepository,
    InMemoryNotificationRepository,
    InMemoryPreferenceRepository,
    InMemoryUserDirectory,
    NotificationDispatcher,
    NotificationIntentRepository,
    NotificationRepository,
    NotificationResult,
    PreferenceRepository,
    UserDirectory,
)
from depot_notify.application.reactions import ReactionHandlers
from depot_notify.application.workers import (
    EmailQueueRepository,
    EmailQueueWorker,
    EventProcessor,
    InMemoryEmailQueueRepository,
)
from depot_notify.config import NotifySettings
from depot_notify.kernel.time import Clock, SystemClock
from depot_notify.observability.logging import get_logger

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class PipelineStores:
    """The persistence ports a pipeline reads and writes.

    ``sessions`` is set for SQL-backed stores; the pipeline then keeps its
    event log in the same database.
    """

    notifications: NotificationRepository
    intents: NotificationIntentRepository
    preferences: PreferenceRepository
    users: UserDirectory
    email_queue: EmailQueueRepository
    sessions: SqlAlchemySessionFactory | None = None

    @classmethod
    def in_memory(cls) -> "PipelineStores":
        return cls(
            notifications=InMemoryNotificationRepository(),
            intents=InMemoryNotificationIntentRepository(),
            preferences=InMemoryPreferenceRepository(),
            users=InMemoryUserDirectory(),
            email_queue=InMemoryEmailQueueRepository(),
        )

    @classmethod
    def sqlalchemy(cls, sessions: SqlAlchemySessionFactory) -> "PipelineStores":
        return cls(
            notifications=SqlAlchemyNotificationRepository(sessions),
            intents=SqlAlchemyNotificationIntentRepository(sessions),
            preferences=SqlAlchemyPreferenceRepository(sessions),
            users=SqlAlchemyUserDirectory(sessions),
            email_queue=SqlAlchemyEmailQueueRepository(sessions),
            sessions=sessions,
        )


class NotificationPipeline:
    """Bus, event log, reactions, dispatcher and workers wired together."""

    def __init__(
        self,
        settings: NotifySettings,
        stores: PipelineStores,
        providers: ChannelProviders,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings
        self.stores = stores
        self.providers = providers
        self.clock = clock or SystemClock()

        self.bus = EventBus(max_listeners=settings.event_bus_max_listeners)
        self.event_log: EventLog
        if stores.sessions is not None:
            self.event_log = SqlAlchemyEventLog(stores.sessions, self.bus, self.clock)
        else:
            self.event_log = InMemoryEventLog(self.bus, self.clock)
        self.relay = OutboxRelay(self.event_log)

        self.renderer = EmailTemplateRenderer(site_url=settings.site_url)
        self.dispatcher = NotificationDispatcher(
            notifications=stores.notifications,
            preferences=stores.preferences,
            users=stores.users,
            providers=providers,
            renderer=self.renderer,
            clock=self.clock,
        )
        self.reactions = ReactionHandlers(
            stores.intents,
            stores.notifications,
            occupancy_threshold=settings.occupancy_alert_threshold,
            clock=self.clock,
        )
        stale_after = timedelta(seconds=settings.stale_claim_seconds)
        self.event_processor = EventProcessor(
            stores.intents,
            self.dispatcher,
            stores.users,
            max_retries=settings.max_retries,
            occupancy_threshold=settings.occupancy_alert_threshold,
            stale_after=stale_after,
            clock=self.clock,
        )
        self.email_worker = EmailQueueWorker(
            stores.email_queue,
            providers.email,
            batch_size=settings.email_batch_size,
            max_retries=settings.max_retries,
            stale_after=stale_after,
            clock=self.clock,
        )
        self._reaction_subscriptions: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(
        cls,
        settings: NotifySettings,
        stores: PipelineStores | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> "NotificationPipeline":
        """Build providers from *settings*; channels without credentials stay disabled."""
        providers = ChannelProviders.from_settings(settings, client)
        logger.info(
            "pipeline.configured",
            environment=settings.environment,
            channels=[c.value for c in providers.configured()],
            sql=stores is not None and stores.sessions is not None,
        )
        return cls(settings, stores or PipelineStores.in_memory(), providers, clock=clock)

    @classmethod
    def for_testing(
        cls,
        clock: Clock | None = None,
        *,
        settings: NotifySettings | None = None,
        providers: ChannelProviders | None = None,
    ) -> "NotificationPipeline":
        """In-memory stores and in-memory providers for all four channels."""
        return cls(
            settings or NotifySettings(environment="development"),
            PipelineStores.in_memory(),
            providers
            or ChannelProviders.of(
                email=InMemoryEmailProvider(),
                sms=InMemorySmsProvider(),
                push=InMemoryPushProvider(),
                whatsapp=InMemoryWhatsAppProvider(),
            ),
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def register_reactions(self) -> dict[str, str]:
        """Subscribe the reaction handlers on this pipeline's bus, once."""
        if not self._reaction_subscriptions:
            self._reaction_subscriptions = self.reactions.register(self.bus)
        return dict(self._reaction_subscriptions)

    def unregister_reactions(self) -> None:
        for event_type, subscription_id in self._reaction_subscriptions.items():
            self.bus.off(event_type, subscription_id)
        self._reaction_subscriptions = {}

    async def send_notification(self, **kwargs: Any) -> NotificationResult:
        return await self.dispatcher.send_notification(**kwargs)

    async def enqueue_email(self, **kwargs: Any) -> str:
        """Queue an email for the email worker, with ``settings.max_retries`` as its ceiling."""
        return await self.email_worker.enqueue(**kwargs)

    def create_app(self, **fastapi_kwargs: Any) -> FastAPI:
        """FastAPI app exposing the two scheduled worker endpoints."""
        app = FastAPI(**fastapi_kwargs)
        FastAPIExceptionMapper().register(app)
        app.include_router(FastAPIWorkerRouter(self.event_processor, self.email_worker, self.settings))
        return app


__all__ = ["NotificationPipeline", "PipelineStores"]
