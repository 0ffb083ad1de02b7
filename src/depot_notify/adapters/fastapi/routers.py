"""FastAPI adapter – scheduled worker endpoints.

Both endpoints are meant for an external scheduler. They require
``Authorization: Bearer <cron_secret>`` unless the settings say
``environment=development``.
"""
from __future__ import annotations

import secrets
from typing import Any

from fastapi import APIRouter, Depends, Header

from depot_notify.application.workers import EmailQueueWorker, EventProcessor
from depot_notify.config import NotifySettings
from depot_notify.kernel.errors import UnauthorizedError
from depot_notify.observability.logging import get_logger

logger = get_logger(__name__)


def cron_auth_dependency(settings: NotifySettings) -> Any:
    """Return a dependency that rejects requests without the cron bearer token."""

    async def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
        if settings.is_development:
            return
        expected = settings.cron_secret
        scheme, _, token = (authorization or "").partition(" ")
        if not expected or scheme.lower() != "bearer" or not secrets.compare_digest(token, expected):
            logger.warning("cron.unauthorized", has_header=authorization is not None)
            raise UnauthorizedError("Unauthorized")

    return require_cron_secret


def FastAPIWorkerRouter(
    event_processor: EventProcessor,
    email_worker: EmailQueueWorker,
    settings: NotifySettings,
    *,
    prefix: str = "/cron",
    tags: list[str] | None = None,
) -> APIRouter:
    """Return the router with the notification-event and email-queue endpoints.

    Parameters
    ----------
    prefix:
        Path prefix; endpoints are ``{prefix}/process-notification-events``
        and ``{prefix}/process-email-queue``.
    """
    router = APIRouter(
        prefix=prefix,
        tags=tags or ["workers"],
        dependencies=[Depends(cron_auth_dependency(settings))],
    )

    @router.post("/process-notification-events")
    async def process_notification_events() -> dict[str, Any]:
        """Process one batch of pending notification intents."""
        summary = await event_processor.process_pending(settings.event_batch_size)
        return summary.to_dict()

    @router.post("/process-email-queue")
    async def process_email_queue() -> dict[str, Any]:
        """Send one batch of pending and one batch of retryable emails."""
        summary = await email_worker.process()
        return summary.to_dict()

    return router


__all__ = ["FastAPIWorkerRouter", "cron_auth_dependency"]
