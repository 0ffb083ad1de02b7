"""Application notifications – NotificationDispatcher.

One dispatch = one user, one logical notification, up to four channels:

1. load the user's preferences (defaults when none are stored);
2. keep only the requested channels the preferences allow;
3. resolve contact details, preference values first;
4. create a single :class:`Notification` row;
5. for each channel in turn, render, send through its provider and fold
   the outcome into the row;
6. report success when at least one channel delivered.

Transport failures and unconfigured providers become failed
:class:`ChannelResult` entries. Store failures (:class:`InfrastructureError`)
end the dispatch with a failed :class:`NotificationResult`. Malformed
requests raise :class:`ValidationError`.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from depot_notify.application.channels.base import EmailMessage, PushMessage, SmsMessage, WhatsAppMessage
from depot_notify.application.notifications.models import (
    Channel,
    ChannelResult,
    ContactInfo,
    Notification,
    NotificationPreferences,
    NotificationRequest,
    NotificationResult,
    NotificationType,
)
from depot_notify.application.notifications.preferences import filter_enabled_channels, resolve_contact
from depot_notify.application.notifications.repository import (
    NotificationRepository,
    PreferenceRepository,
    UserDirectory,
)
from depot_notify.application.notifications.templates import EmailTemplateRenderer
from depot_notify.kernel.errors import InfrastructureError, ValidationError
from depot_notify.kernel.time import Clock, SystemClock
from depot_notify.kernel.types import Err, Ok
from depot_notify.observability.logging import get_logger

if TYPE_CHECKING:
    from depot_notify.application.channels.factory import ChannelProviders

__all__ = ["NO_ENABLED_CHANNELS", "PARTIAL_FAILURE", "NotificationDispatcher", "build_request"]

logger = get_logger(__name__)

NO_ENABLED_CHANNELS = "No enabled notification channels for user"
PARTIAL_FAILURE = "Some channels failed to deliver"


class NotificationDispatcher:
    """Fan a notification out to a user's enabled channels and record the outcome."""

    def __init__(
        self,
        *,
        notifications: NotificationRepository,
        preferences: PreferenceRepository,
        users: UserDirectory,
        providers: ChannelProviders,
        renderer: EmailTemplateRenderer | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._notifications = notifications
        self._preferences = preferences
        self._users = users
        self._providers = providers
        self._renderer = renderer or EmailTemplateRenderer()
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send_notification(
        self,
        *,
        user_id: str,
        type: NotificationType | str,
        channels: Iterable[Channel | str],
        title: str,
        message: str,
        template: str | None = None,
        template_data: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationResult:
        request = build_request(
            user_id=user_id,
            type=type,
            channels=channels,
            title=title,
            message=message,
            template=template,
            template_data=template_data,
            metadata=metadata,
        )
        return await self.dispatch(request)

    async def send_bulk_notification(self, user_ids: Iterable[str], **options: Any) -> list[NotificationResult]:
        """Dispatch the same notification to each user, one after another."""
        return [await self.send_notification(user_id=user_id, **options) for user_id in user_ids]

    async def dispatch(self, request: NotificationRequest) -> NotificationResult:
        results: list[ChannelResult] = []
        notification_id: str | None = None
        try:
            stored_prefs = await self._preferences.get(request.user_id)
            prefs = stored_prefs or NotificationPreferences.defaults(request.user_id)
            enabled = filter_enabled_channels(request.channels, request.type, prefs)
            if not enabled:
                logger.info(
                    "notification.no_enabled_channels",
                    user_id=request.user_id,
                    type=request.type.value,
                    requested=[c.value for c in request.channels],
                )
                return NotificationResult(success=False, error=NO_ENABLED_CHANNELS)

            profile = await self._users.get_profile(request.user_id)
            contact = resolve_contact(profile, stored_prefs)

            notification = Notification(
                user_id=request.user_id,
                type=request.type,
                channel=enabled[0],
                title=request.title,
                message=request.message,
                metadata=dict(request.metadata),
                created_at=self._clock.now(),
            )
            await self._notifications.add(notification)
            notification_id = notification.id

            for channel in enabled:
                result = await self._send_to_channel(channel, request, contact)
                results.append(result)
                notification.apply_delivery(result, self._clock.now())
                await self._notifications.save(notification)
        except InfrastructureError as exc:
            logger.error(
                "notification.dispatch_failed",
                user_id=request.user_id,
                notification_id=notification_id,
                error=exc.message,
            )
            return NotificationResult(
                success=False, results=tuple(results), notification_id=notification_id, error=exc.message
            )

        success = any(r.success for r in results)
        all_ok = all(r.success for r in results)
        logger.info(
            "notification.dispatched",
            user_id=request.user_id,
            notification_id=notification_id,
            channels=[r.channel.value for r in results],
            failed=[r.channel.value for r in results if not r.success],
        )
        return NotificationResult(
            success=success,
            results=tuple(results),
            notification_id=notification_id,
            error=None if all_ok else PARTIAL_FAILURE,
        )

    # ------------------------------------------------------------------
    # Per-channel delivery
    # ------------------------------------------------------------------

    async def _send_to_channel(
        self, channel: Channel, request: NotificationRequest, contact: ContactInfo
    ) -> ChannelResult:
        match self._providers.for_channel(channel):
            case Err(error):
                return ChannelResult(channel=channel, success=False, error=error.message)
            case Ok(provider):
                pass

        try:
            if channel is Channel.EMAIL:
                return await self._send_email(provider, request, contact)
            if channel is Channel.SMS:
                return await self._send_sms(provider, request, contact)
            if channel is Channel.PUSH:
                return await self._send_push(provider, request, contact)
            return await self._send_whatsapp(provider, request, contact)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "notification.channel_error",
                channel=channel.value,
                user_id=request.user_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return ChannelResult(channel=channel, success=False, error=str(exc) or type(exc).__name__)

    async def _send_email(self, provider: Any, request: NotificationRequest, contact: ContactInfo) -> ChannelResult:
        if not contact.email:
            return ChannelResult(channel=Channel.EMAIL, success=False, error="User email not found")
        rendered = self._renderer.render(
            request.template,
            title=request.title,
            message=request.message,
            data=request.template_data,
            recipient_name=contact.name,
        )
        outcome = await provider.send(
            EmailMessage(to=contact.email, subject=rendered.subject, html=rendered.html, text=rendered.text)
        )
        return _to_channel_result(Channel.EMAIL, outcome)

    async def _send_sms(self, provider: Any, request: NotificationRequest, contact: ContactInfo) -> ChannelResult:
        if not contact.phone:
            return ChannelResult(channel=Channel.SMS, success=False, error="User phone number not found")
        outcome = await provider.send(SmsMessage(to=contact.phone, message=_short_text(request)))
        return _to_channel_result(Channel.SMS, outcome)

    async def _send_push(self, provider: Any, request: NotificationRequest, contact: ContactInfo) -> ChannelResult:
        if not contact.push_token:
            return ChannelResult(channel=Channel.PUSH, success=False, error="User push subscription not found")
        outcome = await provider.send(
            PushMessage(token=contact.push_token, title=request.title, body=request.message, data=dict(request.metadata))
        )
        return _to_channel_result(Channel.PUSH, outcome)

    async def _send_whatsapp(
        self, provider: Any, request: NotificationRequest, contact: ContactInfo
    ) -> ChannelResult:
        number = contact.whatsapp or contact.phone
        if not number:
            return ChannelResult(channel=Channel.WHATSAPP, success=False, error="User WhatsApp number not found")
        outcome = await provider.send(WhatsAppMessage(to=number, message=_short_text(request)))
        return _to_channel_result(Channel.WHATSAPP, outcome)


def _short_text(request: NotificationRequest) -> str:
    return f"{request.title}\n\n{request.message}"


def _to_channel_result(channel: Channel, outcome: Any) -> ChannelResult:
    return ChannelResult(
        channel=channel, success=outcome.success, message_id=outcome.message_id, error=outcome.error
    )


def build_request(
    *,
    user_id: str,
    type: NotificationType | str,
    channels: Iterable[Channel | str],
    title: str,
    message: str,
    template: str | None = None,
    template_data: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> NotificationRequest:
    """Validate raw dispatch arguments into a :class:`NotificationRequest`."""
    errors: list[dict[str, Any]] = []
    if not user_id:
        errors.append({"field": "user_id", "error": "required"})
    if not title:
        errors.append({"field": "title", "error": "required"})
    try:
        ntype = NotificationType(type)
    except ValueError:
        errors.append({"field": "type", "error": f"unknown notification type {type!r}"})
        ntype = NotificationType.SYSTEM
    parsed: list[Channel] = []
    for raw in channels:
        try:
            parsed.append(Channel(raw))
        except ValueError:
            errors.append({"field": "channels", "error": f"unknown channel {raw!r}"})
    if errors:
        raise ValidationError("Invalid notification request", errors=errors)
    return NotificationRequest(
        user_id=user_id,
        type=ntype,
        channels=tuple(parsed),
        title=title,
        message=message,
        template=template,
        template_data=dict(template_data or {}),
        metadata=dict(metadata or {}),
    )
