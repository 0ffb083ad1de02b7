"""Application channels – provider construction from settings.

Each factory returns ``Ok(provider)`` or ``Err(ProviderNotConfiguredError)``
so an absent provider can't be used by accident. Missing credentials never
raise; they only disable the channel::

    match create_sms_provider(settings):
        case Ok(provider):
            await provider.send(SmsMessage(to="+905551112233", message="hi"))
        case Err(error):
            logger.info("sms disabled", missing=error.missing)
"""
from __future__ import annotations

import dataclasses
from typing import Any

import httpx

from depot_notify.application.channels.base import EmailProvider, PushProvider, SmsProvider, WhatsAppProvider
from depot_notify.application.channels.email import (
    SendGridConfig,
    SendGridEmailProvider,
    SesConfig,
    SesEmailProvider,
)
from depot_notify.application.channels.push import FcmConfig, FcmPushProvider
from depot_notify.application.channels.sms import NetGsmConfig, NetGsmSmsProvider, TwilioConfig, TwilioSmsProvider
from depot_notify.application.channels.whatsapp import TwilioWhatsAppProvider
from depot_notify.application.notifications.models import Channel
from depot_notify.config import NotifySettings
from depot_notify.kernel.errors import ProviderNotConfiguredError
from depot_notify.kernel.types import Err, Ok, Result
from depot_notify.observability.logging import get_logger

__all__ = [
    "ChannelProviders",
    "create_email_provider",
    "create_push_provider",
    "create_sms_provider",
    "create_whatsapp_provider",
]

logger = get_logger(__name__)


def _missing(settings: NotifySettings, *names: str) -> list[str]:
    return [name.upper() for name in names if not getattr(settings, name)]


def _not_configured(channel: Channel, missing: list[str]) -> Err[ProviderNotConfiguredError]:
    logger.info("channels.provider_not_configured", channel=channel.value, missing=missing)
    return Err(ProviderNotConfiguredError(channel.label, missing))


def create_email_provider(
    settings: NotifySettings, client: httpx.AsyncClient | None = None
) -> Result[EmailProvider, ProviderNotConfiguredError]:
    timeout = settings.provider_timeout_seconds
    if settings.email_provider == "aws-ses":
        missing = _missing(settings, "aws_ses_access_key_id", "aws_ses_secret_access_key")
        if missing:
            return _not_configured(Channel.EMAIL, missing)
        return Ok(
            SesEmailProvider(
                SesConfig(
                    aws_access_key_id=settings.aws_ses_access_key_id or "",
                    aws_secret_access_key=settings.aws_ses_secret_access_key or "",
                    region_name=settings.aws_ses_region,
                    source_email=settings.aws_ses_from_email,
                )
            )
        )

    missing = _missing(settings, "sendgrid_api_key")
    if missing:
        return _not_configured(Channel.EMAIL, missing)
    return Ok(
        SendGridEmailProvider(
            SendGridConfig(
                api_key=settings.sendgrid_api_key or "",
                from_email=settings.sendgrid_from_email,
                from_name=settings.sendgrid_from_name,
                timeout=timeout,
            ),
            client,
        )
    )


def create_sms_provider(
    settings: NotifySettings, client: httpx.AsyncClient | None = None
) -> Result[SmsProvider, ProviderNotConfiguredError]:
    """NetGSM when its credentials are present, otherwise Twilio."""
    timeout = settings.provider_timeout_seconds
    if settings.netgsm_username and settings.netgsm_password:
        return Ok(
            NetGsmSmsProvider(
                NetGsmConfig(
                    username=settings.netgsm_username,
                    password=settings.netgsm_password,
                    header=settings.netgsm_header,
                    timeout=timeout,
                ),
                client,
            )
        )
    missing = _missing(settings, "twilio_account_sid", "twilio_auth_token", "twilio_phone_number")
    if missing:
        return _not_configured(Channel.SMS, ["NETGSM_USERNAME", "NETGSM_PASSWORD", *missing])
    return Ok(
        TwilioSmsProvider(
            TwilioConfig(
                account_sid=settings.twilio_account_sid or "",
                auth_token=settings.twilio_auth_token or "",
                from_number=settings.twilio_phone_number or "",
                timeout=timeout,
            ),
            client,
        )
    )


def create_push_provider(
    settings: NotifySettings, client: httpx.AsyncClient | None = None
) -> Result[PushProvider, ProviderNotConfiguredError]:
    missing = _missing(settings, "fcm_server_key", "fcm_project_id")
    if missing:
        return _not_configured(Channel.PUSH, missing)
    return Ok(
        FcmPushProvider(
            FcmConfig(
                server_key=settings.fcm_server_key or "",
                project_id=settings.fcm_project_id or "",
                timeout=settings.provider_timeout_seconds,
            ),
            client,
        )
    )


def create_whatsapp_provider(
    settings: NotifySettings, client: httpx.AsyncClient | None = None
) -> Result[WhatsAppProvider, ProviderNotConfiguredError]:
    missing = _missing(settings, "twilio_account_sid", "twilio_auth_token", "twilio_whatsapp_number")
    if missing:
        return _not_configured(Channel.WHATSAPP, missing)
    return Ok(
        TwilioWhatsAppProvider(
            TwilioConfig(
                account_sid=settings.twilio_account_sid or "",
                auth_token=settings.twilio_auth_token or "",
                from_number=settings.twilio_whatsapp_number or "",
                timeout=settings.provider_timeout_seconds,
            ),
            client,
        )
    )


def _absent(channel: Channel) -> Err[ProviderNotConfiguredError]:
    return Err(ProviderNotConfiguredError(channel.label))


@dataclasses.dataclass
class ChannelProviders:
    """The provider construction result for every channel."""

    email: Result[Any, ProviderNotConfiguredError] = dataclasses.field(
        default_factory=lambda: _absent(Channel.EMAIL)
    )
    sms: Result[Any, ProviderNotConfiguredError] = dataclasses.field(
        default_factory=lambda: _absent(Channel.SMS)
    )
    push: Result[Any, ProviderNotConfiguredError] = dataclasses.field(
        default_factory=lambda: _absent(Channel.PUSH)
    )
    whatsapp: Result[Any, ProviderNotConfiguredError] = dataclasses.field(
        default_factory=lambda: _absent(Channel.WHATSAPP)
    )

    @classmethod
    def from_settings(
        cls, settings: NotifySettings, client: httpx.AsyncClient | None = None
    ) -> "ChannelProviders":
        return cls(
            email=create_email_provider(settings, client),
            sms=create_sms_provider(settings, client),
            push=create_push_provider(settings, client),
            whatsapp=create_whatsapp_provider(settings, client),
        )

    @classmethod
    def of(
        cls,
        *,
        email: Any | None = None,
        sms: Any | None = None,
        push: Any | None = None,
        whatsapp: Any | None = None,
    ) -> "ChannelProviders":
        """Wrap ready-made providers; ``None`` leaves a channel unconfigured."""
        def wrap(provider: Any | None, channel: Channel) -> Result[Any, ProviderNotConfiguredError]:
            return Ok(provider) if provider is not None else _absent(channel)

        return cls(
            email=wrap(email, Channel.EMAIL),
            sms=wrap(sms, Channel.SMS),
            push=wrap(push, Channel.PUSH),
            whatsapp=wrap(whatsapp, Channel.WHATSAPP),
        )

    def for_channel(self, channel: Channel | str) -> Result[Any, ProviderNotConfiguredError]:
        return getattr(self, Channel(channel).value)

    def configured(self) -> list[Channel]:
        return [c for c in Channel if self.for_channel(c).is_ok()]
