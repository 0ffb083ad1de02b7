"""Application channels – WhatsApp via the Twilio Messages API."""
from __future__ import annotations

import httpx

from depot_notify.application.channels.base import DeliveryResult, WhatsAppMessage
from depot_notify.application.channels.sms import TwilioConfig, twilio_send

__all__ = ["TwilioWhatsAppProvider"]


def _whatsapp_address(number: str) -> str:
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class TwilioWhatsAppProvider:
    """WhatsAppProvider that sends through Twilio's ``whatsapp:`` addressing."""

    name = "twilio-whatsapp"

    def __init__(self, config: TwilioConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    async def send(self, message: WhatsAppMessage) -> DeliveryResult:
        return await twilio_send(
            self._config,
            self._client,
            to=_whatsapp_address(message.to),
            from_=_whatsapp_address(self._config.from_number),
            body=message.message,
        )
