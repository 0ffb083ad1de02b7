"""Application channels – SMS providers: NetGSM (primary) and Twilio (fallback)."""
from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from depot_notify.application.channels._http import client_scope, describe_error, json_object
from depot_notify.application.channels.base import BulkSmsResult, DeliveryResult, SmsMessage
from depot_notify.observability.logging import get_logger

__all__ = [
    "NETGSM_RESULT_CODES",
    "NetGsmConfig",
    "NetGsmSmsProvider",
    "TwilioConfig",
    "TwilioSmsProvider",
    "format_netgsm_number",
    "twilio_send",
]

logger = get_logger(__name__)

#: NetGSM response codes and their meaning.
NETGSM_RESULT_CODES: dict[str, str] = {
    "00": "Success",
    "01": "Invalid username or password",
    "02": "Insufficient balance",
    "20": "Invalid message header",
    "30": "Invalid phone number",
    "40": "Message header not defined",
    "50": "System error",
    "51": "Invalid encoding",
    "70": "Invalid parameters",
    "85": "Invalid phone number format",
}


def format_netgsm_number(phone: str) -> str:
    """Normalise to NetGSM's ``5XXXXXXXXX`` form.

    Non-digits are dropped, then a leading ``90`` country code and a
    leading trunk ``0`` are stripped.
    """
    cleaned = re.sub(r"\D", "", phone)
    if cleaned.startswith("90"):
        cleaned = cleaned[2:]
    if cleaned.startswith("0"):
        cleaned = cleaned[1:]
    return cleaned


# ---------------------------------------------------------------------------
# NetGSM
# ---------------------------------------------------------------------------


@dataclass
class NetGsmConfig:
    username: str
    password: str
    header: str = "DEPOT"
    api_url: str = "https://api.netgsm.com.tr/sms/rest/v2/send"
    timeout: float = 10.0


class NetGsmSmsProvider:
    """SmsProvider backed by the NetGSM REST v2 API (Turkish numbers)."""

    name = "netgsm"

    def __init__(self, config: NetGsmConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    def _build_payload(self, messages: list[SmsMessage]) -> dict[str, Any]:
        sender = next((m.sender for m in messages if m.sender), None)
        return {
            "msgheader": sender or self._config.header,
            "encoding": "TR",
            "iysfilter": "",
            "partnercode": "",
            "messages": [{"msg": m.message, "no": format_netgsm_number(m.to)} for m in messages],
        }

    async def _post(self, messages: list[SmsMessage]) -> DeliveryResult:
        try:
            async with client_scope(self._client, self._config.timeout) as client:
                resp = await client.post(
                    self._config.api_url,
                    json=self._build_payload(messages),
                    auth=(self._config.username, self._config.password),
                )
        except httpx.HTTPError as exc:
            logger.warning("sms.netgsm.transport_error", error=describe_error(exc))
            return DeliveryResult(success=False, error=describe_error(exc))

        if not resp.is_success:
            return DeliveryResult(success=False, error=f"NetGSM API error: {resp.status_code} - {resp.text}")
        data = json_object(resp)
        if data is None:
            return DeliveryResult(success=False, error=f"NetGSM API error: unreadable response {resp.text!r}")

        code = str(data.get("code", "")).zfill(2)
        if code == "00":
            message_id = data.get("bulkid") or data.get("jobID") or str(int(time.time() * 1000))
            return DeliveryResult(success=True, message_id=str(message_id))
        reason = NETGSM_RESULT_CODES.get(code, "Unknown error")
        return DeliveryResult(success=False, error=f"NetGSM error code: {code} - {reason}")

    async def send(self, message: SmsMessage) -> DeliveryResult:
        return await self._post([message])

    async def send_bulk(self, messages: list[SmsMessage]) -> BulkSmsResult:
        """Send all *messages* in one NetGSM request; they succeed or fail together."""
        if not messages:
            return BulkSmsResult(success=True)
        outcome = await self._post(messages)
        return BulkSmsResult(
            success=outcome.success,
            results=[(m.to, outcome) for m in messages],
            error=outcome.error,
        )


# ---------------------------------------------------------------------------
# Twilio
# ---------------------------------------------------------------------------


@dataclass
class TwilioConfig:
    account_sid: str
    auth_token: str
    from_number: str  # E.164, e.g. +15550001234
    api_url: str = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
    timeout: float = 10.0

    @property
    def messages_url(self) -> str:
        return self.api_url.format(account_sid=self.account_sid)


async def twilio_send(
    config: TwilioConfig,
    client: httpx.AsyncClient | None,
    *,
    to: str,
    from_: str,
    body: str,
) -> DeliveryResult:
    """POST one message to the Twilio Messages resource."""
    data = {"To": to, "From": from_, "Body": body}
    try:
        async with client_scope(client, config.timeout) as c:
            resp = await c.post(config.messages_url, data=data, auth=(config.account_sid, config.auth_token))
    except httpx.HTTPError as exc:
        logger.warning("twilio.transport_error", error=describe_error(exc))
        return DeliveryResult(success=False, error=describe_error(exc))

    reply = json_object(resp) or {}
    if not resp.is_success:
        detail = reply.get("message") or resp.reason_phrase or resp.text
        return DeliveryResult(success=False, error=f"Twilio API error: {detail}")
    return DeliveryResult(success=True, message_id=reply.get("sid"))


class TwilioSmsProvider:
    """SmsProvider backed by the Twilio REST API."""

    name = "twilio"

    def __init__(self, config: TwilioConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    async def send(self, message: SmsMessage) -> DeliveryResult:
        return await twilio_send(
            self._config,
            self._client,
            to=message.to,
            from_=message.sender or self._config.from_number,
            body=message.message,
        )

    async def send_bulk(self, messages: list[SmsMessage]) -> BulkSmsResult:
        """One request per message; overall success only when all succeed."""
        results = [(m.to, await self.send(m)) for m in messages]
        failed = [r for _, r in results if not r.success]
        return BulkSmsResult(
            success=not failed,
            results=results,
            error=f"{len(failed)} of {len(results)} messages failed" if failed else None,
        )
