"""Application channels – email providers (SendGrid over httpx, AWS SES over aiobotocore)."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import httpx

from depot_notify.application.channels._http import client_scope, describe_error
from depot_notify.application.channels.base import DeliveryResult, EmailMessage
from depot_notify.observability.logging import get_logger

__all__ = ["SendGridConfig", "SendGridEmailProvider", "SesConfig", "SesEmailProvider"]

logger = get_logger(__name__)


def _require_aiobotocore() -> Any:  # pragma: no cover
    try:
        import aiobotocore.session  # noqa: PLC0415
        return aiobotocore.session
    except ImportError as exc:
        raise ImportError(
            "aiobotocore is required for SES email sending. "
            "Install it with: pip install 'depot-notify[ses]'"
        ) from exc


@dataclass
class SendGridConfig:
    api_key: str
    from_email: str = "notifications@example.com"
    from_name: str = "Warehouse Notifications"
    api_url: str = "https://api.sendgrid.com/v3/mail/send"
    timeout: float = 10.0


class SendGridEmailProvider:
    """EmailProvider backed by the SendGrid v3 mail-send API."""

    name = "sendgrid"

    def __init__(self, config: SendGridConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    def _build_payload(self, message: EmailMessage) -> dict[str, Any]:
        content = [{"type": "text/html", "value": message.html}]
        if message.text:
            content.append({"type": "text/plain", "value": message.text})
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": message.to}], "subject": message.subject}],
            "from": {
                "email": message.from_email or self._config.from_email,
                "name": message.from_name or self._config.from_name,
            },
            "content": content,
        }
        if message.reply_to:
            payload["reply_to"] = {"email": message.reply_to}
        return payload

    async def send(self, message: EmailMessage) -> DeliveryResult:
        headers = {"Authorization": f"Bearer {self._config.api_key}"}
        try:
            async with client_scope(self._client, self._config.timeout) as client:
                resp = await client.post(self._config.api_url, json=self._build_payload(message), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("email.sendgrid.transport_error", error=describe_error(exc))
            return DeliveryResult(success=False, error=describe_error(exc))

        if not resp.is_success:
            return DeliveryResult(
                success=False, error=f"SendGrid API error: {resp.status_code} {resp.text}".rstrip()
            )
        return DeliveryResult(success=True, message_id=resp.headers.get("x-message-id"))


@dataclass
class SesConfig:
    aws_access_key_id: str
    aws_secret_access_key: str
    region_name: str = "us-east-1"
    source_email: str = "notifications@example.com"


class SesEmailProvider:
    """EmailProvider that sends via AWS SES using ``aiobotocore``."""

    name = "aws-ses"

    def __init__(self, config: SesConfig) -> None:
        self._config = config

    def _build_request(self, message: EmailMessage) -> dict[str, Any]:
        body: dict[str, Any] = {"Html": {"Data": message.html, "Charset": "UTF-8"}}
        if message.text:
            body["Text"] = {"Data": message.text, "Charset": "UTF-8"}
        request: dict[str, Any] = {
            "Source": message.from_email or self._config.source_email,
            "Destination": {"ToAddresses": [message.to]},
            "Message": {
                "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                "Body": body,
            },
        }
        if message.reply_to:
            request["ReplyToAddresses"] = [message.reply_to]
        return request

    async def send(self, message: EmailMessage) -> DeliveryResult:  # pragma: no cover
        session_mod = _require_aiobotocore()
        session = session_mod.get_session()
        try:
            async with session.create_client(
                "ses",
                region_name=self._config.region_name,
                aws_access_key_id=self._config.aws_access_key_id,
                aws_secret_access_key=self._config.aws_secret_access_key,
            ) as client:
                resp = await client.send_email(**self._build_request(message))
        except Exception as exc:  # noqa: BLE001
            logger.warning("email.ses.send_failed", error=str(exc))
            return DeliveryResult(success=False, error=f"AWS SES API error: {exc}")
        return DeliveryResult(success=True, message_id=resp.get("MessageId", str(uuid.uuid4())))
