"""Application channels – push notifications via Firebase Cloud Messaging HTTP v1."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from depot_notify.application.channels._http import client_scope, describe_error, json_object
from depot_notify.application.channels.base import DeliveryResult, PushMessage
from depot_notify.observability.logging import get_logger

__all__ = ["FcmConfig", "FcmPushProvider"]

logger = get_logger(__name__)


@dataclass
class FcmConfig:
    server_key: str
    project_id: str
    api_url: str = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
    timeout: float = 10.0


class FcmPushProvider:
    """PushProvider that posts one message per device token to FCM."""

    name = "fcm"

    def __init__(self, config: FcmConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    def _build_payload(self, message: PushMessage) -> dict[str, Any]:
        msg: dict[str, Any] = {
            "token": message.token,
            "notification": {"title": message.title, "body": message.body},
        }
        if message.data:
            # FCM data values must be strings
            msg["data"] = {k: str(v) for k, v in message.data.items()}
        return {"message": msg}

    async def send(self, message: PushMessage) -> DeliveryResult:
        url = self._config.api_url.format(project_id=self._config.project_id)
        headers = {"Authorization": f"Bearer {self._config.server_key}"}
        try:
            async with client_scope(self._client, self._config.timeout) as client:
                resp = await client.post(url, json=self._build_payload(message), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("push.fcm.transport_error", error=describe_error(exc))
            return DeliveryResult(success=False, error=describe_error(exc))

        body = json_object(resp) or {}
        if not resp.is_success:
            error = body.get("error", {}).get("message") if isinstance(body.get("error"), dict) else None
            return DeliveryResult(success=False, error=f"FCM API error: {error or resp.status_code}")
        return DeliveryResult(success=True, message_id=body.get("name"))
