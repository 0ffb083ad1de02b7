"""Config – NotifySettings, the pipeline's 12-factor settings."""
from __future__ import annotations

import dataclasses

from depot_notify.kernel.errors import InvalidSettingValueError

__all__ = ["EMAIL_PROVIDERS", "NotifySettings"]

EMAIL_PROVIDERS = frozenset({"sendgrid", "aws-ses"})


@dataclasses.dataclass
class NotifySettings:
    """Runtime settings; each field maps to its upper-cased environment variable.

    Provider credentials are optional. A provider whose credentials are
    missing is simply not built, which disables its channel.
    """

    _prefix: dataclasses.ClassVar[str] = ""

    environment: str = "production"
    cron_secret: str | None = None
    site_url: str = "http://localhost:3000"

    event_batch_size: int = 10
    email_batch_size: int = 10
    max_retries: int = 3
    occupancy_alert_threshold: float = 90.0
    event_bus_max_listeners: int = 50
    stale_claim_seconds: float = 900.0

    email_provider: str = "sendgrid"
    sendgrid_api_key: str | None = None
    sendgrid_from_email: str = "notifications@example.com"
    sendgrid_from_name: str = "Warehouse Notifications"
    aws_ses_region: str = "us-east-1"
    aws_ses_access_key_id: str | None = None
    aws_ses_secret_access_key: str | None = None
    aws_ses_from_email: str = "notifications@example.com"

    netgsm_username: str | None = None
    netgsm_password: str | None = None
    netgsm_header: str = "DEPOT"
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None
    twilio_whatsapp_number: str | None = None

    fcm_server_key: str | None = None
    fcm_project_id: str | None = None

    provider_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        for name in ("event_batch_size", "email_batch_size", "max_retries", "event_bus_max_listeners"):
            value = getattr(self, name)
            if value < 1:
                raise InvalidSettingValueError(name, value, "must be >= 1")
        if not 0 <= self.occupancy_alert_threshold <= 100:
            raise InvalidSettingValueError(
                "occupancy_alert_threshold", self.occupancy_alert_threshold, "must be within 0..100"
            )
        if self.email_provider not in EMAIL_PROVIDERS:
            raise InvalidSettingValueError(
                "email_provider", self.email_provider, f"expected one of {sorted(EMAIL_PROVIDERS)}"
            )
        if self.stale_claim_seconds <= 0:
            raise InvalidSettingValueError("stale_claim_seconds", self.stale_claim_seconds, "must be > 0")
        if self.provider_timeout_seconds <= 0:
            raise InvalidSettingValueError(
                "provider_timeout_seconds", self.provider_timeout_seconds, "must be > 0"
            )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"
