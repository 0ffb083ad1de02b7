"""Infrastructure errors – transport and persistence failures."""

from __future__ import annotations

from typing import Any

from depot_notify.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"
    http_status = 503


class ExternalServiceError(InfrastructureError):
    """A delivery provider returned an unexpected response or was unreachable."""

    default_code = "external_service_error"

    def __init__(
        self,
        service: str,
        message: str | None = None,
        *,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or f"External service '{service}' error", **kwargs)
        self.service = service
        self.status_code = status_code


class PersistenceError(InfrastructureError):
    """The backing store rejected a read or write."""

    default_code = "persistence_error"

    def __init__(self, table: str, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(message or f"Failed to access '{table}'", **kwargs)
        self.table = table


__all__ = [
    "ExternalServiceError",
    "InfrastructureError",
    "PersistenceError",
]
