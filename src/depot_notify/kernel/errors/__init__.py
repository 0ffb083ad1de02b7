"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError          (domain.py)
    │   ├── ValidationError
    │   ├── NotFoundError
    │   └── ConflictError
    ├── ApplicationError     (application.py)
    │   ├── UnauthorizedError
    │   ├── ListenerLimitError
    │   └── ConfigError
    │       ├── MissingRequiredSettingError
    │       ├── InvalidSettingValueError
    │       └── ProviderNotConfiguredError
    └── InfrastructureError  (infrastructure.py)
        ├── ExternalServiceError
        └── PersistenceError
"""

from depot_notify.kernel.errors.application import (
    ApplicationError,
    ConfigError,
    InvalidSettingValueError,
    ListenerLimitError,
    MissingRequiredSettingError,
    ProviderNotConfiguredError,
    UnauthorizedError,
)
from depot_notify.kernel.errors.base import BaseError
from depot_notify.kernel.errors.domain import (
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from depot_notify.kernel.errors.infrastructure import (
    ExternalServiceError,
    InfrastructureError,
    PersistenceError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConfigError",
    "ConflictError",
    "DomainError",
    "ExternalServiceError",
    "InfrastructureError",
    "InvalidSettingValueError",
    "ListenerLimitError",
    "MissingRequiredSettingError",
    "NotFoundError",
    "PersistenceError",
    "ProviderNotConfiguredError",
    "UnauthorizedError",
    "ValidationError",
]
