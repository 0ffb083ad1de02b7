"""Application notifications – models, storage ports, templates and the dispatcher."""
from depot_notify.application.notifications.models import (
    DEFAULT_TYPE_PREFERENCES,
    Channel,
    ChannelResult,
    ContactInfo,
    IntentStatus,
    Notification,
    NotificationIntent,
    NotificationPreferences,
    NotificationRequest,
    NotificationResult,
    NotificationType,
    UserProfile,
)
from depot_notify.application.notifications.preferences import filter_enabled_channels, resolve_contact
from depot_notify.application.notifications.repository import (
    NotificationIntentRepository,
    NotificationRepository,
    PreferenceRepository,
    UserDirectory,
)
from depot_notify.application.notifications.in_memory import (
    InMemoryNotificationIntentRepository,
    InMemoryNotificationRepository,
    InMemoryPreferenceRepository,
    InMemoryUserDirectory,
)
from depot_notify.application.notifications.templates import TEMPLATE_NAMES, EmailTemplateRenderer, RenderedEmail
from depot_notify.application.notifications.dispatcher import (
    NO_ENABLED_CHANNELS,
    PARTIAL_FAILURE,
    NotificationDispatcher,
    build_request,
)

__all__ = [
    "DEFAULT_TYPE_PREFERENCES",
    "NO_ENABLED_CHANNELS",
    "PARTIAL_FAILURE",
    "TEMPLATE_NAMES",
    "Channel",
    "ChannelResult",
    "ContactInfo",
    "EmailTemplateRenderer",
    "InMemoryNotificationIntentRepository",
    "InMemoryNotificationRepository",
    "InMemoryPreferenceRepository",
    "InMemoryUserDirectory",
    "IntentStatus",
    "Notification",
    "NotificationDispatcher",
    "NotificationIntent",
    "NotificationIntentRepository",
    "NotificationPreferences",
    "NotificationRepository",
    "NotificationRequest",
    "NotificationResult",
    "NotificationType",
    "PreferenceRepository",
    "RenderedEmail",
    "UserDirectory",
    "UserProfile",
    "build_request",
    "filter_enabled_channels",
    "resolve_contact",
]
