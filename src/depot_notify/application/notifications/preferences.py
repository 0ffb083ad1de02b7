"""Application notifications – channel filtering and contact resolution."""
from __future__ import annotations

from typing import Iterable

from depot_notify.application.notifications.models import (
    Channel,
    ContactInfo,
    NotificationPreferences,
    NotificationType,
    UserProfile,
)

__all__ = ["filter_enabled_channels", "resolve_contact"]


def filter_enabled_channels(
    requested: Iterable[Channel | str],
    type: NotificationType | str,
    preferences: NotificationPreferences,
) -> list[Channel]:
    """Keep the requested channels the user allows for this notification type.

    A channel survives when its global ``{channel}_enabled`` flag is on and
    the per-type table does not switch it off explicitly. Request order is
    preserved and duplicates are dropped.
    """
    type_key = NotificationType(type).value
    per_type = preferences.type_preferences.get(type_key) or {}
    enabled: list[Channel] = []
    for raw in requested:
        channel = Channel(raw)
        if channel in enabled:
            continue
        if not preferences.channel_enabled(channel):
            continue
        if per_type.get(channel.value) is False:
            continue
        enabled.append(channel)
    return enabled


def resolve_contact(
    profile: UserProfile | None,
    preferences: NotificationPreferences | None,
) -> ContactInfo:
    """Merge profile and preference contact fields; preference values win."""
    prefs = preferences
    return ContactInfo(
        email=(prefs and prefs.email_address) or (profile and profile.email) or None,
        phone=(prefs and prefs.phone_number) or (profile and profile.phone_number) or None,
        whatsapp=(prefs and prefs.whatsapp_number) or None,
        push_token=(prefs and prefs.push_token) or None,
        name=(profile and profile.name) or None,
    )
