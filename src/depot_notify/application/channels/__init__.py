"""Application channels – delivery providers behind a uniform ``send`` contract."""
from depot_notify.application.channels.base import (
    BulkSmsResult,
    DeliveryResult,
    EmailMessage,
    EmailProvider,
    PushMessage,
    PushProvider,
    SmsMessage,
    SmsProvider,
    WhatsAppMessage,
    WhatsAppProvider,
)
from depot_notify.application.channels.factory import (
    ChannelProviders,
    create_email_provider,
    create_push_provider,
    create_sms_provider,
    create_whatsapp_provider,
)
from depot_notify.application.channels.in_memory import (
    InMemoryEmailProvider,
    InMemoryPushProvider,
    InMemorySmsProvider,
    InMemoryWhatsAppProvider,
)

__all__ = [
    "BulkSmsResult",
    "ChannelProviders",
    "DeliveryResult",
    "EmailMessage",
    "EmailProvider",
    "InMemoryEmailProvider",
    "InMemoryPushProvider",
    "InMemorySmsProvider",
    "InMemoryWhatsAppProvider",
    "PushMessage",
    "PushProvider",
    "SmsMessage",
    "SmsProvider",
    "WhatsAppMessage",
    "WhatsAppProvider",
    "create_email_provider",
    "create_push_provider",
    "create_sms_provider",
    "create_whatsapp_provider",
]
