"""
depot_notify – event-sourced notification pipeline for the warehouse marketplace.

Import path convention::

    from depot_notify.kernel.errors import ValidationError
    from depot_notify.application.event_bus import EventBus
    from depot_notify.application.notifications import NotificationDispatcher
    from depot_notify.pipeline import NotificationPipeline
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
