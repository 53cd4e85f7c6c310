"""Config package exporting loader helpers."""

from .loader import (
    NotificationConfig,
    Settings,
    StoreConfig,
    WebhookTarget,
    load_settings,
)

__all__ = [
    "Settings",
    "StoreConfig",
    "NotificationConfig",
    "WebhookTarget",
    "load_settings",
]
