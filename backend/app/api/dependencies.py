"""Shared API dependencies."""

from __future__ import annotations

import threading

from fastapi import Depends, Request

from ..config import Settings
from ..domain.entrystore.errors import StoreConfigurationError
from ..domain.entrystore.gateway import EntryStoreGateway, build_entry_store_gateway
from ..infra.logging import get_logger
from ..infra.webhooks import EntryNotifier

__all__ = [
    "get_settings",
    "get_entry_gateway",
    "get_notifier",
]

logger = get_logger(__name__)

_gateway_lock = threading.Lock()


def get_settings(request: Request) -> Settings:
    """Return the settings the application was created with."""

    return request.app.state.settings


def get_entry_gateway(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> EntryStoreGateway:
    """Guard store configuration, then return the app-wide gateway (built on first use)."""

    if not settings.store.is_configured:
        logger.error(
            "entry_store_not_configured",
            extra={
                "has_url": bool(settings.store.url),
                "has_key": bool(settings.store.service_role_key),
            },
        )
        raise StoreConfigurationError()
    # Sync on purpose: the first build may block on engine setup.
    gateway = request.app.state.entry_gateway
    if gateway is None:
        with _gateway_lock:
            gateway = request.app.state.entry_gateway
            if gateway is None:
                gateway = build_entry_store_gateway(settings.store)
                request.app.state.entry_gateway = gateway
                logger.info(
                    "entry_store_ready", extra={"backend": settings.store.backend}
                )
    return gateway


def get_notifier(request: Request) -> EntryNotifier:
    """Return the webhook notifier bound to the application."""

    return request.app.state.notifier
