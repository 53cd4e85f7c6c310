"""FastAPI entrypoint for the entry relay service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .api.errors import register_exception_handlers
from .api.middleware import CorsHeadersMiddleware
from .api.routers import entries
from .config import Settings, load_settings
from .domain.entrystore.gateway import EntryStoreGateway
from .infra.logging import configure_logging, get_logger
from .infra.webhooks import EntryNotifier

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    entry_gateway: Optional[EntryStoreGateway] = None,
    notifier: Optional[EntryNotifier] = None,
) -> FastAPI:
    """Instantiate the FastAPI app with explicit settings and collaborators."""

    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        yield
        gateway = application.state.entry_gateway
        if gateway is not None:
            gateway.close()

    application = FastAPI(title="Entry Relay API", version="0.1.0", lifespan=lifespan)
    application.state.settings = settings
    application.state.entry_gateway = entry_gateway
    application.state.notifier = notifier or EntryNotifier(settings.notifications)
    application.add_middleware(
        CorsHeadersMiddleware, allow_origin=settings.cors_origin
    )
    register_exception_handlers(application)
    application.include_router(entries.router)
    logger.info(
        "app_created",
        extra={
            "environment": settings.environment,
            "store_backend": settings.store.backend,
            "sync_webhook": settings.notifications.sync.enabled,
            "revalidate_webhook": settings.notifications.revalidate.enabled,
        },
    )
    return application


app = create_app()
