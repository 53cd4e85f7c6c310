"""Best-effort webhook fan-out triggered after an entry is created."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import httpx

from ..config import NotificationConfig, WebhookTarget
from ..domain.entrystore.models import utcnow
from .logging import get_logger

__all__ = [
    "EntryNotifier",
    "SYNC_SECRET_HEADER",
    "REVALIDATE_SECRET_HEADER",
    "REVALIDATE_PATH",
    "format_timestamp",
]

logger = get_logger(__name__)

SYNC_SECRET_HEADER = "x-webhook-secret"
REVALIDATE_SECRET_HEADER = "x-revalidate-secret"
REVALIDATE_PATH = "/"


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""

    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class _Delivery:
    name: str
    target: WebhookTarget
    secret_header: str
    payload: Dict[str, Any]


class EntryNotifier:
    """Notifies the content-sync and page-revalidation webhooks.

    Deliveries are at-most-once: failures, timeouts and non-2xx answers are
    logged and dropped. Nothing raised here reaches the caller.
    """

    def __init__(
        self,
        config: NotificationConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._config.sync.enabled or self._config.revalidate.enabled

    async def notify_entry_created(
        self, *, title: str, description: Optional[str]
    ) -> Dict[str, bool]:
        """Deliver both notifications concurrently; return per-webhook success."""

        deliveries = self._plan(title=title, description=description)
        if not deliveries:
            return {}
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            ) as client:
                outcomes = await asyncio.gather(
                    *(self._deliver(client, delivery) for delivery in deliveries)
                )
        except Exception:
            logger.exception("webhook_fanout_failed")
            return {delivery.name: False for delivery in deliveries}
        return {
            delivery.name: outcome for delivery, outcome in zip(deliveries, outcomes)
        }

    def _plan(self, *, title: str, description: Optional[str]) -> list[_Delivery]:
        deliveries: list[_Delivery] = []
        if self._config.sync.enabled:
            deliveries.append(
                _Delivery(
                    name="sync",
                    target=self._config.sync,
                    secret_header=SYNC_SECRET_HEADER,
                    payload={
                        "title": title,
                        "description": description,
                        "timestamp": format_timestamp(self._clock()),
                    },
                )
            )
        if self._config.revalidate.enabled:
            deliveries.append(
                _Delivery(
                    name="revalidate",
                    target=self._config.revalidate,
                    secret_header=REVALIDATE_SECRET_HEADER,
                    payload={"path": REVALIDATE_PATH},
                )
            )
        return deliveries

    async def _deliver(self, client: httpx.AsyncClient, delivery: _Delivery) -> bool:
        timeout = self._config.timeout_seconds
        try:
            # httpx timeouts are per connect/read/write step; cap the whole call.
            response = await asyncio.wait_for(
                client.post(
                    str(delivery.target.url),
                    json=delivery.payload,
                    headers={
                        "Content-Type": "application/json",
                        delivery.secret_header: str(delivery.target.secret),
                    },
                ),
                timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "webhook_delivery_failed",
                extra={
                    "webhook": delivery.name,
                    "error": "TimeoutError",
                    "detail": f"no response within {timeout}s",
                },
            )
            return False
        except Exception as exc:
            # One webhook failing must not fail the other delivery.
            logger.warning(
                "webhook_delivery_failed",
                extra={
                    "webhook": delivery.name,
                    "error": exc.__class__.__name__,
                    "detail": str(exc),
                },
            )
            return False
        if response.is_error:
            logger.warning(
                "webhook_delivery_rejected",
                extra={"webhook": delivery.name, "status_code": response.status_code},
            )
            return False
        logger.info(
            "webhook_delivered",
            extra={"webhook": delivery.name, "status_code": response.status_code},
        )
        return True
