"""CORS middleware acting as the outermost request boundary."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp

from ..infra.logging import get_logger
from .errors import ALLOWED_METHODS, error_response

logger = get_logger(__name__)

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type"
PREFLIGHT_BODY = "ok"


def cors_headers(allow_origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
    }


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """
    Answer preflight requests and stamp CORS headers on every response.

    OPTIONS requests are acknowledged before routing, so they never reach the
    configuration guard or the entry store. Exceptions that escaped the
    exception handlers are converted to a JSON 500 here.
    """

    def __init__(self, app: ASGIApp, allow_origin: str = "*") -> None:
        super().__init__(app)
        self.headers = cors_headers(allow_origin)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            return PlainTextResponse(PREFLIGHT_BODY, headers=self.headers)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "unhandled_request_error",
                extra={"method": request.method, "path": request.url.path},
            )
            response = error_response(str(exc) or exc.__class__.__name__, 500)

        response.headers.update(self.headers)
        return response
