"""Exception handlers rendering failures as ``{"error": message}`` bodies."""

from __future__ import annotations

from typing import Mapping, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..domain.entrystore.errors import (
    EntryRelayError,
    EntryStoreError,
    StoreConfigurationError,
)
from ..infra.logging import get_logger

__all__ = [
    "ALLOWED_METHODS",
    "METHOD_NOT_ALLOWED_MESSAGE",
    "error_response",
    "register_exception_handlers",
]

logger = get_logger(__name__)

ALLOWED_METHODS = "GET, POST, OPTIONS"
METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed"


def error_response(
    message: str,
    status_code: int,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


async def _handle_entry_relay_error(
    request: Request, exc: EntryRelayError
) -> JSONResponse:
    if isinstance(exc, EntryStoreError):
        logger.error(
            "entry_store_error",
            extra={"method": request.method, "detail": exc.message},
        )
    elif exc.status_code < 500:
        logger.warning(
            "entry_request_rejected",
            extra={"method": request.method, "detail": exc.message},
        )
    return error_response(exc.message, exc.status_code)


async def _handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        # Configuration is checked ahead of method dispatch.
        if not request.app.state.settings.store.is_configured:
            return await _handle_entry_relay_error(request, StoreConfigurationError())
        return error_response(
            METHOD_NOT_ALLOWED_MESSAGE,
            exc.status_code,
            headers={"Allow": ALLOWED_METHODS},
        )
    return error_response(str(exc.detail), exc.status_code, headers=exc.headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EntryRelayError, _handle_entry_relay_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
