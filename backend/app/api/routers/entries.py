"""Entry list/create endpoints."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...api.dependencies import get_entry_gateway, get_notifier
from ...domain.entrystore.errors import InvalidEntryPayload
from ...domain.entrystore.gateway import EntryStoreGateway
from ...domain.entrystore.models import Entry
from ...infra.logging import get_logger
from ...infra.webhooks import EntryNotifier

router = APIRouter(tags=["entries"])
logger = get_logger(__name__)


class EntryCreateRequest(BaseModel):
    """Lenient decode of the POST body: wrong-typed fields count as absent."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(default="", description="Required; trimmed before use.")
    description: Optional[str] = Field(default=None)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class EntryItem(BaseModel):
    id: Union[int, str]
    title: str
    description: Optional[str] = None
    timestamp: datetime


class EntryListResponse(BaseModel):
    data: List[EntryItem] = Field(default_factory=list)


class EntryCreatedResponse(BaseModel):
    data: EntryItem


async def read_entry_payload(request: Request) -> EntryCreateRequest:
    """Parse the body as JSON, treating unparseable or non-object bodies as empty."""

    raw = await request.body()
    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        logger.info("entry_payload_unparseable", extra={"size": len(raw)})
        body = None
    if not isinstance(body, dict):
        body = {}
    return EntryCreateRequest.model_validate(body)


@router.get(
    "/entries",
    response_model=EntryListResponse,
    summary="List entries, newest first",
)
@router.get("/", response_model=EntryListResponse, include_in_schema=False)
def list_entries(
    entry_gateway: EntryStoreGateway = Depends(get_entry_gateway),
) -> EntryListResponse:
    entries = entry_gateway.list_entries()
    return EntryListResponse(data=[_serialize_entry(entry) for entry in entries])


@router.post(
    "/entries",
    response_model=EntryCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an entry and notify downstream webhooks",
)
@router.post(
    "/",
    response_model=EntryCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
def create_entry(
    background_tasks: BackgroundTasks,
    entry_gateway: EntryStoreGateway = Depends(get_entry_gateway),
    payload: EntryCreateRequest = Depends(read_entry_payload),
    notifier: EntryNotifier = Depends(get_notifier),
) -> EntryCreatedResponse:
    if not payload.title:
        raise InvalidEntryPayload()

    entry = entry_gateway.create_entry(
        title=payload.title, description=payload.description
    )
    logger.info("entry_created", extra={"entry_id": entry.id})

    # Runs after the response is sent; the server keeps it alive until done.
    if notifier.enabled:
        background_tasks.add_task(
            notifier.notify_entry_created,
            title=payload.title,
            description=payload.description,
        )
    return EntryCreatedResponse(data=_serialize_entry(entry))


def _serialize_entry(entry: Entry) -> EntryItem:
    return EntryItem(
        id=entry.id,
        title=entry.title,
        description=entry.description,
        timestamp=entry.timestamp,
    )
