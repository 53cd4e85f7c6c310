"""Entry store gateway implementations."""

from __future__ import annotations

import itertools
import threading
from typing import Any, List, Mapping, Optional, Protocol

import httpx
from sqlalchemy import MetaData, Table, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...config import StoreConfig
from ...infra.db import create_store_engine
from ...infra.logging import get_logger
from .errors import EntryStoreError, StoreConfigurationError
from .models import Entry, utcnow

__all__ = [
    "EntryStoreGateway",
    "InMemoryEntryStoreGateway",
    "PostgresEntryStoreGateway",
    "RestEntryStoreGateway",
    "build_entry_store_gateway",
    "ENTRIES_TABLE",
]

logger = get_logger(__name__)

ENTRIES_TABLE = "entries"
REST_PATH = "/rest/v1"
SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"


class EntryStoreGateway(Protocol):  # pragma: no cover
    """Read and insert operations the entries endpoint relies on."""

    def list_entries(self) -> List[Entry]:
        """Return every entry, newest ``timestamp`` first."""

    def create_entry(self, *, title: str, description: Optional[str]) -> Entry:
        """Insert one entry and return the complete persisted row."""

    def close(self) -> None: ...


class InMemoryEntryStoreGateway(EntryStoreGateway):
    """Simple in-memory store used for local development and tests."""

    def __init__(self) -> None:
        self._entries: List[Entry] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def list_entries(self) -> List[Entry]:
        with self._lock:
            records = list(self._entries)
        records.sort(key=lambda entry: (entry.timestamp, entry.id), reverse=True)
        return records

    def create_entry(self, *, title: str, description: Optional[str]) -> Entry:
        with self._lock:
            record = Entry(
                id=next(self._ids),
                title=title,
                description=description,
                timestamp=utcnow(),
            )
            self._entries.append(record)
        return record

    def close(self) -> None:
        return None


class RestEntryStoreGateway(EntryStoreGateway):
    """httpx adapter speaking the PostgREST dialect exposed by managed Postgres hosts."""

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        *,
        table: str = ENTRIES_TABLE,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._table = table
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}{REST_PATH}",
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
            },
            timeout=timeout,
            transport=transport,
        )

    def list_entries(self) -> List[Entry]:
        response = self._request(
            "GET",
            params={"select": "*", "order": "timestamp.desc"},
        )
        rows = _decode_json(response)
        if not isinstance(rows, list):
            raise EntryStoreError("Entry store returned a non-list payload")
        return [_row_to_entry(row) for row in rows]

    def create_entry(self, *, title: str, description: Optional[str]) -> Entry:
        response = self._request(
            "POST",
            json={"title": title, "description": description},
            headers={
                "Prefer": "return=representation",
                "Accept": SINGLE_OBJECT_MEDIA_TYPE,
            },
        )
        row = _decode_json(response)
        if not isinstance(row, dict):
            raise EntryStoreError("Entry store did not return the created entry")
        return _row_to_entry(row)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, f"/{self._table}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "entry_store_request_failed",
                extra={"method": method, "error": exc.__class__.__name__},
            )
            raise EntryStoreError(str(exc) or exc.__class__.__name__) from exc
        if response.is_error:
            raise EntryStoreError(_error_message(response))
        return response


class PostgresEntryStoreGateway(EntryStoreGateway):
    """SQLAlchemy-backed adapter that talks to the entries table directly."""

    def __init__(
        self,
        engine: Engine,
        *,
        table: Optional[Table] = None,
    ) -> None:
        self._engine = engine
        if table is not None:
            self._entries = table
        else:
            try:
                self._entries = Table(
                    ENTRIES_TABLE, MetaData(), autoload_with=self._engine
                )
            except SQLAlchemyError as exc:
                raise EntryStoreError(_sqlalchemy_message(exc)) from exc

    def list_entries(self) -> List[Entry]:
        table = self._entries
        stmt = select(table).order_by(table.c.timestamp.desc(), table.c.id.desc())
        try:
            with self._engine.begin() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise EntryStoreError(_sqlalchemy_message(exc)) from exc
        return [_row_to_entry(row) for row in rows]

    def create_entry(self, *, title: str, description: Optional[str]) -> Entry:
        stmt = (
            insert(self._entries)
            .values(title=title, description=description)
            .returning(self._entries)
        )
        try:
            with self._engine.begin() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            raise EntryStoreError(_sqlalchemy_message(exc)) from exc
        if row is None:
            raise EntryStoreError("Entry store did not return the created entry")
        return _row_to_entry(row)

    def close(self) -> None:
        self._engine.dispose()


def build_entry_store_gateway(store: StoreConfig) -> EntryStoreGateway:
    """Factory that returns the gateway selected by ``store.backend``."""

    url, key = store.url, store.service_role_key
    if not url or not key:
        raise StoreConfigurationError()
    if store.backend == "memory":
        logger.warning("entry_store_in_memory", extra={"backend": store.backend})
        return InMemoryEntryStoreGateway()
    if store.backend == "postgres":
        return PostgresEntryStoreGateway(create_store_engine(url, key))
    return RestEntryStoreGateway(url, key, timeout=store.timeout_seconds)


def _row_to_entry(row: Mapping[str, Any]) -> Entry:
    try:
        return Entry.from_row(row)
    except (TypeError, ValueError) as exc:
        raise EntryStoreError(str(exc)) from exc


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise EntryStoreError("Entry store returned invalid JSON") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "details"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    text = response.text.strip()
    return text or f"{response.status_code} {response.reason_phrase}".strip()


def _sqlalchemy_message(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original or exc)
