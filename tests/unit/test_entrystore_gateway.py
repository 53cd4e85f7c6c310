"""Tests for entry store gateways."""

from __future__ import annotations

import json
from datetime import timezone

import httpx
import pytest
import sqlalchemy as sa

from backend.app.config import StoreConfig
from backend.app.domain.entrystore.errors import (
    EntryStoreError,
    StoreConfigurationError,
)
from backend.app.domain.entrystore.gateway import (
    InMemoryEntryStoreGateway,
    PostgresEntryStoreGateway,
    RestEntryStoreGateway,
    build_entry_store_gateway,
)

pytestmark = [pytest.mark.entrystore]

STORE_URL = "https://project.store.example"
SERVICE_KEY = "service-role-key"


def test_in_memory_create_assigns_id_and_timestamp():
    gateway = InMemoryEntryStoreGateway()

    record = gateway.create_entry(title="First", description=None)

    assert record.id == 1
    assert record.title == "First"
    assert record.description is None
    assert record.timestamp.tzinfo is not None


def test_in_memory_list_is_newest_first():
    gateway = InMemoryEntryStoreGateway()
    first = gateway.create_entry(title="first", description="a")
    second = gateway.create_entry(title="second", description=None)
    third = gateway.create_entry(title="third", description="c")

    listed = gateway.list_entries()

    assert [entry.id for entry in listed] == [third.id, second.id, first.id]


@pytest.fixture
def sql_engine() -> sa.engine.Engine:
    return sa.create_engine("sqlite+pysqlite:///:memory:", future=True)


@pytest.fixture
def entries_table(sql_engine) -> sa.Table:
    metadata = sa.MetaData()
    table = sa.Table(
        "entries",
        metadata,
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    metadata.create_all(sql_engine)
    return table


def test_postgres_gateway_returns_persisted_row(sql_engine, entries_table):
    gateway = PostgresEntryStoreGateway(sql_engine, table=entries_table)

    record = gateway.create_entry(title="Stored", description="body")

    assert record.id == 1
    assert record.title == "Stored"
    assert record.description == "body"
    assert record.timestamp.tzinfo == timezone.utc


def test_postgres_gateway_lists_newest_first(sql_engine, entries_table):
    gateway = PostgresEntryStoreGateway(sql_engine, table=entries_table)
    older = gateway.create_entry(title="older", description=None)
    newer = gateway.create_entry(title="newer", description=None)

    listed = gateway.list_entries()

    assert [entry.id for entry in listed] == [newer.id, older.id]
    assert listed[1].description is None


def test_postgres_gateway_reflects_existing_table(sql_engine, entries_table):
    gateway = PostgresEntryStoreGateway(sql_engine)

    record = gateway.create_entry(title="Reflected", description=None)

    assert gateway.list_entries() == [record]


def test_postgres_gateway_wraps_database_errors(sql_engine):
    table = sa.Table(
        "entries",
        sa.MetaData(),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text()),
        sa.Column("description", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True)),
    )
    gateway = PostgresEntryStoreGateway(sql_engine, table=table)

    with pytest.raises(EntryStoreError, match="no such table"):
        gateway.list_entries()
    with pytest.raises(EntryStoreError, match="no such table"):
        gateway.create_entry(title="x", description=None)


def test_postgres_gateway_reflection_failure_is_store_error(sql_engine):
    with pytest.raises(EntryStoreError):
        PostgresEntryStoreGateway(sql_engine)


def _rest_gateway(handler) -> RestEntryStoreGateway:
    return RestEntryStoreGateway(
        STORE_URL,
        SERVICE_KEY,
        transport=httpx.MockTransport(handler),
    )


def test_rest_gateway_lists_entries_ordered_by_timestamp():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "id": 2,
                    "title": "newer",
                    "description": None,
                    "timestamp": "2026-03-02T10:00:00.123456+00:00",
                },
                {
                    "id": 1,
                    "title": "older",
                    "description": "text",
                    "timestamp": "2026-03-01T10:00:00Z",
                },
            ],
        )

    entries = _rest_gateway(handler).list_entries()

    assert [entry.id for entry in entries] == [2, 1]
    assert entries[1].description == "text"
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/entries"
    assert request.url.params["select"] == "*"
    assert request.url.params["order"] == "timestamp.desc"
    assert request.headers["apikey"] == SERVICE_KEY
    assert request.headers["authorization"] == f"Bearer {SERVICE_KEY}"


def test_rest_gateway_insert_requests_single_representation():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(
            201,
            json={
                "id": 7,
                "title": body["title"],
                "description": body["description"],
                "timestamp": "2026-03-02T10:00:00+00:00",
            },
        )

    record = _rest_gateway(handler).create_entry(title="Hello", description=None)

    assert record.id == 7
    assert record.title == "Hello"
    request = seen[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"title": "Hello", "description": None}
    assert request.headers["prefer"] == "return=representation"
    assert request.headers["accept"] == "application/vnd.pgrst.object+json"


def test_rest_gateway_surfaces_store_error_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            409,
            json={
                "code": "23505",
                "message": 'duplicate key value violates unique constraint "entries_pkey"',
            },
        )

    with pytest.raises(EntryStoreError) as excinfo:
        _rest_gateway(handler).create_entry(title="dup", description=None)

    assert excinfo.value.message == (
        'duplicate key value violates unique constraint "entries_pkey"'
    )


def test_rest_gateway_wraps_transport_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(EntryStoreError, match="connection refused"):
        _rest_gateway(handler).list_entries()


def test_rest_gateway_rejects_missing_returned_row():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json=[])

    with pytest.raises(EntryStoreError, match="did not return the created entry"):
        _rest_gateway(handler).create_entry(title="lost", description=None)


def test_rest_gateway_rejects_malformed_rows():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"id": 1, "title": "no timestamp"}])

    with pytest.raises(EntryStoreError, match="timestamp"):
        _rest_gateway(handler).list_entries()


@pytest.mark.parametrize(
    "store",
    [
        StoreConfig(url=STORE_URL, service_role_key=None),
        StoreConfig(url=None, service_role_key=SERVICE_KEY),
        StoreConfig(url="", service_role_key=SERVICE_KEY, backend="postgres"),
    ],
)
def test_build_gateway_requires_url_and_key(store):
    with pytest.raises(StoreConfigurationError):
        build_entry_store_gateway(store)


def test_build_gateway_selects_backend():
    memory = build_entry_store_gateway(
        StoreConfig(url=STORE_URL, service_role_key=SERVICE_KEY, backend="memory")
    )
    rest = build_entry_store_gateway(
        StoreConfig(url=STORE_URL, service_role_key=SERVICE_KEY)
    )

    assert isinstance(memory, InMemoryEntryStoreGateway)
    assert isinstance(rest, RestEntryStoreGateway)
    rest.close()
