"""Database connection helpers."""

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url


def create_store_engine(
    database_url: str, service_role_key: str, **engine_kwargs: Any
) -> Engine:
    """Create an engine for ``database_url``, using the privileged key as password."""

    url = make_url(database_url)
    if url.password is None:
        url = url.set(password=service_role_key)
    engine_kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, echo=False, future=True, **engine_kwargs)
