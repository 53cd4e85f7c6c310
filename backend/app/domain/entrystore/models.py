"""Entry data model shared by the store gateways and the API layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

__all__ = [
    "Entry",
    "EntryId",
    "utcnow",
    "parse_timestamp",
]

EntryId = Union[int, str]


def utcnow() -> datetime:
    """Return timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Coerce a store-provided timestamp into a timezone-aware datetime."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError(f"invalid entry timestamp: {value!r}") from exc
    else:
        raise ValueError(f"invalid entry timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Entry:
    """Represents a persisted entry row."""

    id: EntryId
    title: str
    description: Optional[str]
    timestamp: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Entry":
        """Build an entry from a store row, rejecting rows missing required columns."""

        try:
            entry_id = row["id"]
            title = row["title"]
            timestamp = row["timestamp"]
        except KeyError as exc:
            raise ValueError(f"entry row is missing column {exc.args[0]!r}") from exc
        description = row.get("description")
        return cls(
            id=entry_id,
            title=str(title),
            description=description if isinstance(description, str) else None,
            timestamp=parse_timestamp(timestamp),
        )
