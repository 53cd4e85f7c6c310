"""Error taxonomy for entry store access and entry validation."""

from __future__ import annotations

__all__ = [
    "EntryRelayError",
    "EntryStoreError",
    "InvalidEntryPayload",
    "StoreConfigurationError",
    "MISSING_STORE_CONFIG_MESSAGE",
    "MISSING_TITLE_MESSAGE",
]

MISSING_STORE_CONFIG_MESSAGE = "Missing URL or SERVICE_ROLE_KEY"
MISSING_TITLE_MESSAGE = "Invalid payload: 'title' is required"


class EntryRelayError(Exception):
    """Base class for errors mapped onto JSON error responses."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreConfigurationError(EntryRelayError):
    """Store URL or privileged credential is not configured."""

    def __init__(self, message: str = MISSING_STORE_CONFIG_MESSAGE) -> None:
        super().__init__(message)


class InvalidEntryPayload(EntryRelayError):
    """Client supplied a payload that cannot become an entry."""

    status_code = 400

    def __init__(self, message: str = MISSING_TITLE_MESSAGE) -> None:
        super().__init__(message)


class EntryStoreError(EntryRelayError):
    """Failure reported by the datastore; the message is passed through verbatim."""
