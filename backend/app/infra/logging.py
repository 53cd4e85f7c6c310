"""Structured logging helpers shared across the service."""

from __future__ import annotations

import logging
import sys
from typing import Any

__all__ = ["configure_logging", "get_logger"]

ROOT_LOGGER_NAME = "entry_relay"

# Attributes present on every LogRecord; anything else arrived via ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class KeyValueFormatter(logging.Formatter):
    """Render ``extra`` fields as trailing ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not extras:
            return base
        rendered = " ".join(f"{key}={_render(value)}" for key, value in extras.items())
        return f"{base} {rendered}"


def _render(value: Any) -> str:
    text = str(value)
    if " " in text:
        return repr(text)
    return text


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Install a single stream handler on the service root logger."""

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    if not any(getattr(h, "_entry_relay", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            KeyValueFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        handler._entry_relay = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the service root logger."""

    if name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
