"""Router exports for FastAPI composition."""

from . import entries

__all__ = ["entries"]
