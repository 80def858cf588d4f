"""In-memory entity storage."""

from .cache import ConnectionCache
from .entity_store import EntityStore

__all__ = ["ConnectionCache", "EntityStore"]
