"""Remote store collaborators."""

from .base import BaseStore, Join, OrderBy, Row
from .memory import MemoryStore
from .rest import RestStore

__all__ = ["BaseStore", "Join", "MemoryStore", "OrderBy", "RestStore", "Row"]
