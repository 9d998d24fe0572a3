"""Bounded most-recent-first cache of saved car locations."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from importlib import resources
from pathlib import Path

import jsonschema

from .const import OFFLINE_CACHE_CAPACITY, OFFLINE_CACHE_SCHEMA_FILENAME, OFFLINE_CACHE_VERSION
from .exceptions import PyParkLocatorError, ValidationError
from .mapping import map_saved_location, saved_location_to_row
from .models import SavedLocation

_LOGGER = logging.getLogger(__name__)
_SCHEMA_CACHE: dict | None = None


def load_cache_schema() -> dict:
    global _SCHEMA_CACHE
    if _SCHEMA_CACHE is None:
        schema_path = resources.files("pyparklocator") / OFFLINE_CACHE_SCHEMA_FILENAME
        _SCHEMA_CACHE = json.loads(schema_path.read_text(encoding="utf-8"))
    return _SCHEMA_CACHE


class OfflineCache:
    """Fixed-capacity list of locations keyed by id, newest first.

    Only consulted when the remote store cannot be reached.
    """

    def __init__(self, capacity: int = OFFLINE_CACHE_CAPACITY) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValidationError("capacity must be a positive integer.")
        self._capacity = capacity
        self._entries: list[SavedLocation] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> list[SavedLocation]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SavedLocation]:
        return iter(list(self._entries))

    def put(self, location: SavedLocation) -> None:
        remaining = [entry for entry in self._entries if entry.id != location.id]
        self._entries = [location, *remaining][: self._capacity]

    def discard(self, location_id: str) -> None:
        self._entries = [entry for entry in self._entries if entry.id != location_id]

    def newest(self) -> SavedLocation | None:
        return self._entries[0] if self._entries else None

    def clear(self) -> None:
        self._entries = []

    def to_dict(self) -> dict:
        return {
            "version": OFFLINE_CACHE_VERSION,
            "locations": [saved_location_to_row(entry) for entry in self._entries],
        }

    def dump(self, path: str | Path) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def from_dict(cls, data: dict, capacity: int = OFFLINE_CACHE_CAPACITY) -> OfflineCache:
        try:
            jsonschema.validate(instance=data, schema=load_cache_schema())
        except jsonschema.ValidationError as exc:
            raise ValidationError(
                "Offline cache does not match its schema.",
                detail=exc.message,
            ) from exc
        cache = cls(capacity)
        try:
            locations = [map_saved_location(row) for row in data["locations"]]
        except PyParkLocatorError as exc:
            raise ValidationError("Offline cache holds an invalid location.") from exc
        # Stored newest first; insert oldest first so order survives.
        for location in reversed(locations):
            cache.put(location)
        return cache

    @classmethod
    def load(cls, path: str | Path, capacity: int = OFFLINE_CACHE_CAPACITY) -> OfflineCache:
        file_path = Path(path)
        if not file_path.is_file():
            _LOGGER.debug("Offline cache %s not found, starting empty", file_path)
            return cls(capacity)
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValidationError("Offline cache is not valid JSON.") from exc
        return cls.from_dict(data, capacity)
