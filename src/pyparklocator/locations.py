"""Saved car location ledger with offline fallback."""

from __future__ import annotations

import logging
from typing import Any

from .cache import OfflineCache
from .const import LOCATIONS_TABLE, LOTS_TABLE, SECTIONS_TABLE
from .exceptions import (
    LocationNotFoundError,
    NotAuthenticatedError,
    PyParkLocatorError,
    ValidationError,
)
from .geo import normalize_position
from .mapping import map_saved_location
from .models import GeoPosition, OperationResult, SavedLocation
from .store.base import BaseStore, Join
from .util import require_id

_LOGGER = logging.getLogger(__name__)

LOCATION_JOINS = (
    Join("parking_lot", LOTS_TABLE, "parking_lot_id"),
    Join("section", SECTIONS_TABLE, "section_id"),
)

_UPDATABLE_COLUMNS = {
    "session_id": "parking_session_id",
    "lot_id": "parking_lot_id",
    "section_id": "section_id",
    "spot_id": "spot_id",
    "photo_url": "photo_url",
    "notes": "notes",
}


def _position_columns(position: GeoPosition) -> dict[str, Any]:
    normalized = normalize_position(position)
    return {
        "latitude": normalized.latitude,
        "longitude": normalized.longitude,
        "accuracy": normalized.accuracy,
        "altitude": normalized.altitude,
        "heading": normalized.heading,
    }


class LocationLedger:
    """Own the single active saved location and its offline copies.

    Saving deactivates the previous active record before inserting the new
    one, so at most one record per owner is active and history is kept.
    """

    def __init__(self, store: BaseStore, *, cache: OfflineCache | None = None) -> None:
        self._store = store
        self._cache = cache if cache is not None else OfflineCache()
        self._saved_location: SavedLocation | None = None
        self._error: str | None = None
        self._pending = 0

    @property
    def saved_location(self) -> SavedLocation | None:
        return self._saved_location

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    @property
    def cache(self) -> OfflineCache:
        return self._cache

    def cache_offline(self, location: SavedLocation) -> None:
        self._cache.put(location)

    async def fetch_active(self) -> OperationResult[SavedLocation]:
        """Load the newest active location, falling back to the offline cache."""
        self._begin()
        try:
            owner_id = await self._store.get_owner_id()
            filters: dict[str, Any] = {"is_active": True}
            if owner_id is not None:
                filters["user_id"] = owner_id
            row = await self._store.select_one(
                LOCATIONS_TABLE,
                filters=filters,
                order_by="created_at",
                descending=True,
                joins=LOCATION_JOINS,
            )
            location = map_saved_location(row) if row is not None else None
        except PyParkLocatorError as exc:
            self._error = str(exc)
            cached = self._cache.newest()
            if cached is None:
                _LOGGER.debug("Active location fetch failed with empty cache: %s", exc)
                return OperationResult(error=exc)
            _LOGGER.warning("Active location fetch failed, using offline cache: %s", exc)
            self._saved_location = cached
            return OperationResult(value=cached, from_cache=True)
        finally:
            self._end()
        self._saved_location = location
        if location is not None:
            self._cache.put(location)
        return OperationResult(value=location)

    async def save(
        self,
        position: GeoPosition,
        *,
        session_id: str | None = None,
        lot_id: str | None = None,
        section_id: str | None = None,
        spot_id: str | None = None,
        photo_url: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[SavedLocation]:
        """Make ``position`` the current saved car location."""
        self._begin()
        try:
            columns = _position_columns(position)
            owner_id = await self._store.get_owner_id()
            if owner_id is None:
                raise NotAuthenticatedError("Not authenticated.")
            _LOGGER.debug("Saving car location for owner %s", owner_id)
            await self._store.update(
                LOCATIONS_TABLE,
                {"is_active": False},
                filters={"user_id": owner_id, "is_active": True},
            )
            row = await self._store.insert(
                LOCATIONS_TABLE,
                {
                    "user_id": owner_id,
                    **columns,
                    "parking_session_id": session_id,
                    "parking_lot_id": lot_id,
                    "section_id": section_id,
                    "spot_id": spot_id,
                    "photo_url": photo_url,
                    "notes": notes,
                    "is_active": True,
                },
                joins=LOCATION_JOINS,
            )
            location = map_saved_location(row)
        except PyParkLocatorError as exc:
            return self._fail("save", exc)
        finally:
            self._end()
        self._saved_location = location
        self._cache.put(location)
        return OperationResult(value=location)

    async def update(self, location_id: str, **fields: Any) -> OperationResult[SavedLocation]:
        """Patch a location and reload the active record."""
        self._begin()
        try:
            location_id = require_id(location_id, "location_id")
            values = self._update_values(fields)
            rows = await self._store.update(
                LOCATIONS_TABLE,
                values,
                filters={"id": location_id},
            )
            if not rows:
                raise LocationNotFoundError(f"Location {location_id} was not found.")
            updated = map_saved_location(rows[0])
        except PyParkLocatorError as exc:
            return self._fail("update", exc)
        finally:
            self._end()
        await self.fetch_active()
        return OperationResult(value=updated)

    async def delete(self, location_id: str) -> OperationResult[SavedLocation]:
        """Deactivate a location; the record itself is kept."""
        self._begin()
        try:
            location_id = require_id(location_id, "location_id")
            rows = await self._store.update(
                LOCATIONS_TABLE,
                {"is_active": False},
                filters={"id": location_id},
            )
            if not rows:
                raise LocationNotFoundError(f"Location {location_id} was not found.")
            deactivated = map_saved_location(rows[0])
        except PyParkLocatorError as exc:
            return self._fail("delete", exc)
        finally:
            self._end()
        self._saved_location = None
        self._cache.discard(location_id)
        return OperationResult(value=deactivated)

    async def sync_offline(self) -> OperationResult[SavedLocation]:
        """Reconcile with the store when offline copies exist."""
        if not len(self._cache):
            return OperationResult(value=self._saved_location)
        return await self.fetch_active()

    def _update_values(self, fields: dict[str, Any]) -> dict[str, Any]:
        if not fields:
            raise ValidationError("At least one field is required.")
        values: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "position":
                values.update(_position_columns(value))
                continue
            column = _UPDATABLE_COLUMNS.get(name)
            if column is None:
                raise ValidationError(f"Field {name} cannot be updated.")
            values[column] = value
        return values

    def _begin(self) -> None:
        self._pending += 1
        self._error = None

    def _end(self) -> None:
        self._pending -= 1

    def _fail(self, operation: str, exc: PyParkLocatorError) -> OperationResult[SavedLocation]:
        _LOGGER.debug("Location %s failed: %s", operation, exc)
        self._error = str(exc)
        return OperationResult(error=exc)
