"""Registered vehicles of the signed-in owner."""

from __future__ import annotations

import logging
from typing import Any

from .const import VEHICLES_TABLE
from .exceptions import NotAuthenticatedError, PyParkLocatorError, VehicleNotFoundError
from .mapping import map_vehicle
from .models import OperationResult, Vehicle
from .store.base import BaseStore
from .util import mask_license_plate, normalize_license_plate, require_id

_LOGGER = logging.getLogger(__name__)

# Default vehicle first, then newest.
_VEHICLE_ORDER = ("is_default", "created_at")


class VehicleLedger:
    """Own the owner's vehicle list.

    At most one vehicle is the default: adding a default vehicle clears the
    flag on the others before inserting.
    """

    def __init__(self, store: BaseStore) -> None:
        self._store = store
        self._vehicles: list[Vehicle] = []
        self._error: str | None = None
        self._pending = 0

    @property
    def vehicles(self) -> list[Vehicle]:
        return list(self._vehicles)

    @property
    def default_vehicle(self) -> Vehicle | None:
        return next((vehicle for vehicle in self._vehicles if vehicle.is_default), None)

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    async def fetch_vehicles(self) -> OperationResult[list[Vehicle]]:
        self._begin()
        try:
            owner_id = await self._store.get_owner_id()
            filters: dict[str, Any] = {}
            if owner_id is not None:
                filters["user_id"] = owner_id
            rows = await self._store.select(
                VEHICLES_TABLE,
                filters=filters,
                order_by=_VEHICLE_ORDER,
                descending=True,
            )
            vehicles = [map_vehicle(row) for row in rows]
        except PyParkLocatorError as exc:
            return self._fail("fetch_vehicles", exc)
        finally:
            self._end()
        self._vehicles = vehicles
        return OperationResult(value=list(vehicles))

    async def add_vehicle(
        self,
        license_plate: str,
        *,
        make: str | None = None,
        model: str | None = None,
        color: str | None = None,
        nickname: str | None = None,
        state_province: str | None = None,
        is_default: bool = False,
    ) -> OperationResult[Vehicle]:
        """Register a vehicle; the plate is stored normalized."""
        self._begin()
        try:
            plate = normalize_license_plate(license_plate)
            owner_id = await self._store.get_owner_id()
            if owner_id is None:
                raise NotAuthenticatedError("Not authenticated.")
            _LOGGER.debug("Adding vehicle %s", mask_license_plate(plate))
            if is_default:
                await self._store.update(
                    VEHICLES_TABLE,
                    {"is_default": False},
                    filters={"user_id": owner_id, "is_default": True},
                )
            row = await self._store.insert(
                VEHICLES_TABLE,
                {
                    "user_id": owner_id,
                    "license_plate": plate,
                    "state_province": state_province,
                    "make": make,
                    "model": model,
                    "color": color,
                    "nickname": nickname,
                    "is_default": bool(is_default),
                },
            )
            vehicle = map_vehicle(row)
        except PyParkLocatorError as exc:
            return self._fail("add_vehicle", exc)
        finally:
            self._end()
        await self.fetch_vehicles()
        return OperationResult(value=vehicle)

    async def delete_vehicle(self, vehicle_id: str) -> OperationResult[Vehicle]:
        """Remove a vehicle record; sessions keep their plain ``vehicle_id``."""
        self._begin()
        try:
            vehicle_id = require_id(vehicle_id, "vehicle_id")
            rows = await self._store.delete(VEHICLES_TABLE, filters={"id": vehicle_id})
            if not rows:
                raise VehicleNotFoundError(f"Vehicle {vehicle_id} was not found.")
            removed = map_vehicle(rows[0])
        except PyParkLocatorError as exc:
            return self._fail("delete_vehicle", exc)
        finally:
            self._end()
        await self.fetch_vehicles()
        return OperationResult(value=removed)

    def _begin(self) -> None:
        self._pending += 1
        self._error = None

    def _end(self) -> None:
        self._pending -= 1

    def _fail(self, operation: str, exc: PyParkLocatorError) -> OperationResult[Any]:
        _LOGGER.debug("Vehicle %s failed: %s", operation, exc)
        self._error = str(exc)
        return OperationResult(error=exc)
