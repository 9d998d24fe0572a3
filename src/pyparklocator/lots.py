"""Parking lot directory with sections and rate tiers."""

from __future__ import annotations

import logging
from typing import Any

from .const import LOTS_TABLE, RATE_TIERS_TABLE, SECTIONS_TABLE
from .exceptions import PyParkLocatorError
from .mapping import map_lot
from .models import OperationResult, ParkingLot
from .store.base import BaseStore, Join
from .util import require_id

_LOGGER = logging.getLogger(__name__)

LOT_JOINS = (
    Join("sections", SECTIONS_TABLE, "parking_lot_id", many=True),
    Join("pricing_tiers", RATE_TIERS_TABLE, "parking_lot_id", many=True),
)


class LotDirectory:
    """Read-only view of the lots a session can be bought in."""

    def __init__(self, store: BaseStore) -> None:
        self._store = store
        self._parking_lots: list[ParkingLot] = []
        self._selected_lot: ParkingLot | None = None
        self._error: str | None = None
        self._pending = 0

    @property
    def parking_lots(self) -> list[ParkingLot]:
        return list(self._parking_lots)

    @property
    def selected_lot(self) -> ParkingLot | None:
        return self._selected_lot

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    def select_lot(self, lot: ParkingLot | None) -> None:
        self._selected_lot = lot

    async def fetch_parking_lots(self) -> OperationResult[list[ParkingLot]]:
        """Load active lots by name, each with its sections and rate tiers."""
        self._begin()
        try:
            rows = await self._store.select(
                LOTS_TABLE,
                filters={"is_active": True},
                order_by="name",
                joins=LOT_JOINS,
            )
            lots = [map_lot(row) for row in rows]
        except PyParkLocatorError as exc:
            return self._fail("fetch_parking_lots", exc)
        finally:
            self._end()
        self._parking_lots = lots
        return OperationResult(value=list(lots))

    async def fetch_lot_details(self, lot_id: str) -> OperationResult[ParkingLot]:
        """Load one lot and make it the selected lot.

        An unknown id yields an empty result and leaves the selection as is.
        """
        self._begin()
        try:
            lot_id = require_id(lot_id, "lot_id")
            row = await self._store.select_one(
                LOTS_TABLE,
                filters={"id": lot_id},
                joins=LOT_JOINS,
            )
            lot = map_lot(row) if row is not None else None
        except PyParkLocatorError as exc:
            return self._fail("fetch_lot_details", exc)
        finally:
            self._end()
        if lot is None:
            _LOGGER.debug("Lot %s not found", lot_id)
        else:
            self._selected_lot = lot
        return OperationResult(value=lot)

    def _begin(self) -> None:
        self._pending += 1
        self._error = None

    def _end(self) -> None:
        self._pending -= 1

    def _fail(self, operation: str, exc: PyParkLocatorError) -> OperationResult[Any]:
        _LOGGER.debug("Lot %s failed: %s", operation, exc)
        self._error = str(exc)
        return OperationResult(error=exc)
