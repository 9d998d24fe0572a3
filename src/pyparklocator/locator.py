"""Distance and walking time from the device to the parked car."""

from __future__ import annotations

from .geo import distance_meters, walk_time_minutes, walking_directions_url
from .locations import LocationLedger
from .models import GeoPosition
from .position import PositionSource


class CarLocator:
    """Derive find-my-car values from the latest position and saved location.

    Values are computed on every read, so a new fix or a newly saved location
    is reflected immediately.
    """

    def __init__(self, positions: PositionSource, locations: LocationLedger) -> None:
        self._positions = positions
        self._locations = locations

    @property
    def positions(self) -> PositionSource:
        return self._positions

    @property
    def locations(self) -> LocationLedger:
        return self._locations

    @property
    def car_position(self) -> GeoPosition | None:
        saved = self._locations.saved_location
        return saved.position if saved is not None else None

    @property
    def distance_meters(self) -> float | None:
        current = self._positions.current_position
        car = self.car_position
        if current is None or car is None:
            return None
        return distance_meters(current, car)

    @property
    def walk_time_minutes(self) -> int | None:
        distance = self.distance_meters
        if distance is None:
            return None
        return walk_time_minutes(distance)

    @property
    def directions_url(self) -> str | None:
        car = self.car_position
        if car is None:
            return None
        return walking_directions_url(car)
