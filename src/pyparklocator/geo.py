"""Great-circle distance and walking estimates."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from .const import DIRECTIONS_URL, EARTH_RADIUS_METERS, WALKING_SPEED_METERS_PER_MINUTE
from .exceptions import ValidationError
from .models import GeoPosition

_OPTIONAL_FIELDS = ("accuracy", "altitude", "heading")


def distance_meters(a: GeoPosition, b: GeoPosition) -> float:
    """Haversine distance between two positions in meters."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lng = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lng / 2) ** 2
    )
    # Rounding can push h a hair past 1 for antipodal points.
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def walk_time_minutes(distance: float) -> int:
    if distance < 0:
        raise ValidationError("Distance must not be negative.")
    return math.floor(distance / WALKING_SPEED_METERS_PER_MINUTE + 0.5)


def walking_directions_url(destination: GeoPosition) -> str:
    params = {
        "api": "1",
        "destination": f"{destination.latitude},{destination.longitude}",
        "travelmode": "walking",
    }
    return f"{DIRECTIONS_URL}?{urlencode(params, safe=',')}"


def normalize_position(raw: Any) -> GeoPosition:
    """Build a GeoPosition from a raw device reading.

    Accepts a mapping or an object with ``latitude``/``longitude`` and the
    optional ``accuracy``, ``altitude`` and ``heading`` fields. Browser style
    readings that nest these under ``coords`` are unwrapped first.
    """
    coords = _get(raw, "coords")
    if coords is not None:
        raw = coords
    latitude = _coerce_float(_get(raw, "latitude"), "latitude", required=True)
    longitude = _coerce_float(_get(raw, "longitude"), "longitude", required=True)
    if not -90 <= latitude <= 90:
        raise ValidationError("latitude must be between -90 and 90.")
    if not -180 <= longitude <= 180:
        raise ValidationError("longitude must be between -180 and 180.")
    optional = {
        field: _coerce_float(_get(raw, field), field, required=False)
        for field in _OPTIONAL_FIELDS
    }
    return GeoPosition(latitude=latitude, longitude=longitude, **optional)


def _get(raw: Any, key: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(key)
    return getattr(raw, key, None)


def _coerce_float(value: Any, field: str, *, required: bool) -> float | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required.")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a number.") from exc
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be finite.")
    return number
