from types import SimpleNamespace

import pytest

from pyparklocator.exceptions import ValidationError
from pyparklocator.geo import (
    distance_meters,
    normalize_position,
    walk_time_minutes,
    walking_directions_url,
)
from pyparklocator.models import GeoPosition

PARKED = GeoPosition(latitude=28.4177, longitude=-81.5812)
ENTRANCE = GeoPosition(latitude=28.4190, longitude=-81.5800)


def test_distance_to_self_is_zero() -> None:
    assert distance_meters(PARKED, PARKED) == 0


def test_distance_is_symmetric() -> None:
    assert distance_meters(PARKED, ENTRANCE) == pytest.approx(distance_meters(ENTRANCE, PARKED))


def test_distance_between_nearby_points() -> None:
    # 0.0013 deg of latitude and 0.0012 deg of longitude at 28.4 deg north.
    assert 180 < distance_meters(PARKED, ENTRANCE) < 190


def test_distance_one_degree_of_latitude() -> None:
    a = GeoPosition(latitude=0.0, longitude=0.0)
    b = GeoPosition(latitude=1.0, longitude=0.0)
    assert distance_meters(a, b) == pytest.approx(111_195, rel=1e-3)


def test_distance_antipodal_points() -> None:
    a = GeoPosition(latitude=0.0, longitude=0.0)
    b = GeoPosition(latitude=0.0, longitude=180.0)
    assert distance_meters(a, b) == pytest.approx(20_015_087, rel=1e-3)


def test_walk_time_minutes() -> None:
    assert walk_time_minutes(800) == 10
    assert walk_time_minutes(0) == 0
    assert walk_time_minutes(120) == 2
    assert walk_time_minutes(100) == 1


def test_walk_time_rejects_negative_distance() -> None:
    with pytest.raises(ValidationError):
        walk_time_minutes(-1)


def test_walking_directions_url() -> None:
    url = walking_directions_url(PARKED)
    assert url == (
        "https://www.google.com/maps/dir/?api=1"
        "&destination=28.4177,-81.5812&travelmode=walking"
    )


def test_normalize_position_from_mapping() -> None:
    position = normalize_position(
        {"latitude": "28.4177", "longitude": -81.5812, "accuracy": 8, "heading": None}
    )
    assert position == GeoPosition(latitude=28.4177, longitude=-81.5812, accuracy=8.0)


def test_normalize_position_unwraps_coords() -> None:
    reading = SimpleNamespace(
        coords=SimpleNamespace(
            latitude=28.4,
            longitude=-81.5,
            accuracy=12.5,
            altitude=30.0,
            heading=90.0,
        ),
        timestamp=0,
    )
    position = normalize_position(reading)
    assert position.altitude == 30.0
    assert position.heading == 90.0


@pytest.mark.parametrize(
    "raw",
    [
        {"longitude": 4.3},
        {"latitude": 91, "longitude": 4.3},
        {"latitude": 52.0, "longitude": -181},
        {"latitude": "north", "longitude": 4.3},
        {"latitude": True, "longitude": 4.3},
        {"latitude": float("nan"), "longitude": 4.3},
    ],
)
def test_normalize_position_invalid(raw: dict) -> None:
    with pytest.raises(ValidationError):
        normalize_position(raw)
