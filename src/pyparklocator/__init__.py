"""pyParkLocator package."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .cache import OfflineCache
from .client import Client
from .exceptions import (
    GeolocationDeniedError,
    GeolocationTimeoutError,
    GeolocationUnavailableError,
    InvalidRateTierError,
    LocationNotFoundError,
    NotAuthenticatedError,
    PyParkLocatorError,
    RemoteUnavailableError,
    SessionNotActiveError,
    SessionNotFoundError,
    ValidationError,
    VehicleNotFoundError,
)
from .geo import distance_meters, walk_time_minutes
from .locations import LocationLedger
from .locator import CarLocator
from .lots import LotDirectory
from .models import (
    GeoPosition,
    OperationResult,
    ParkingLot,
    ParkingSession,
    PresentedStatus,
    RateTier,
    SavedLocation,
    SessionStatus,
    Vehicle,
)
from .position import GeolocationBackend, PositionOptions, PositionSource, PositionWatch
from .pricing import compute_amount, extend_amount
from .sessions import SessionLedger, presented_status, time_remaining
from .vehicles import VehicleLedger

try:
    __version__ = version("pyparklocator")
except PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"

__all__ = [
    "CarLocator",
    "Client",
    "GeoPosition",
    "GeolocationBackend",
    "GeolocationDeniedError",
    "GeolocationTimeoutError",
    "GeolocationUnavailableError",
    "InvalidRateTierError",
    "LocationLedger",
    "LocationNotFoundError",
    "LotDirectory",
    "NotAuthenticatedError",
    "OfflineCache",
    "OperationResult",
    "ParkingLot",
    "ParkingSession",
    "PositionOptions",
    "PositionSource",
    "PositionWatch",
    "PresentedStatus",
    "PyParkLocatorError",
    "RateTier",
    "RemoteUnavailableError",
    "SavedLocation",
    "SessionLedger",
    "SessionNotActiveError",
    "SessionNotFoundError",
    "SessionStatus",
    "ValidationError",
    "Vehicle",
    "VehicleLedger",
    "VehicleNotFoundError",
    "__version__",
    "compute_amount",
    "distance_meters",
    "extend_amount",
    "presented_status",
    "time_remaining",
    "walk_time_minutes",
]
