"""Public data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Generic, TypeVar

from .exceptions import PyParkLocatorError

T = TypeVar("T")


class SessionStatus(StrEnum):
    """Persisted parking session states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PresentedStatus(StrEnum):
    """Session status as shown to a reader at a given instant."""

    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class GeoPosition:
    latitude: float
    longitude: float
    accuracy: float | None = None
    altitude: float | None = None
    heading: float | None = None


@dataclass(frozen=True, slots=True)
class Vehicle:
    id: str
    license_plate: str
    make: str | None = None
    model: str | None = None
    color: str | None = None
    nickname: str | None = None
    is_default: bool = False
    owner_id: str | None = None
    state_province: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ParkingLot:
    """A parking lot; ``sections`` and ``rate_tiers`` are filled by lot lookups."""

    id: str
    name: str
    code: str
    latitude: float | None = None
    longitude: float | None = None
    description: str | None = None
    total_capacity: int | None = None
    available_spots: int | None = None
    is_active: bool = True
    sections: tuple[ParkingSection, ...] = ()
    rate_tiers: tuple[RateTier, ...] = ()


@dataclass(frozen=True, slots=True)
class ParkingSection:
    id: str
    lot_id: str
    name: str
    code: str
    level: int = 0
    lot: ParkingLot | None = None


@dataclass(frozen=True, slots=True)
class ParkingSpot:
    id: str
    section_id: str
    spot_number: str
    section: ParkingSection | None = None


@dataclass(frozen=True, slots=True)
class RateTier:
    id: str
    lot_id: str
    name: str
    hourly_rate: Decimal
    daily_cap: Decimal | None
    is_active: bool = True
    valid_from: datetime | None = None
    valid_until: datetime | None = None


@dataclass(frozen=True, slots=True)
class ParkingSession:
    id: str
    owner_id: str
    status: SessionStatus
    started_at: datetime
    expires_at: datetime
    accrued_amount: Decimal
    session_token: str
    vehicle_id: str | None = None
    spot_id: str | None = None
    rate_tier_id: str | None = None
    ended_at: datetime | None = None
    manual_plate_entry: str | None = None
    vehicle: Vehicle | None = None
    rate_tier: RateTier | None = None
    spot: ParkingSpot | None = None


@dataclass(frozen=True, slots=True)
class SavedLocation:
    id: str
    owner_id: str
    position: GeoPosition
    is_active: bool
    session_id: str | None = None
    lot_id: str | None = None
    section_id: str | None = None
    spot_id: str | None = None
    photo_url: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    lot: ParkingLot | None = None
    section: ParkingSection | None = None


@dataclass(frozen=True, slots=True)
class OperationResult(Generic[T]):
    """Outcome of a ledger or position operation.

    Exactly one of ``value`` or ``error`` is meaningful, except for reads
    served from the offline cache where ``from_cache`` is set.
    """

    value: T | None = None
    error: PyParkLocatorError | None = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None
