"""Translate store rows into models and back."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from .exceptions import RemoteUnavailableError, ValidationError
from .models import (
    GeoPosition,
    ParkingLot,
    ParkingSection,
    ParkingSession,
    ParkingSpot,
    RateTier,
    SavedLocation,
    SessionStatus,
    Vehicle,
)
from .pricing import to_decimal
from .util import format_utc_timestamp, parse_timestamp

# Rows written by older clients may carry the derived status.
_STATUS_ALIASES = {"expired": SessionStatus.ACTIVE}


def _invalid(kind: str) -> RemoteUnavailableError:
    return RemoteUnavailableError(
        f"Store returned invalid {kind} data.",
        error_code="invalid_response",
    )


def _require_dict(data: Any, kind: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise _invalid(kind)
    return data


def _coerce_id(value: Any, kind: str) -> str:
    if value is None or isinstance(value, bool):
        raise _invalid(kind)
    text = str(value).strip()
    if not text:
        raise _invalid(kind)
    return text


def _optional_id(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _optional_float(value: Any, kind: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise _invalid(kind)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise _invalid(kind) from exc


def _timestamp(value: Any, kind: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValidationError as exc:
        raise _invalid(kind) from exc


def _optional_timestamp(value: Any, kind: str) -> datetime | None:
    if value is None:
        return None
    return _timestamp(value, kind)


def _money(value: Any, kind: str) -> Decimal:
    try:
        return to_decimal(value, kind)
    except ValidationError as exc:
        raise _invalid(kind) from exc


def _optional_money(value: Any, kind: str) -> Decimal | None:
    if value is None:
        return None
    return _money(value, kind)


def _optional_related(data: dict[str, Any], key: str, mapper: Any) -> Any:
    related = data.get(key)
    if related is None:
        return None
    return mapper(related)


def _related_list(data: dict[str, Any], key: str, mapper: Any) -> tuple[Any, ...]:
    related = data.get(key)
    if related is None:
        return ()
    if not isinstance(related, list):
        raise _invalid(key)
    return tuple(mapper(item) for item in related)


def _optional_int(value: Any, kind: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise _invalid(kind)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise _invalid(kind) from exc


def format_money(value: Decimal) -> str:
    return str(value)


def map_vehicle(data: Any) -> Vehicle:
    row = _require_dict(data, "vehicle")
    plate = row.get("license_plate")
    if not isinstance(plate, str):
        raise _invalid("vehicle")
    return Vehicle(
        id=_coerce_id(row.get("id"), "vehicle"),
        license_plate=plate,
        make=_optional_str(row.get("make")),
        model=_optional_str(row.get("model")),
        color=_optional_str(row.get("color")),
        nickname=_optional_str(row.get("nickname")),
        is_default=row.get("is_default") is True,
        owner_id=_optional_id(row.get("user_id")),
        state_province=_optional_str(row.get("state_province")),
        created_at=_optional_timestamp(row.get("created_at"), "vehicle"),
    )


def map_lot(data: Any) -> ParkingLot:
    row = _require_dict(data, "parking lot")
    return ParkingLot(
        id=_coerce_id(row.get("id"), "parking lot"),
        name=str(row.get("name") or ""),
        code=str(row.get("code") or ""),
        latitude=_optional_float(row.get("location_lat"), "parking lot"),
        longitude=_optional_float(row.get("location_lng"), "parking lot"),
        description=_optional_str(row.get("description")),
        total_capacity=_optional_int(row.get("total_capacity"), "parking lot"),
        available_spots=_optional_int(row.get("available_spots"), "parking lot"),
        is_active=row.get("is_active") is not False,
        sections=_related_list(row, "sections", map_section),
        rate_tiers=_related_list(row, "pricing_tiers", map_rate_tier),
    )


def map_section(data: Any) -> ParkingSection:
    row = _require_dict(data, "parking section")
    level = row.get("level")
    if level is None:
        level = 0
    if isinstance(level, bool) or not isinstance(level, int | str):
        raise _invalid("parking section")
    try:
        level_value = int(level)
    except ValueError as exc:
        raise _invalid("parking section") from exc
    return ParkingSection(
        id=_coerce_id(row.get("id"), "parking section"),
        lot_id=_coerce_id(row.get("parking_lot_id"), "parking section"),
        name=str(row.get("name") or ""),
        code=str(row.get("code") or ""),
        level=level_value,
        lot=_optional_related(row, "parking_lot", map_lot),
    )


def map_spot(data: Any) -> ParkingSpot:
    row = _require_dict(data, "parking spot")
    return ParkingSpot(
        id=_coerce_id(row.get("id"), "parking spot"),
        section_id=_coerce_id(row.get("section_id"), "parking spot"),
        spot_number=str(row.get("spot_number") or ""),
        section=_optional_related(row, "section", map_section),
    )


def map_rate_tier(data: Any) -> RateTier:
    row = _require_dict(data, "rate tier")
    return RateTier(
        id=_coerce_id(row.get("id"), "rate tier"),
        lot_id=_coerce_id(row.get("parking_lot_id"), "rate tier"),
        name=str(row.get("name") or ""),
        hourly_rate=_money(row.get("price_per_hour"), "rate tier"),
        daily_cap=_optional_money(row.get("daily_max"), "rate tier"),
        is_active=row.get("is_active") is not False,
        valid_from=_optional_timestamp(row.get("valid_from"), "rate tier"),
        valid_until=_optional_timestamp(row.get("valid_until"), "rate tier"),
    )


def map_session_status(value: Any) -> SessionStatus:
    if value in _STATUS_ALIASES:
        return _STATUS_ALIASES[value]
    try:
        return SessionStatus(value)
    except ValueError as exc:
        raise _invalid("session status") from exc


def map_session(data: Any) -> ParkingSession:
    row = _require_dict(data, "parking session")
    token = row.get("qr_code")
    if token is not None and not isinstance(token, str):
        raise _invalid("parking session")
    return ParkingSession(
        id=_coerce_id(row.get("id"), "parking session"),
        owner_id=_coerce_id(row.get("user_id"), "parking session"),
        status=map_session_status(row.get("session_status")),
        started_at=_timestamp(row.get("started_at"), "parking session"),
        expires_at=_timestamp(row.get("expires_at"), "parking session"),
        accrued_amount=_money(row.get("total_amount"), "parking session"),
        session_token=token or "",
        vehicle_id=_optional_id(row.get("vehicle_id")),
        spot_id=_optional_id(row.get("parking_spot_id")),
        rate_tier_id=_optional_id(row.get("pricing_tier_id")),
        ended_at=_optional_timestamp(row.get("ended_at"), "parking session"),
        manual_plate_entry=_optional_str(row.get("license_plate_entry")),
        vehicle=_optional_related(row, "vehicle", map_vehicle),
        rate_tier=_optional_related(row, "pricing_tier", map_rate_tier),
        spot=_optional_related(row, "parking_spot", map_spot),
    )


def map_saved_location(data: Any) -> SavedLocation:
    row = _require_dict(data, "saved location")
    latitude = _optional_float(row.get("latitude"), "saved location")
    longitude = _optional_float(row.get("longitude"), "saved location")
    if latitude is None or longitude is None:
        raise _invalid("saved location")
    return SavedLocation(
        id=_coerce_id(row.get("id"), "saved location"),
        owner_id=_coerce_id(row.get("user_id"), "saved location"),
        position=GeoPosition(
            latitude=latitude,
            longitude=longitude,
            accuracy=_optional_float(row.get("accuracy"), "saved location"),
            altitude=_optional_float(row.get("altitude"), "saved location"),
            heading=_optional_float(row.get("heading"), "saved location"),
        ),
        is_active=row.get("is_active") is True,
        session_id=_optional_id(row.get("parking_session_id")),
        lot_id=_optional_id(row.get("parking_lot_id")),
        section_id=_optional_id(row.get("section_id")),
        spot_id=_optional_id(row.get("spot_id")),
        photo_url=_optional_str(row.get("photo_url")),
        notes=_optional_str(row.get("notes")),
        created_at=_optional_timestamp(row.get("created_at"), "saved location"),
        lot=_optional_related(row, "parking_lot", map_lot),
        section=_optional_related(row, "section", map_section),
    )


def lot_to_row(lot: ParkingLot) -> dict[str, Any]:
    return {
        "id": lot.id,
        "name": lot.name,
        "code": lot.code,
        "location_lat": lot.latitude,
        "location_lng": lot.longitude,
        "description": lot.description,
        "total_capacity": lot.total_capacity,
        "available_spots": lot.available_spots,
        "is_active": lot.is_active,
    }


def section_to_row(section: ParkingSection) -> dict[str, Any]:
    return {
        "id": section.id,
        "parking_lot_id": section.lot_id,
        "name": section.name,
        "code": section.code,
        "level": section.level,
        "parking_lot": lot_to_row(section.lot) if section.lot else None,
    }


def saved_location_to_row(location: SavedLocation) -> dict[str, Any]:
    position = location.position
    return {
        "id": location.id,
        "user_id": location.owner_id,
        "latitude": position.latitude,
        "longitude": position.longitude,
        "accuracy": position.accuracy,
        "altitude": position.altitude,
        "heading": position.heading,
        "is_active": location.is_active,
        "parking_session_id": location.session_id,
        "parking_lot_id": location.lot_id,
        "section_id": location.section_id,
        "spot_id": location.spot_id,
        "photo_url": location.photo_url,
        "notes": location.notes,
        "created_at": (
            format_utc_timestamp(location.created_at) if location.created_at else None
        ),
        "parking_lot": lot_to_row(location.lot) if location.lot else None,
        "section": section_to_row(location.section) if location.section else None,
    }
