"""Parking session ledger and status projection."""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from .const import (
    LOTS_TABLE,
    RATE_TIERS_TABLE,
    SECTIONS_TABLE,
    SESSIONS_TABLE,
    SPOTS_TABLE,
    VEHICLES_TABLE,
)
from .exceptions import (
    InvalidRateTierError,
    NotAuthenticatedError,
    PyParkLocatorError,
    SessionNotActiveError,
    SessionNotFoundError,
    ValidationError,
)
from .mapping import format_money, map_rate_tier, map_session
from .models import OperationResult, ParkingSession, PresentedStatus, RateTier, SessionStatus
from .pricing import Money, compute_amount, extend_amount, to_decimal
from .store.base import BaseStore, Join
from .util import (
    ensure_aware,
    format_utc_timestamp,
    generate_session_token,
    mask_license_plate,
    normalize_license_plate,
    require_id,
    utcnow,
)

_LOGGER = logging.getLogger(__name__)

SESSION_JOINS = (
    Join("vehicle", VEHICLES_TABLE, "vehicle_id"),
    Join("pricing_tier", RATE_TIERS_TABLE, "pricing_tier_id"),
    Join(
        "parking_spot",
        SPOTS_TABLE,
        "parking_spot_id",
        (
            Join(
                "section",
                SECTIONS_TABLE,
                "section_id",
                (Join("parking_lot", LOTS_TABLE, "parking_lot_id"),),
            ),
        ),
    ),
)

_TERMINAL_STATUSES = {
    SessionStatus.COMPLETED: PresentedStatus.COMPLETED,
    SessionStatus.CANCELLED: PresentedStatus.CANCELLED,
}


def presented_status(session: ParkingSession, now: datetime) -> PresentedStatus:
    """Return how a session reads at ``now``.

    Expiry is never stored: an active session past ``expires_at`` reads as
    expired while its persisted status stays active.
    """
    terminal = _TERMINAL_STATUSES.get(session.status)
    if terminal is not None:
        return terminal
    if ensure_aware(now) > session.expires_at:
        return PresentedStatus.EXPIRED
    return PresentedStatus.ACTIVE


def time_remaining(session: ParkingSession, now: datetime) -> timedelta:
    if presented_status(session, now) is not PresentedStatus.ACTIVE:
        return timedelta(0)
    return session.expires_at - ensure_aware(now)


def _positive_hours(hours: Money, field: str) -> Decimal:
    value = to_decimal(hours, field)
    if value <= 0:
        raise ValidationError(f"{field} must be positive.")
    # Expiry must move by at least one representable microsecond.
    if _hours_delta(value, field) <= timedelta(0):
        raise ValidationError(f"{field} is too short.")
    return value


def _hours_delta(hours: Decimal, field: str = "hours") -> timedelta:
    try:
        return timedelta(hours=float(hours))
    except OverflowError as exc:
        raise ValidationError(f"{field} is too large.") from exc


def _add_hours(moment: datetime, hours: Decimal) -> datetime:
    try:
        return moment + _hours_delta(hours)
    except OverflowError as exc:
        raise ValidationError("Expiry is out of range.") from exc


class SessionLedger:
    """Own the active parking sessions of the signed-in owner."""

    def __init__(
        self,
        store: BaseStore,
        *,
        clock: Callable[[], datetime] | None = None,
        token_factory: Callable[[datetime], str] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or utcnow
        self._token_factory = token_factory or generate_session_token
        self._active_sessions: list[ParkingSession] = []
        self._error: str | None = None
        self._pending = 0
        # Entries vanish once no operation holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def active_sessions(self) -> list[ParkingSession]:
        return list(self._active_sessions)

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    def now(self) -> datetime:
        return ensure_aware(self._clock())

    def presented_status(self, session: ParkingSession) -> PresentedStatus:
        return presented_status(session, self.now())

    def time_remaining(self, session: ParkingSession) -> timedelta:
        return time_remaining(session, self.now())

    async def fetch_active_sessions(self) -> OperationResult[list[ParkingSession]]:
        self._begin()
        try:
            owner_id = await self._store.get_owner_id()
            filters: dict[str, Any] = {"session_status": SessionStatus.ACTIVE.value}
            if owner_id is not None:
                filters["user_id"] = owner_id
            rows = await self._store.select(
                SESSIONS_TABLE,
                filters=filters,
                order_by="started_at",
                descending=True,
                joins=SESSION_JOINS,
            )
            sessions = [map_session(row) for row in rows]
        except PyParkLocatorError as exc:
            return self._fail("fetch_active_sessions", exc)
        finally:
            self._end()
        self._active_sessions = sessions
        return OperationResult(value=list(sessions))

    async def fetch_history(
        self,
        *,
        limit: int | None = 50,
    ) -> OperationResult[list[ParkingSession]]:
        """Load the owner's sessions in every state, newest first.

        The active list is left untouched.
        """
        self._begin()
        try:
            owner_id = await self._store.get_owner_id()
            filters: dict[str, Any] = {}
            if owner_id is not None:
                filters["user_id"] = owner_id
            rows = await self._store.select(
                SESSIONS_TABLE,
                filters=filters,
                order_by="started_at",
                descending=True,
                limit=limit,
                joins=SESSION_JOINS,
            )
            sessions = [map_session(row) for row in rows]
        except PyParkLocatorError as exc:
            return self._fail("fetch_history", exc)
        finally:
            self._end()
        return OperationResult(value=sessions)

    async def quote(self, rate_tier_id: str, duration_hours: Money) -> OperationResult[Decimal]:
        """Price a prospective session without creating it."""
        self._begin()
        try:
            hours = _positive_hours(duration_hours, "duration_hours")
            tier = await self._resolve_tier(rate_tier_id, self.now())
            amount = compute_amount(tier.hourly_rate, tier.daily_cap, hours)
        except PyParkLocatorError as exc:
            return self._fail("quote", exc)
        finally:
            self._end()
        return OperationResult(value=amount)

    async def create_session(
        self,
        rate_tier_id: str,
        duration_hours: Money,
        *,
        vehicle_id: str | None = None,
        license_plate: str | None = None,
        spot_id: str | None = None,
    ) -> OperationResult[ParkingSession]:
        """Purchase a session for a registered vehicle or a typed plate."""
        self._begin()
        try:
            if (vehicle_id is None) == (license_plate is None):
                raise ValidationError("Exactly one of vehicle_id or license_plate is required.")
            plate = normalize_license_plate(license_plate) if license_plate is not None else None
            hours = _positive_hours(duration_hours, "duration_hours")
            owner_id = await self._store.get_owner_id()
            if owner_id is None:
                raise NotAuthenticatedError("Not authenticated.")
            now = self.now()
            tier = await self._resolve_tier(rate_tier_id, now)
            amount = compute_amount(tier.hourly_rate, tier.daily_cap, hours)
            _LOGGER.debug(
                "Creating session on tier %s for %s",
                tier.id,
                mask_license_plate(plate) if plate else f"vehicle {vehicle_id}",
            )
            row = await self._store.insert(
                SESSIONS_TABLE,
                {
                    "user_id": owner_id,
                    "vehicle_id": vehicle_id,
                    "parking_spot_id": spot_id,
                    "pricing_tier_id": tier.id,
                    "session_status": SessionStatus.ACTIVE.value,
                    "started_at": format_utc_timestamp(now),
                    "expires_at": format_utc_timestamp(_add_hours(now, hours)),
                    "ended_at": None,
                    "total_amount": format_money(amount),
                    "qr_code": self._token_factory(now),
                    "license_plate_entry": plate,
                },
                joins=SESSION_JOINS,
            )
            session = map_session(row)
        except PyParkLocatorError as exc:
            return self._fail("create_session", exc)
        finally:
            self._end()
        await self.fetch_active_sessions()
        return OperationResult(value=session)

    async def extend_session(
        self,
        session_id: str,
        additional_hours: Money,
    ) -> OperationResult[ParkingSession]:
        """Push expiry back and add the capped cost of the extra hours."""
        self._begin()
        try:
            session_id = require_id(session_id, "session_id")
            hours = _positive_hours(additional_hours, "additional_hours")
            async with self._lock_for(session_id):
                session = await self._load_active(session_id)
                tier = session.rate_tier
                if tier is None:
                    raise InvalidRateTierError(f"Session {session_id} has no rate tier.")
                total = extend_amount(session.accrued_amount, tier.hourly_rate, tier.daily_cap, hours)
                rows = await self._store.update(
                    SESSIONS_TABLE,
                    {
                        "expires_at": format_utc_timestamp(
                            _add_hours(session.expires_at, hours)
                        ),
                        "total_amount": format_money(total),
                    },
                    filters={"id": session_id},
                )
                if not rows:
                    raise SessionNotFoundError(f"Session {session_id} was not found.")
                updated = map_session(rows[0])
        except PyParkLocatorError as exc:
            return self._fail("extend_session", exc)
        finally:
            self._end()
        _LOGGER.debug("Session %s extended by %s hours", session_id, hours)
        await self.fetch_active_sessions()
        return OperationResult(value=updated)

    async def end_session(self, session_id: str) -> OperationResult[ParkingSession]:
        """Complete a session; it leaves the active list."""
        self._begin()
        try:
            session_id = require_id(session_id, "session_id")
            async with self._lock_for(session_id):
                await self._load_active(session_id)
                rows = await self._store.update(
                    SESSIONS_TABLE,
                    {
                        "session_status": SessionStatus.COMPLETED.value,
                        "ended_at": format_utc_timestamp(self.now()),
                    },
                    filters={"id": session_id},
                )
                if not rows:
                    raise SessionNotFoundError(f"Session {session_id} was not found.")
                ended = map_session(rows[0])
        except PyParkLocatorError as exc:
            return self._fail("end_session", exc)
        finally:
            self._end()
        _LOGGER.debug("Session %s completed", session_id)
        await self.fetch_active_sessions()
        return OperationResult(value=ended)

    async def _resolve_tier(self, rate_tier_id: str, now: datetime) -> RateTier:
        if rate_tier_id is None or not str(rate_tier_id).strip():
            raise InvalidRateTierError("Invalid rate tier.")
        row = await self._store.select_one(
            RATE_TIERS_TABLE,
            filters={"id": str(rate_tier_id).strip()},
        )
        if row is None:
            raise InvalidRateTierError("Invalid rate tier.")
        tier = map_rate_tier(row)
        if not tier.is_active:
            raise InvalidRateTierError(f"Rate tier {tier.id} is not active.")
        if tier.valid_from is not None and now < tier.valid_from:
            raise InvalidRateTierError(f"Rate tier {tier.id} is not valid yet.")
        if tier.valid_until is not None and now >= tier.valid_until:
            raise InvalidRateTierError(f"Rate tier {tier.id} has expired.")
        return tier

    async def _load_active(self, session_id: str) -> ParkingSession:
        row = await self._store.select_one(
            SESSIONS_TABLE,
            filters={"id": session_id},
            joins=SESSION_JOINS,
        )
        if row is None:
            raise SessionNotFoundError(f"Session {session_id} was not found.")
        session = map_session(row)
        if session.status is not SessionStatus.ACTIVE:
            raise SessionNotActiveError(f"Session {session_id} is {session.status.value}.")
        return session

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _begin(self) -> None:
        self._pending += 1
        self._error = None

    def _end(self) -> None:
        self._pending -= 1

    def _fail(self, operation: str, exc: PyParkLocatorError) -> OperationResult[Any]:
        _LOGGER.debug("Session %s failed: %s", operation, exc)
        self._error = str(exc)
        return OperationResult(error=exc)
