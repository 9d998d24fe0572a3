"""Session cost computation."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .exceptions import ValidationError

Money = Decimal | int | float | str


def to_decimal(value: Money, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.")
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"{field} must be a number.") from exc
    if not number.is_finite():
        raise ValidationError(f"{field} must be finite.")
    return number


def _apply_cap(amount: Decimal, daily_cap: Money | None) -> Decimal:
    if daily_cap is None:
        return amount
    cap = to_decimal(daily_cap, "daily_cap")
    if cap < 0:
        raise ValidationError("daily_cap must not be negative.")
    return min(amount, cap)


def _charge(hourly_rate: Money, hours: Money) -> Decimal:
    rate = to_decimal(hourly_rate, "hourly_rate")
    duration = to_decimal(hours, "hours")
    if rate < 0:
        raise ValidationError("hourly_rate must not be negative.")
    if duration < 0:
        raise ValidationError("hours must not be negative.")
    return rate * duration


def compute_amount(hourly_rate: Money, daily_cap: Money | None, hours: Money) -> Decimal:
    """Return ``min(hourly_rate * hours, daily_cap)``; no cap when ``None``."""
    return _apply_cap(_charge(hourly_rate, hours), daily_cap)


def extend_amount(
    accrued: Money,
    hourly_rate: Money,
    daily_cap: Money | None,
    hours: Money,
) -> Decimal:
    """Return the cumulative amount after adding ``hours`` to a session.

    The combined total is capped, not the increment alone.
    """
    current = to_decimal(accrued, "accrued_amount")
    total = _apply_cap(current + _charge(hourly_rate, hours), daily_cap)
    # An amount already accrued is never lowered.
    return max(current, total)
