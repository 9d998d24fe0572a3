"""Shared utilities for validation and normalization."""

from __future__ import annotations

import re
import secrets
import string
from datetime import UTC, datetime
from typing import Any

from .const import SESSION_TOKEN_PREFIX, SESSION_TOKEN_SUFFIX_LENGTH
from .exceptions import ValidationError

_LICENSE_PLATE_RE = re.compile(r"[^A-Z0-9]")
_BASE36_ALPHABET = string.digits + string.ascii_uppercase


def utcnow() -> datetime:
    return datetime.now(UTC)


def normalize_license_plate(plate: str) -> str:
    if not isinstance(plate, str):
        raise ValidationError("License plate must be a string.")
    normalized = _LICENSE_PLATE_RE.sub("", plate.upper())
    if not normalized:
        raise ValidationError("License plate is empty after normalization.")
    return normalized


def mask_license_plate(plate: str | None) -> str:
    if not isinstance(plate, str):
        return "***"
    normalized = _LICENSE_PLATE_RE.sub("", plate.upper())
    if not normalized:
        return "***"
    if len(normalized) <= 2:
        return "*" * len(normalized)
    if len(normalized) <= 4:
        return f"{normalized[:1]}{'*' * (len(normalized) - 2)}{normalized[-1:]}"
    masked = "*" * (len(normalized) - 4)
    return f"{normalized[:2]}{masked}{normalized[-2:]}"


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValidationError("Timestamp must be a non-empty string.")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError("Timestamp is not a valid ISO 8601 value.") from exc
    if parsed.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    return parsed.astimezone(UTC)


def format_utc_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    # Fixed precision keeps stored values sortable as plain strings.
    normalized = value.astimezone(UTC).isoformat(timespec="microseconds")
    return normalized.replace("+00:00", "Z")


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    return value.astimezone(UTC)


def require_id(value: Any, field: str) -> str:
    if value is None:
        raise ValidationError(f"{field} is required.")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required.")
    return text


def generate_session_token(now: datetime | None = None) -> str:
    """Return a human-readable session token for display and QR encoding.

    The token is ``PARK-<epoch millis>-<6 base36 chars>``. It is unique enough
    for display among concurrent sessions but is not a secret.
    """
    moment = ensure_aware(now) if now is not None else utcnow()
    millis = int(moment.timestamp() * 1000)
    suffix = "".join(
        secrets.choice(_BASE36_ALPHABET) for _ in range(SESSION_TOKEN_SUFFIX_LENGTH)
    )
    return f"{SESSION_TOKEN_PREFIX}-{millis}-{suffix}"
