"""Library exceptions."""

from __future__ import annotations


class PyParkLocatorError(Exception):
    """Base exception for the library."""

    error_type = "unknown"
    default_error_code: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        detail: str | None = None,
        user_message: str | None = None,
    ) -> None:
        text = message or detail or ""
        super().__init__(text)
        self.error_code = error_code or self.default_error_code
        self.detail = detail or text
        self.user_message = user_message


class NotAuthenticatedError(PyParkLocatorError):
    """Raised when no owner identity is available."""

    error_type = "auth"
    default_error_code = "not_authenticated"


class InvalidRateTierError(PyParkLocatorError):
    """Raised when a rate tier cannot be resolved or is not usable."""

    error_type = "pricing"
    default_error_code = "invalid_rate_tier"


class SessionNotFoundError(PyParkLocatorError):
    """Raised when a parking session id does not resolve."""

    error_type = "not_found"
    default_error_code = "session_not_found"


class SessionNotActiveError(PyParkLocatorError):
    """Raised when mutating a session that reached a terminal state."""

    error_type = "state"
    default_error_code = "session_not_active"


class VehicleNotFoundError(PyParkLocatorError):
    """Raised when a vehicle id does not resolve."""

    error_type = "not_found"
    default_error_code = "vehicle_not_found"


class LocationNotFoundError(PyParkLocatorError):
    """Raised when a saved location id does not resolve."""

    error_type = "not_found"
    default_error_code = "location_not_found"


class GeolocationUnavailableError(PyParkLocatorError):
    """Raised when the device has no location capability."""

    error_type = "geolocation"
    default_error_code = "geolocation_unavailable"


class GeolocationDeniedError(PyParkLocatorError):
    """Raised when the device refuses a location request."""

    error_type = "geolocation"
    default_error_code = "geolocation_denied"


class GeolocationTimeoutError(PyParkLocatorError):
    """Raised when no position fix arrives in time."""

    error_type = "geolocation"
    default_error_code = "geolocation_timeout"


class RemoteUnavailableError(PyParkLocatorError):
    """Raised when the remote store cannot be reached or fails."""

    error_type = "network"
    default_error_code = "remote_unavailable"


class ValidationError(PyParkLocatorError):
    """Raised when inputs fail validation."""

    error_type = "validation"
    default_error_code = "validation_error"
