"""Device position requests and continuous tracking."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from .const import POSITION_MAXIMUM_AGE, POSITION_TIMEOUT, WATCH_MAXIMUM_AGE
from .exceptions import (
    GeolocationTimeoutError,
    GeolocationUnavailableError,
    PyParkLocatorError,
)
from .geo import normalize_position
from .models import GeoPosition, OperationResult

_LOGGER = logging.getLogger(__name__)

PositionListener = Callable[[GeoPosition], None]


@dataclass(frozen=True, slots=True)
class PositionOptions:
    high_accuracy: bool = True
    timeout: timedelta = POSITION_TIMEOUT
    maximum_age: timedelta = POSITION_MAXIMUM_AGE


DEFAULT_OPTIONS = PositionOptions()
DEFAULT_WATCH_OPTIONS = PositionOptions(maximum_age=WATCH_MAXIMUM_AGE)


class GeolocationBackend(ABC):
    """Device location capability.

    Readings are returned raw; ``PositionSource`` normalizes them. Request
    level failures are reported by raising ``GeolocationDeniedError`` (or
    another library error).
    """

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    async def current_position(self, options: PositionOptions) -> Any:
        """Return a single raw reading."""

    @abstractmethod
    def watch_position(
        self,
        on_fix: Callable[[Any], None],
        on_error: Callable[[Exception], None],
        options: PositionOptions,
    ) -> Any:
        """Start a subscription and return its cancel handle."""

    @abstractmethod
    def clear_watch(self, handle: Any) -> None:
        """Cancel a subscription started by ``watch_position``."""


class PositionWatch:
    """Owned handle for the single active position subscription."""

    def __init__(self, source: PositionSource | None, handle: Any = None) -> None:
        self._source = source
        self._handle = handle

    @property
    def active(self) -> bool:
        return self._source is not None

    @property
    def handle(self) -> Any:
        return self._handle

    def stop(self) -> None:
        source = self._source
        if source is None:
            return
        self._source = None
        source._release(self)

    def __enter__(self) -> PositionWatch:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


class PositionSource:
    """Track the device position and the advisory network signal."""

    def __init__(
        self,
        backend: GeolocationBackend | None,
        *,
        options: PositionOptions | None = None,
        watch_options: PositionOptions | None = None,
        online: bool = True,
    ) -> None:
        self._backend = backend
        self._options = options or DEFAULT_OPTIONS
        self._watch_options = watch_options or DEFAULT_WATCH_OPTIONS
        self._current_position: GeoPosition | None = None
        self._error: str | None = None
        self._watch: PositionWatch | None = None
        self._listeners: list[PositionListener] = []
        self._online = online

    @property
    def current_position(self) -> GeoPosition | None:
        return self._current_position

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_watching(self) -> bool:
        return self._watch is not None

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        """Record an online/offline event from the environment."""
        if online != self._online:
            _LOGGER.debug("Network is now %s", "online" if online else "offline")
        self._online = bool(online)

    def add_listener(self, listener: PositionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def get_current_position(self) -> OperationResult[GeoPosition]:
        if not self._is_available():
            return self._fail(GeolocationUnavailableError("Geolocation is not supported."))
        timeout = self._options.timeout.total_seconds()
        try:
            raw = await asyncio.wait_for(
                self._backend.current_position(self._options),
                timeout=timeout,
            )
            position = normalize_position(raw)
        except TimeoutError:
            return self._fail(
                GeolocationTimeoutError(f"No position fix within {timeout:g} seconds.")
            )
        except PyParkLocatorError as exc:
            return self._fail(exc)
        self._accept(position)
        return OperationResult(value=position)

    def start_watching(self) -> PositionWatch:
        """Start the position subscription, or return the one already running.

        The returned watch must be stopped on teardown. When the device has no
        location capability the error is recorded and an inactive watch is
        returned.
        """
        if self._watch is not None:
            return self._watch
        if not self._is_available():
            self._fail(GeolocationUnavailableError("Geolocation is not supported."))
            return PositionWatch(None)
        watch = PositionWatch(self)
        self._watch = watch
        try:
            watch._handle = self._backend.watch_position(
                self._on_watch_fix,
                self._on_watch_error,
                self._watch_options,
            )
        except PyParkLocatorError as exc:
            self._abandon(watch)
            self._fail(exc)
            return watch
        except BaseException:
            self._abandon(watch)
            raise
        _LOGGER.debug("Position watch started")
        return watch

    def stop_watching(self) -> None:
        if self._watch is not None:
            self._watch.stop()

    def _release(self, watch: PositionWatch) -> None:
        if self._watch is not watch:
            return
        self._watch = None
        if self._backend is not None and watch.handle is not None:
            self._backend.clear_watch(watch.handle)
        _LOGGER.debug("Position watch stopped")

    def _abandon(self, watch: PositionWatch) -> None:
        if self._watch is watch:
            self._watch = None
        watch._source = None

    def _on_watch_fix(self, raw: Any) -> None:
        if self._watch is None:
            return
        try:
            position = normalize_position(raw)
        except PyParkLocatorError as exc:
            self._on_watch_error(exc)
            return
        self._accept(position)

    def _on_watch_error(self, exc: Exception) -> None:
        _LOGGER.warning("Position watch reported an error: %s", exc)
        self._error = str(exc)

    def _is_available(self) -> bool:
        return self._backend is not None and self._backend.available

    def _accept(self, position: GeoPosition) -> None:
        self._current_position = position
        self._error = None
        for listener in list(self._listeners):
            listener(position)

    def _fail(self, exc: PyParkLocatorError) -> OperationResult[GeoPosition]:
        _LOGGER.debug("Position request failed: %s", exc)
        self._error = str(exc)
        return OperationResult(error=exc)
