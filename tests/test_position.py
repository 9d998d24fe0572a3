from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import pytest

from pyparklocator.exceptions import (
    GeolocationDeniedError,
    GeolocationTimeoutError,
    GeolocationUnavailableError,
)
from pyparklocator.models import GeoPosition
from pyparklocator.position import GeolocationBackend, PositionOptions, PositionSource


class _FakeBackend(GeolocationBackend):
    def __init__(
        self,
        *,
        reading: Any = None,
        error: Exception | None = None,
        delay: float = 0,
        available: bool = True,
    ) -> None:
        self._reading = reading
        self._error = error
        self._delay = delay
        self._available = available
        self.requests: list[PositionOptions] = []
        self.watches: dict[int, tuple[Callable[[Any], None], Callable[[Exception], None]]] = {}
        self.watch_options: list[PositionOptions] = []
        self.cleared: list[int] = []
        self._next_handle = 1

    @property
    def available(self) -> bool:
        return self._available

    async def current_position(self, options: PositionOptions) -> Any:
        self.requests.append(options)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._reading

    def watch_position(self, on_fix, on_error, options):
        handle = self._next_handle
        self._next_handle += 1
        self.watches[handle] = (on_fix, on_error)
        self.watch_options.append(options)
        return handle

    def clear_watch(self, handle: Any) -> None:
        self.cleared.append(handle)
        self.watches.pop(handle, None)

    def emit(self, reading: Any) -> None:
        for on_fix, _ in list(self.watches.values()):
            on_fix(reading)

    def fail(self, exc: Exception) -> None:
        for _, on_error in list(self.watches.values()):
            on_error(exc)


@pytest.mark.asyncio
async def test_get_current_position_success() -> None:
    backend = _FakeBackend(reading={"latitude": 52.07, "longitude": 4.3, "accuracy": 5})
    source = PositionSource(backend)

    result = await source.get_current_position()

    assert result.ok
    assert result.value == GeoPosition(latitude=52.07, longitude=4.3, accuracy=5.0)
    assert source.current_position == result.value
    assert source.error is None
    assert backend.requests[0].maximum_age == timedelta(seconds=60)
    assert backend.requests[0].high_accuracy is True


@pytest.mark.asyncio
async def test_get_current_position_unavailable() -> None:
    source = PositionSource(None)
    result = await source.get_current_position()
    assert isinstance(result.error, GeolocationUnavailableError)
    assert source.error == "Geolocation is not supported."
    assert source.current_position is None


@pytest.mark.asyncio
async def test_get_current_position_backend_not_available() -> None:
    source = PositionSource(_FakeBackend(available=False))
    result = await source.get_current_position()
    assert isinstance(result.error, GeolocationUnavailableError)


@pytest.mark.asyncio
async def test_get_current_position_denied_is_reported() -> None:
    source = PositionSource(_FakeBackend(error=GeolocationDeniedError("User denied")))
    result = await source.get_current_position()
    assert isinstance(result.error, GeolocationDeniedError)
    assert source.error == "User denied"


@pytest.mark.asyncio
async def test_get_current_position_times_out() -> None:
    backend = _FakeBackend(reading={"latitude": 1, "longitude": 1}, delay=1)
    source = PositionSource(backend, options=PositionOptions(timeout=timedelta(milliseconds=10)))
    result = await source.get_current_position()
    assert isinstance(result.error, GeolocationTimeoutError)
    assert source.current_position is None


@pytest.mark.asyncio
async def test_get_current_position_invalid_reading() -> None:
    source = PositionSource(_FakeBackend(reading={"latitude": 100, "longitude": 1}))
    result = await source.get_current_position()
    assert not result.ok
    assert source.error == "latitude must be between -90 and 90."


@pytest.mark.asyncio
async def test_success_clears_previous_error() -> None:
    backend = _FakeBackend(error=GeolocationDeniedError("denied"))
    source = PositionSource(backend)
    await source.get_current_position()
    backend._error = None
    backend._reading = {"latitude": 1, "longitude": 2}
    await source.get_current_position()
    assert source.error is None


def test_start_watching_is_idempotent() -> None:
    backend = _FakeBackend()
    source = PositionSource(backend)

    first = source.start_watching()
    second = source.start_watching()

    assert first is second
    assert source.is_watching
    assert len(backend.watches) == 1
    assert backend.watch_options[0].maximum_age == timedelta(seconds=5)


def test_watch_updates_position_and_notifies_listeners() -> None:
    backend = _FakeBackend()
    source = PositionSource(backend)
    seen: list[GeoPosition] = []
    remove = source.add_listener(seen.append)

    source.start_watching()
    backend.emit({"latitude": 10, "longitude": 20})
    backend.emit({"latitude": 11, "longitude": 21})
    remove()
    backend.emit({"latitude": 12, "longitude": 22})

    assert [position.latitude for position in seen] == [10, 11]
    assert source.current_position == GeoPosition(latitude=12, longitude=22)


def test_watch_error_is_recorded() -> None:
    backend = _FakeBackend()
    source = PositionSource(backend)
    source.start_watching()
    backend.fail(GeolocationTimeoutError("Timeout expired"))
    assert source.error == "Timeout expired"
    assert source.is_watching


def test_stop_watching_releases_subscription() -> None:
    backend = _FakeBackend()
    source = PositionSource(backend)
    watch = source.start_watching()

    source.stop_watching()
    source.stop_watching()
    watch.stop()

    assert backend.cleared == [1]
    assert not source.is_watching
    assert not watch.active


def test_watch_context_manager_releases_on_exit() -> None:
    backend = _FakeBackend()
    source = PositionSource(backend)
    with source.start_watching() as watch:
        assert watch.active
    assert backend.cleared == [1]
    assert not source.is_watching


def test_restart_after_stop_creates_new_watch() -> None:
    backend = _FakeBackend()
    source = PositionSource(backend)
    first = source.start_watching()
    first.stop()
    second = source.start_watching()
    assert second is not first
    assert second.handle == 2


def test_start_watching_unavailable_returns_inactive_watch() -> None:
    source = PositionSource(None)
    watch = source.start_watching()
    assert not watch.active
    assert not source.is_watching
    assert source.error == "Geolocation is not supported."
    watch.stop()


def test_online_signal() -> None:
    source = PositionSource(None)
    assert source.is_online
    source.set_online(False)
    assert not source.is_online
    source.set_online(True)
    assert source.is_online


class _BrokenWatchBackend(_FakeBackend):
    def watch_position(self, on_fix, on_error, options):
        raise RuntimeError("sensor driver crashed")


def test_start_watching_unexpected_failure_resets_state() -> None:
    source = PositionSource(_BrokenWatchBackend())

    with pytest.raises(RuntimeError):
        source.start_watching()

    assert not source.is_watching
    source._backend = _FakeBackend()
    watch = source.start_watching()
    assert watch.active
    assert source.is_watching
    watch.stop()


def test_start_watching_library_failure_is_recorded() -> None:
    class _DeniedWatchBackend(_FakeBackend):
        def watch_position(self, on_fix, on_error, options):
            raise GeolocationDeniedError("Permission denied.")

    source = PositionSource(_DeniedWatchBackend())
    watch = source.start_watching()

    assert not watch.active
    assert not source.is_watching
    assert source.error == "Permission denied."
