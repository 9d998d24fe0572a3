"""Client facade wiring the remote store to the ledgers."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import aiohttp

from .cache import OfflineCache
from .const import DEFAULT_API_URI
from .locations import LocationLedger
from .locator import CarLocator
from .lots import LotDirectory
from .position import GeolocationBackend, PositionSource
from .sessions import SessionLedger
from .store.rest import RestStore
from .vehicles import VehicleLedger

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)


class Client:
    """Facade for session and location access against one store.

    The store and ledgers are created on first use so that an owned
    ``aiohttp.ClientSession`` is opened inside the running event loop. The
    client owns a single position source so that every locator shares one
    device subscription.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        base_url: str,
        api_uri: str | None = DEFAULT_API_URI,
        api_key: str | None = None,
        access_token: str | None = None,
        owner_id: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
        offline_cache: OfflineCache | None = None,
        geolocation: GeolocationBackend | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url
        self._api_uri = api_uri
        self._api_key = api_key
        self._access_token = access_token
        self._owner_id = owner_id
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)
        self._offline_cache = offline_cache
        self._geolocation = geolocation
        self._clock = clock
        self._store: RestStore | None = None
        self._sessions: SessionLedger | None = None
        self._locations: LocationLedger | None = None
        self._vehicles: VehicleLedger | None = None
        self._lots: LotDirectory | None = None
        self._positions: PositionSource | None = None

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def store(self) -> RestStore:
        if self._store is None:
            self._store = RestStore(
                self._ensure_session(),
                base_url=self._base_url,
                api_uri=self._api_uri,
                api_key=self._api_key,
                access_token=self._access_token,
                owner_id=self._owner_id,
                timeout=self._timeout,
                retry_count=self._retry_count,
            )
        return self._store

    @property
    def sessions(self) -> SessionLedger:
        if self._sessions is None:
            self._sessions = SessionLedger(self.store, clock=self._clock)
        return self._sessions

    @property
    def locations(self) -> LocationLedger:
        if self._locations is None:
            self._locations = LocationLedger(self.store, cache=self._offline_cache)
        return self._locations

    @property
    def vehicles(self) -> VehicleLedger:
        if self._vehicles is None:
            self._vehicles = VehicleLedger(self.store)
        return self._vehicles

    @property
    def lots(self) -> LotDirectory:
        if self._lots is None:
            self._lots = LotDirectory(self.store)
        return self._lots

    @property
    def positions(self) -> PositionSource:
        if self._positions is None:
            self._positions = PositionSource(self._geolocation)
        return self._positions

    def set_identity(self, access_token: str | None, owner_id: str | None) -> None:
        """Apply an identity established by the external auth provider."""
        self._access_token = access_token
        self._owner_id = owner_id
        if self._store is not None:
            self._store.set_identity(access_token, owner_id)

    def car_locator(self) -> CarLocator:
        return CarLocator(self.positions, self.locations)

    async def aclose(self) -> None:
        if self._positions is not None:
            self._positions.stop_watching()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            # Everything below was bound to the closed session; the offline
            # cache outlives it.
            if self._locations is not None:
                self._offline_cache = self._locations.cache
            self._store = None
            self._sessions = None
            self._locations = None
            self._vehicles = None
            self._lots = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session
