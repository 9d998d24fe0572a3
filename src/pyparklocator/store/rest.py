"""Remote store backed by a PostgREST style HTTP API."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

import aiohttp

from ..const import DEFAULT_API_URI
from ..exceptions import NotAuthenticatedError, RemoteUnavailableError, ValidationError
from ..util import format_utc_timestamp
from .base import BaseStore, Join, OrderBy, Row

_LOGGER = logging.getLogger(__name__)
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)
_RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def render_select(joins: Sequence[Join]) -> str:
    """Render joins as a PostgREST ``select`` expression."""
    parts = ["*"]
    for join in joins:
        parts.append(f"{join.name}:{join.table}({render_select(join.children)})")
    return ",".join(parts)


def render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return format_utc_timestamp(value)
    return str(value)


def render_filters(filters: Mapping[str, Any]) -> list[tuple[str, str]]:
    params: list[tuple[str, str]] = []
    for column, value in filters.items():
        if value is None:
            params.append((column, "is.null"))
        else:
            params.append((column, f"eq.{render_value(value)}"))
    return params


class RestStore(BaseStore):
    """Store that talks to a PostgREST compatible endpoint over aiohttp."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str,
        api_uri: str | None = DEFAULT_API_URI,
        api_key: str | None = None,
        access_token: str | None = None,
        owner_id: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
    ) -> None:
        if session is None:
            raise ValidationError("Session is required.")
        self._session = session
        self._base_url = self._normalize_base_url(base_url)
        self._api_uri = self._normalize_api_uri(api_uri)
        self._api_key = api_key
        self._access_token = access_token
        self._owner_id = owner_id
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)

    def set_identity(self, access_token: str | None, owner_id: str | None) -> None:
        """Swap the identity established by the external auth provider."""
        self._access_token = access_token
        self._owner_id = owner_id

    async def get_owner_id(self) -> str | None:
        return self._owner_id

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: OrderBy = None,
        descending: bool = False,
        limit: int | None = None,
        joins: Sequence[Join] = (),
    ) -> list[Row]:
        params = [("select", render_select(joins))]
        params.extend(render_filters(self._validate_filters(filters)))
        columns = self._validate_order(order_by)
        if columns:
            direction = "desc" if descending else "asc"
            params.append(("order", ",".join(f"{column}.{direction}" for column in columns)))
        limit_value = self._validate_limit(limit)
        if limit_value is not None:
            params.append(("limit", str(limit_value)))
        data = await self._request_json("GET", self._validate_table(table), params=params)
        return self._rows(data)

    async def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        joins: Sequence[Join] = (),
    ) -> Row:
        if not isinstance(row, Mapping):
            raise ValidationError("row must be a mapping of column names.")
        data = await self._request_json(
            "POST",
            self._validate_table(table),
            params=[("select", render_select(joins))],
            json=dict(row),
            headers=_RETURN_REPRESENTATION,
        )
        rows = self._rows(data)
        if not rows:
            raise RemoteUnavailableError(
                "Store did not return the inserted row.",
                error_code="invalid_response",
            )
        return rows[0]

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> list[Row]:
        criteria = self._require_filters(filters)
        if not values:
            raise ValidationError("update requires at least one value.")
        params = [("select", "*"), *render_filters(criteria)]
        data = await self._request_json(
            "PATCH",
            self._validate_table(table),
            params=params,
            json=dict(values),
            headers=_RETURN_REPRESENTATION,
        )
        return self._rows(data)

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> list[Row]:
        params = [("select", "*"), *render_filters(self._require_filters(filters))]
        data = await self._request_json(
            "DELETE",
            self._validate_table(table),
            params=params,
            headers=_RETURN_REPRESENTATION,
        )
        return self._rows(data)

    def _build_url(self, path: str) -> str:
        normalized_path = path if path.startswith("/") else f"/{path}"
        return f"{self._base_url}{self._api_uri}{normalized_path}"

    def _build_headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
        token = self._access_token or self._api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> Any:
        url = self._build_url(path)
        retries = self._retry_count if method.upper() == "GET" else 0
        attempts = retries + 1
        for attempt in range(attempts):
            try:
                async with self._session.request(
                    method,
                    url,
                    headers=self._build_headers(headers),
                    timeout=self._timeout,
                    **kwargs,
                ) as response:
                    self._raise_for_status(response)
                    try:
                        return await response.json()
                    except (aiohttp.ContentTypeError, ValueError) as exc:
                        raise RemoteUnavailableError(
                            "Store response did not contain valid JSON.",
                            error_code="invalid_response",
                        ) from exc
            except (aiohttp.ClientError, TimeoutError) as exc:
                if attempt >= attempts - 1:
                    raise RemoteUnavailableError("Network request failed.") from exc
                _LOGGER.debug("Store %s %s failed, retrying", method, path)
        raise RemoteUnavailableError("Request failed.")

    def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        if 200 <= response.status < 300:
            return
        if response.status in (401, 403):
            raise NotAuthenticatedError("Authentication failed.")
        raise RemoteUnavailableError(
            f"Store request failed with status {response.status}.",
            error_code="http_error",
        )

    def _rows(self, data: Any) -> list[Row]:
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list):
            raise RemoteUnavailableError(
                "Store response included invalid rows.",
                error_code="invalid_response",
            )
        return [item for item in data if isinstance(item, dict)]

    def _normalize_base_url(self, base_url: str) -> str:
        if not isinstance(base_url, str) or not base_url.strip():
            raise ValidationError("base_url must be a non-empty string.")
        return base_url.strip().rstrip("/")

    def _normalize_api_uri(self, api_uri: str | None) -> str:
        if api_uri is None:
            return ""
        if not isinstance(api_uri, str):
            raise ValidationError("api_uri must be a string.")
        normalized = api_uri.strip().strip("/")
        if not normalized:
            return ""
        return f"/{normalized}"
