"""Remote store interface and shared behavior."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class Join:
    """Embed related rows under ``name``.

    By default ``key`` is a column of the parent row pointing at one related
    row. With ``many`` set, ``key`` is a column of the related table pointing
    back at the parent ``id`` and a list of rows is embedded.
    """

    name: str
    table: str
    key: str
    children: tuple[Join, ...] = ()
    many: bool = False


Row = dict[str, Any]
OrderBy = str | Sequence[str] | None


class BaseStore(ABC):
    """Base class for remote store implementations.

    Stores speak in plain rows (``dict`` objects keyed by column name). All
    filters are equality filters combined with AND. Several ``order_by``
    columns share one direction.
    """

    async def select_one(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: OrderBy = None,
        descending: bool = False,
        joins: Sequence[Join] = (),
    ) -> Row | None:
        """Return the first matching row or ``None``."""
        rows = await self.select(
            table,
            filters=filters,
            order_by=order_by,
            descending=descending,
            limit=1,
            joins=joins,
        )
        return rows[0] if rows else None

    def _validate_table(self, table: str) -> str:
        if not isinstance(table, str) or not table.strip():
            raise ValidationError("table must be a non-empty string.")
        return table.strip()

    def _validate_filters(self, filters: Mapping[str, Any] | None) -> dict[str, Any]:
        if filters is None:
            return {}
        if not isinstance(filters, Mapping):
            raise ValidationError("filters must be a mapping of column names.")
        validated: dict[str, Any] = {}
        for column, value in filters.items():
            if not isinstance(column, str) or not column:
                raise ValidationError("filters must be a mapping of column names.")
            validated[column] = value
        return validated

    def _validate_limit(self, limit: int | None) -> int | None:
        if limit is None:
            return None
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit must be a positive integer.")
        return limit

    def _validate_order(self, order_by: OrderBy) -> tuple[str, ...]:
        if order_by is None:
            return ()
        columns = (order_by,) if isinstance(order_by, str) else tuple(order_by)
        for column in columns:
            if not isinstance(column, str) or not column.strip():
                raise ValidationError("order_by must name one or more columns.")
        return tuple(column.strip() for column in columns)

    def _require_filters(self, filters: Mapping[str, Any] | None) -> dict[str, Any]:
        criteria = self._validate_filters(filters)
        if not criteria:
            raise ValidationError("writes require at least one filter.")
        return criteria

    @abstractmethod
    async def get_owner_id(self) -> str | None:
        """Return the identity of the signed-in owner, if any."""

    @abstractmethod
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
        """Return matching rows with related rows embedded."""

    @abstractmethod
    async def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        joins: Sequence[Join] = (),
    ) -> Row:
        """Insert a row and return it as stored, with related rows embedded."""

    @abstractmethod
    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> list[Row]:
        """Patch every matching row and return the updated rows."""

    @abstractmethod
    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> list[Row]:
        """Remove every matching row and return the removed rows."""
