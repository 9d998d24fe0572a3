"""In-process store with the same semantics as the remote store."""

from __future__ import annotations

import copy
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from ..exceptions import ValidationError
from ..util import format_utc_timestamp, utcnow
from .base import BaseStore, Join, OrderBy, Row


class MemoryStore(BaseStore):
    """Keep tables as lists of rows; joins are resolved by ``id`` lookups."""

    def __init__(
        self,
        *,
        owner_id: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.owner_id = owner_id
        self._clock = clock or utcnow
        self._tables: dict[str, list[Row]] = {}

    def seed(self, table: str, rows: Iterable[Mapping[str, Any]]) -> None:
        target = self._tables.setdefault(self._validate_table(table), [])
        for row in rows:
            target.append(self._prepare_row(row))

    def rows(self, table: str) -> list[Row]:
        return copy.deepcopy(self._tables.get(table, []))

    async def get_owner_id(self) -> str | None:
        return self.owner_id

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
        table_name = self._validate_table(table)
        criteria = self._validate_filters(filters)
        limit_value = self._validate_limit(limit)
        matched = [row for row in self._tables.get(table_name, []) if _matches(row, criteria)]
        # Stable sorts from the last column to the first; nulls go last.
        for column in reversed(self._validate_order(order_by)):
            present = [row for row in matched if row.get(column) is not None]
            missing = [row for row in matched if row.get(column) is None]
            present.sort(key=lambda row: row[column], reverse=descending)
            matched = present + missing
        if limit_value is not None:
            matched = matched[:limit_value]
        return [self._embed(copy.deepcopy(row), joins) for row in matched]

    async def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        joins: Sequence[Join] = (),
    ) -> Row:
        if not isinstance(row, Mapping):
            raise ValidationError("row must be a mapping of column names.")
        stored = self._prepare_row(row)
        self._tables.setdefault(self._validate_table(table), []).append(stored)
        return self._embed(copy.deepcopy(stored), joins)

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
        updated: list[Row] = []
        for row in self._tables.get(self._validate_table(table), []):
            if _matches(row, criteria):
                row.update(copy.deepcopy(dict(values)))
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> list[Row]:
        criteria = self._require_filters(filters)
        rows = self._tables.get(self._validate_table(table), [])
        removed = [row for row in rows if _matches(row, criteria)]
        rows[:] = [row for row in rows if not _matches(row, criteria)]
        return removed

    def _prepare_row(self, row: Mapping[str, Any]) -> Row:
        stored = copy.deepcopy(dict(row))
        if stored.get("id") is None:
            stored["id"] = uuid.uuid4().hex
        stored.setdefault("created_at", format_utc_timestamp(self._clock()))
        return stored

    def _embed(self, row: Row, joins: Sequence[Join]) -> Row:
        for join in joins:
            if join.many:
                row[join.name] = [
                    self._embed(copy.deepcopy(related), join.children)
                    for related in self._tables.get(join.table, [])
                    if related.get(join.key) == row.get("id")
                ]
                continue
            related = self._lookup(join.table, row.get(join.key))
            if related is not None:
                related = self._embed(copy.deepcopy(related), join.children)
            row[join.name] = related
        return row

    def _lookup(self, table: str, row_id: Any) -> Row | None:
        if row_id is None:
            return None
        for row in self._tables.get(table, []):
            if row.get("id") == row_id:
                return row
        return None


def _matches(row: Mapping[str, Any], criteria: Mapping[str, Any]) -> bool:
    return all(row.get(column) == value for column, value in criteria.items())
