from datetime import UTC, datetime

import pytest

from pyparklocator.exceptions import ValidationError
from pyparklocator.store.base import Join
from pyparklocator.store.memory import MemoryStore


def _store() -> MemoryStore:
    store = MemoryStore(owner_id="owner-1", clock=lambda: datetime(2024, 6, 1, 9, tzinfo=UTC))
    store.seed(
        "parking_lots",
        [{"id": "lot-1", "name": "Main", "code": "M"}],
    )
    store.seed(
        "parking_sections",
        [{"id": "sec-1", "parking_lot_id": "lot-1", "name": "Pluto", "code": "P"}],
    )
    return store


@pytest.mark.asyncio
async def test_insert_assigns_id_and_created_at() -> None:
    store = _store()
    row = await store.insert("vehicles", {"license_plate": "AB12CD"})
    assert row["id"]
    assert row["created_at"] == "2024-06-01T09:00:00.000000Z"
    assert store.rows("vehicles") == [row]


@pytest.mark.asyncio
async def test_insert_embeds_nested_joins() -> None:
    store = _store()
    joins = (
        Join(
            "section",
            "parking_sections",
            "section_id",
            (Join("parking_lot", "parking_lots", "parking_lot_id"),),
        ),
    )
    row = await store.insert("parking_spots", {"section_id": "sec-1"}, joins=joins)
    assert row["section"]["parking_lot"]["name"] == "Main"
    assert "section" not in store.rows("parking_spots")[0]


@pytest.mark.asyncio
async def test_missing_join_target_is_none() -> None:
    store = _store()
    row = await store.insert(
        "parking_spots",
        {"section_id": None},
        joins=(Join("section", "parking_sections", "section_id"),),
    )
    assert row["section"] is None


@pytest.mark.asyncio
async def test_select_filters_orders_and_limits() -> None:
    store = _store()
    store.seed(
        "parking_sessions",
        [
            {"id": "a", "user_id": "owner-1", "started_at": "2024-06-01T08:00:00.000000Z"},
            {"id": "b", "user_id": "owner-1", "started_at": "2024-06-01T10:00:00.000000Z"},
            {"id": "c", "user_id": "owner-2", "started_at": "2024-06-01T11:00:00.000000Z"},
            {"id": "d", "user_id": "owner-1", "started_at": None},
        ],
    )

    rows = await store.select(
        "parking_sessions",
        filters={"user_id": "owner-1"},
        order_by="started_at",
        descending=True,
    )
    assert [row["id"] for row in rows] == ["b", "a", "d"]

    newest = await store.select_one(
        "parking_sessions",
        filters={"user_id": "owner-1"},
        order_by="started_at",
        descending=True,
    )
    assert newest["id"] == "b"


@pytest.mark.asyncio
async def test_select_unknown_table_is_empty() -> None:
    assert await _store().select("vehicles") == []


@pytest.mark.asyncio
async def test_select_returns_copies() -> None:
    store = _store()
    rows = await store.select("parking_lots")
    rows[0]["name"] = "Changed"
    assert store.rows("parking_lots")[0]["name"] == "Main"


@pytest.mark.asyncio
async def test_update_patches_matching_rows() -> None:
    store = _store()
    rows = await store.update("parking_lots", {"name": "North"}, filters={"id": "lot-1"})
    assert rows[0]["name"] == "North"
    assert await store.update("parking_lots", {"name": "x"}, filters={"id": "none"}) == []


@pytest.mark.asyncio
async def test_update_requires_filters_and_values() -> None:
    store = _store()
    with pytest.raises(ValidationError):
        await store.update("parking_lots", {"name": "x"}, filters={})
    with pytest.raises(ValidationError):
        await store.update("parking_lots", {}, filters={"id": "lot-1"})


@pytest.mark.asyncio
async def test_owner_identity() -> None:
    store = MemoryStore()
    assert await store.get_owner_id() is None
    store.owner_id = "owner-9"
    assert await store.get_owner_id() == "owner-9"


@pytest.mark.asyncio
async def test_delete_removes_and_returns_rows() -> None:
    store = _store()
    store.seed(
        "vehicles",
        [{"id": "car-1", "user_id": "owner-1"}, {"id": "car-2", "user_id": "owner-1"}],
    )

    removed = await store.delete("vehicles", filters={"id": "car-1"})

    assert [row["id"] for row in removed] == ["car-1"]
    assert [row["id"] for row in store.rows("vehicles")] == ["car-2"]
    assert await store.delete("vehicles", filters={"id": "car-1"}) == []


@pytest.mark.asyncio
async def test_delete_requires_filters() -> None:
    store = _store()
    with pytest.raises(ValidationError):
        await store.delete("parking_lots", filters={})
    assert len(store.rows("parking_lots")) == 1


@pytest.mark.asyncio
async def test_select_embeds_related_lists() -> None:
    store = _store()
    store.seed(
        "parking_sections",
        [{"id": "sec-2", "parking_lot_id": "lot-2", "name": "Goofy", "code": "G"}],
    )
    store.seed(
        "pricing_tiers",
        [{"id": "tier-1", "parking_lot_id": "lot-1", "price_per_hour": "5"}],
    )
    joins = (
        Join("sections", "parking_sections", "parking_lot_id", many=True),
        Join("pricing_tiers", "pricing_tiers", "parking_lot_id", many=True),
    )

    rows = await store.select("parking_lots", joins=joins)

    assert [section["id"] for section in rows[0]["sections"]] == ["sec-1"]
    assert [tier["id"] for tier in rows[0]["pricing_tiers"]] == ["tier-1"]
    rows[0]["sections"][0]["name"] = "Changed"
    assert store.rows("parking_sections")[0]["name"] == "Pluto"


@pytest.mark.asyncio
async def test_select_orders_by_several_columns() -> None:
    store = _store()
    store.seed(
        "vehicles",
        [
            {"id": "old", "is_default": False, "created_at": "2024-01-01T00:00:00.000000Z"},
            {"id": "new", "is_default": False, "created_at": "2024-03-01T00:00:00.000000Z"},
            {"id": "main", "is_default": True, "created_at": "2023-01-01T00:00:00.000000Z"},
        ],
    )

    rows = await store.select("vehicles", order_by=("is_default", "created_at"), descending=True)

    assert [row["id"] for row in rows] == ["main", "new", "old"]


@pytest.mark.asyncio
async def test_select_rejects_blank_order_column() -> None:
    with pytest.raises(ValidationError):
        await _store().select("parking_lots", order_by=("name", " "))
