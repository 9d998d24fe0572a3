import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from pyparklocator import cache as cache_module
from pyparklocator.cache import OfflineCache
from pyparklocator.exceptions import ValidationError
from pyparklocator.models import GeoPosition, ParkingLot, ParkingSection, SavedLocation


def _location(location_id: str, *, latitude: float = 28.4) -> SavedLocation:
    return SavedLocation(
        id=location_id,
        owner_id="owner-1",
        position=GeoPosition(latitude=latitude, longitude=-81.5, accuracy=4.0),
        is_active=True,
        notes=f"note {location_id}",
        created_at=datetime(2024, 1, 1, 12, tzinfo=UTC),
    )


def test_put_is_most_recent_first() -> None:
    cache = OfflineCache()
    cache.put(_location("a"))
    cache.put(_location("b"))
    assert [entry.id for entry in cache] == ["b", "a"]
    assert cache.newest().id == "b"


def test_put_replaces_by_id() -> None:
    cache = OfflineCache()
    cache.put(_location("a", latitude=1))
    cache.put(_location("b"))
    cache.put(_location("a", latitude=2))
    assert [entry.id for entry in cache] == ["a", "b"]
    assert cache.newest().position.latitude == 2


def test_capacity_discards_oldest() -> None:
    cache = OfflineCache()
    for index in range(7):
        cache.put(_location(str(index)))
    assert len(cache) == 5
    assert [entry.id for entry in cache] == ["6", "5", "4", "3", "2"]


def test_discard_and_clear() -> None:
    cache = OfflineCache()
    cache.put(_location("a"))
    cache.put(_location("b"))
    cache.discard("a")
    assert [entry.id for entry in cache] == ["b"]
    cache.clear()
    assert cache.newest() is None


def test_invalid_capacity() -> None:
    with pytest.raises(ValidationError):
        OfflineCache(0)


def test_dump_and_load_keeps_order_and_joins(tmp_path: Path) -> None:
    lot = ParkingLot(id="lot-1", name="Main", code="M", latitude=28.41, longitude=-81.58)
    section = ParkingSection(id="sec-1", lot_id="lot-1", name="Pluto", code="P", level=2, lot=lot)
    cache = OfflineCache()
    cache.put(_location("old"))
    joined = SavedLocation(
        id="new",
        owner_id="owner-1",
        position=GeoPosition(latitude=28.42, longitude=-81.58),
        is_active=True,
        lot_id="lot-1",
        section_id="sec-1",
        lot=lot,
        section=section,
    )
    cache.put(joined)
    path = tmp_path / "cache.json"

    cache.dump(path)
    loaded = OfflineCache.load(path)

    assert loaded.entries == cache.entries


def test_load_missing_file_is_empty(tmp_path: Path) -> None:
    assert len(OfflineCache.load(tmp_path / "missing.json")) == 0


def test_load_rejects_schema_mismatch(tmp_path: Path) -> None:
    path = tmp_path / "cache.json"
    path.write_text(
        json.dumps({"version": 1, "locations": [{"id": "x", "latitude": 200}]}),
        encoding="utf-8",
    )
    with pytest.raises(ValidationError):
        OfflineCache.load(path)


def test_load_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValidationError):
        OfflineCache.load(path)


def test_schema_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cache_module, "_SCHEMA_CACHE", None)
    first = cache_module.load_cache_schema()
    second = cache_module.load_cache_schema()
    assert first is second
    assert first["properties"]["version"] == {"const": 1}
