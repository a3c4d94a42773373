from __future__ import annotations

import json
from pathlib import Path

from tile_deck.core.cache import TILE_STATE_KEY, PersistentCache
from tile_deck.core.errors import StorageError
from tile_deck.core.models import CacheEntry
from tile_deck.core.storage import JsonFileStore, MemoryStore


def _entry(record=None, at: int = 100, ok: bool = False) -> CacheEntry:
    return CacheEntry(
        record=record,
        last_request_at=at,
        last_request_successful=ok,
        last_success_at=at if record is not None else None,
    )


class BrokenStore(MemoryStore):
    def get_item(self, key):
        raise StorageError("unavailable")

    def set_item(self, key, value):
        raise StorageError("quota exceeded")

    def remove_item(self, key):
        raise StorageError("unavailable")


def test_write_then_read_round_trips(cache: PersistentCache) -> None:
    entry = _entry({"v": 1}, ok=True)

    cache.write("tile-a", entry)

    assert cache.read("tile-a") == entry


def test_read_unknown_key_returns_none(cache: PersistentCache) -> None:
    assert cache.read("nothing") is None


def test_entries_survive_a_new_cache_on_the_same_directory(tmp_path: Path) -> None:
    entry = _entry({"v": 2}, ok=True)
    PersistentCache(JsonFileStore(tmp_path)).write("tile-a", entry)

    reloaded = PersistentCache(JsonFileStore(tmp_path))

    assert reloaded.read("tile-a") == entry
    stored = json.loads((tmp_path / f"{TILE_STATE_KEY}.json").read_text())
    assert stored["tile-a"]["lastDataRequestSuccessful"] is True


def test_write_overwrites_whole_entry(cache: PersistentCache) -> None:
    cache.write("tile-a", _entry({"v": 1}, at=100, ok=True))
    cache.write("tile-a", _entry(None, at=200))

    assert cache.read("tile-a") == _entry(None, at=200)


def test_clear_and_clear_all(store: MemoryStore, cache: PersistentCache) -> None:
    cache.write("tile-a", _entry({"v": 1}, ok=True))
    cache.write("tile-b", _entry())

    cache.clear("tile-a")
    assert cache.keys() == ["tile-b"]

    cache.clear_all()
    assert cache.keys() == []
    assert TILE_STATE_KEY not in store.items


def test_storage_failures_never_reach_the_caller() -> None:
    cache = PersistentCache(BrokenStore())
    entry = _entry({"v": 1}, ok=True)

    cache.write("tile-a", entry)
    cache.clear_all()
    cache.write("tile-b", entry)

    assert cache.read("tile-b") == entry


def test_corrupt_storage_is_ignored(store: MemoryStore) -> None:
    store.set_item(TILE_STATE_KEY, "{not json")

    assert PersistentCache(store).read("tile-a") is None


def test_invalid_entries_are_skipped(store: MemoryStore) -> None:
    good = _entry({"v": 1}, ok=True)
    store.set_item(TILE_STATE_KEY, json.dumps({
        "good": good.to_storage(),
        "bad": {"data": {"v": 1}, "lastDataRequest": "yesterday"},
    }))

    cache = PersistentCache(store)

    assert cache.read("good") == good
    assert cache.read("bad") is None


def test_unserializable_entry_does_not_break_later_writes(store: MemoryStore, cache: PersistentCache) -> None:
    cache.write("tile-a", _entry({"handle": object()}, ok=True))
    good = _entry({"v": 1}, ok=True)

    cache.write("tile-b", good)

    assert cache.read("tile-b") == good
    reloaded = PersistentCache(store)
    assert reloaded.read("tile-b") == good
    assert reloaded.read("tile-a") is None
