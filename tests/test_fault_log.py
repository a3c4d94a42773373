from __future__ import annotations

import json

from tile_deck.core.errors import StorageError
from tile_deck.core.fault_log import LOGS_KEY, FaultLog
from tile_deck.core.models import LogLevel
from tile_deck.core.storage import MemoryStore

from conftest import FakeClock

HOUR_MS = 60 * 60 * 1000


def test_add_returns_newest_first_and_persists(store: MemoryStore, fault_log: FaultLog, clock: FakeClock) -> None:
    first = fault_log.add(LogLevel.ERROR, "crypto", "down", {"status": 503})
    clock.advance(1000)
    second = fault_log.add("warning", "weather", "slow")

    assert [e.id for e in fault_log.entries()] == [second.id, first.id]
    assert first.id.startswith("log-")
    assert first.details == {"status": 503}

    stored = json.loads(store.items[LOGS_KEY])
    assert stored[0]["apiCall"] == "weather"
    assert stored[1]["level"] == "error"


def test_entries_older_than_retention_are_pruned(fault_log: FaultLog, clock: FakeClock) -> None:
    fault_log.add(LogLevel.ERROR, "crypto", "old")
    clock.advance(HOUR_MS)
    fault_log.add(LogLevel.ERROR, "crypto", "boundary")
    clock.advance(1)

    assert [e.reason for e in fault_log.entries()] == ["boundary"]


def test_entries_are_capped(store: MemoryStore, clock: FakeClock) -> None:
    log = FaultLog(store, max_entries=3, clock=clock)
    for i in range(5):
        log.add(LogLevel.ERROR, "src", f"fault {i}")

    assert [e.reason for e in log.entries()] == ["fault 4", "fault 3", "fault 2"]


def test_reload_from_store(store: MemoryStore, clock: FakeClock) -> None:
    FaultLog(store, clock=clock).add(LogLevel.ERROR, "crypto", "down")

    assert [e.reason for e in FaultLog(store, clock=clock).entries()] == ["down"]


def test_remove_and_clear_notify_listeners(fault_log: FaultLog) -> None:
    calls = []
    unsubscribe = fault_log.subscribe(lambda: calls.append("changed"))

    entry = fault_log.add(LogLevel.ERROR, "crypto", "down")
    assert fault_log.remove(entry.id) is True
    assert fault_log.remove("log-unknown") is False
    fault_log.add(LogLevel.ERROR, "crypto", "down again")
    fault_log.clear()

    assert calls == ["changed"] * 4
    assert fault_log.entries() == []

    unsubscribe()
    fault_log.add(LogLevel.ERROR, "crypto", "unheard")
    assert len(calls) == 4


def test_failing_listener_does_not_break_add(fault_log: FaultLog) -> None:
    def listener():
        raise RuntimeError("listener bug")

    fault_log.subscribe(listener)

    entry = fault_log.add(LogLevel.ERROR, "crypto", "down")
    assert fault_log.entries() == [entry]


def test_storage_failure_keeps_in_memory_log(clock: FakeClock) -> None:
    class FullStore(MemoryStore):
        def set_item(self, key, value):
            raise StorageError("quota exceeded")

    log = FaultLog(FullStore(), clock=clock)
    log.add(LogLevel.ERROR, "crypto", "down")

    assert [e.reason for e in log.entries()] == ["down"]
