from __future__ import annotations

import pytest

from tile_deck.core.cache import PersistentCache
from tile_deck.core.fault_log import FaultLog
from tile_deck.core.fetcher import FetchCoordinator
from tile_deck.core.registry import TransformRegistry, TransformStrategy
from tile_deck.core.storage import MemoryStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def value_strategy() -> TransformStrategy:
    """Accepts ``{"v": <int>}`` payloads and returns them unchanged."""
    return TransformStrategy(
        validate=lambda raw: isinstance(raw, dict) and isinstance(raw.get("v"), int),
        transform=lambda raw: {"v": raw["v"]},
    )


def respond(data, status: int = 200):
    async def retrieve():
        return {"data": data, "status": status}

    return retrieve


def fail(message: str = "Network error", error_type: type = ConnectionError):
    async def retrieve():
        raise error_type(message)

    return retrieve


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore) -> PersistentCache:
    return PersistentCache(store)


@pytest.fixture
def fault_log(store: MemoryStore, clock: FakeClock) -> FaultLog:
    return FaultLog(store, clock=clock)


@pytest.fixture
def registry() -> TransformRegistry:
    registry = TransformRegistry()
    registry.register("value", value_strategy())
    return registry


@pytest.fixture
def coordinator(registry, cache, fault_log, clock) -> FetchCoordinator:
    return FetchCoordinator(registry, cache, fault_log, clock=clock)
