"""Shared fixtures: a deterministic clock and a store over a memory backend."""

from __future__ import annotations

import pytest

from matetracker.config import CapacityConfig
from matetracker.store.backend import MemoryBackend
from matetracker.store.record_store import RecordStore


class TickClock:
    """Advances by 1000 ms per reading."""

    def __init__(self, start: int = 0) -> None:
        self.value = start

    def now(self) -> str:
        self.value += 1000
        return str(self.value)


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def clock() -> TickClock:
    return TickClock()


@pytest.fixture
def store(backend: MemoryBackend, clock: TickClock) -> RecordStore:
    return RecordStore.open(backend, CapacityConfig(), clock=clock)
