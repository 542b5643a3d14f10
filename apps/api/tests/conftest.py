from __future__ import annotations

import itertools

import pytest

from notetree_api.dependencies import clear_caches
from notetree_api.repository import EntryRepository
from notetree_api.storage.blob import InMemoryBlobStore


class StepClock:
    """Deterministic millisecond clock that advances on every read."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1000) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


@pytest.fixture(autouse=True)
def _clear_dependency_caches():
    clear_caches()
    yield
    clear_caches()


@pytest.fixture
def store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def repo(store, clock) -> EntryRepository:
    counter = itertools.count(1)
    return EntryRepository(store, clock=clock, id_factory=lambda: f"e{next(counter)}")
