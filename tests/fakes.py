"""Shared fakes for the test suite."""

from datetime import date

from core.catalog import WordCatalog
from core.interfaces import KeyValueBackend, StorageError
from core.progress import ProgressStore, MemoryBackend


def make_stage(prefix: str, count: int = 10, category: str | None = None) -> dict:
    stage = {'words': [{'es': f'{prefix}{i}', 'ko': f'{prefix}-ko{i}'} for i in range(count)]}
    if category:
        stage['category'] = category
    return stage


def make_world(stage_count: int = 3, words_per_stage: int = 10) -> dict:
    """World data with stages s1..sN, words '{stage}w{i}' translated '{stage}w-ko{i}'."""
    return {
        'stages': [
            make_stage(f's{n}w', words_per_stage, category=f'Category {n}')
            for n in range(1, stage_count + 1)
        ]
    }


def make_catalog(worlds: dict | None = None) -> WordCatalog:
    catalog = WordCatalog()
    for world_id, data in (worlds or {1: make_world()}).items():
        catalog.load_world_data(world_id, data)
    return catalog


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class FakeToday:
    def __init__(self, day: date):
        self.day = day

    def __call__(self) -> date:
        return self.day


class FailingBackend(KeyValueBackend):
    """Backend whose every operation fails."""

    def __init__(self):
        self.calls = 0

    def get(self, key: str):
        self.calls += 1
        raise StorageError("disk on fire")

    def set(self, key: str, value) -> None:
        self.calls += 1
        raise StorageError("disk on fire")

    def delete(self, key: str) -> None:
        self.calls += 1
        raise StorageError("disk on fire")


def make_store(today: date | None = None) -> ProgressStore:
    store = ProgressStore(
        MemoryBackend(),
        today=FakeToday(today) if today else None,
        now_iso=lambda: '2026-01-01T00:00:00+00:00'
    )
    store.init()
    return store
