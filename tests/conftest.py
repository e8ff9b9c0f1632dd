from __future__ import annotations

import pytest

from ads_op_tracker import config
from ads_op_tracker.events import EventBus
from ads_op_tracker.retry import RetryEngine
from ads_op_tracker.store.memory import InMemoryOperationStore
from ads_op_tracker.store.sqlite import SqliteOperationStore
from ads_op_tracker.tracker import OperationTracker


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    # Keep a developer's .env out of unit tests.
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    config._load_settings_cached.cache_clear()
    yield
    config._load_settings_cached.cache_clear()


@pytest.fixture
def store() -> InMemoryOperationStore:
    return InMemoryOperationStore()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def tracker(store: InMemoryOperationStore, bus: EventBus) -> OperationTracker:
    return OperationTracker(store, bus)


@pytest.fixture(params=["memory", "sqlite"])
def backend_tracker(request, tmp_path, bus: EventBus):
    if request.param == "memory":
        yield OperationTracker(InMemoryOperationStore(), bus)
        return
    sqlite_store = SqliteOperationStore(str(tmp_path / "ops.sqlite"))
    yield OperationTracker(sqlite_store, bus)
    sqlite_store.close()


@pytest.fixture
def strict_tracker(store: InMemoryOperationStore) -> OperationTracker:
    return OperationTracker(store, strict=True)


@pytest.fixture
def retry_engine(tracker: OperationTracker) -> RetryEngine:
    return RetryEngine(tracker)


@pytest.fixture
def clone_metadata() -> dict:
    return {
        "customerId": "123-456-7890",
        "campaignIds": ["c1", "c2", "c3", "c4"],
        "chunkSize": 5,
        "config": {
            "nameTemplate": "{original} - Copy",
            "matchType": "exact",
            "createNegativeExactKeywords": True,
        },
        "completedCampaigns": [{"id": "c1"}, {"id": "c2"}],
        "failedCampaigns": [
            {"id": "c3", "error": "RESOURCE_EXHAUSTED"},
            {"id": "c4", "error": "INTERNAL"},
        ],
    }
