"""Shared test fixtures for outlook-sync tests."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, List, Tuple

import pytest

from outlook_sync.cache import ConditionalCache, MemoryStore
from outlook_sync.config import Settings

SAMPLE_ENVELOPE = (
    '{"timestamp_utc":"2024-01-01T00:00:00Z","response":"{\\"short_term\\":'
    '{\\"decision\\":\\"buy\\",\\"score\\":0.8,\\"key_points\\":[\\"a\\",\\"b\\"]},'
    '\\"mid_term\\":{},\\"long_term\\":{},\\"top_sources\\":[],'
    '\\"date_utc\\":\\"2024-01-01\\"}"}'
)


class FakeNow:
    """Controllable UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class ReadOnlyStore(MemoryStore):
    """Store whose contents can be read but never written."""

    def update(self, values) -> None:
        raise PermissionError("read-only disk")


class RecordingPresenter:
    """Presenter double that records every call in order."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Any]] = []

    def show_loading(self) -> None:
        self.events.append(("loading", None))

    def show_document(self, document) -> None:
        self.events.append(("document", document))

    def show_outcome(self, outcome) -> None:
        self.events.append(("outcome", outcome))

    def show_freshness(self, label: str) -> None:
        self.events.append(("freshness", label))

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.events]


@pytest.fixture
def sample_envelope() -> str:
    """Envelope whose response is a JSON-encoded string."""
    return SAMPLE_ENVELOPE


@pytest.fixture
def object_envelope() -> str:
    """Envelope whose response is an embedded object."""
    return json.dumps({
        "timestamp_utc": "2024-02-01T06:30:00Z",
        "response": {
            "short_term": {"decision": "wait", "score": 0.35, "key_points": ["x"]},
            "mid_term": {"decision": "buy", "score": 1, "key_points": []},
            "long_term": {"decision": "Buy", "score": 0.912, "key_points": ["p1", "p2", "p3", "p4", "p5"]},
            "top_sources": ["https://example.com/a/", "javascript:alert(1)", "not a url"],
            "date_utc": "2024-02-01",
        },
    })


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointed at a temp state file with fast, deterministic retries."""
    return Settings(
        data_url="https://outlook.example.test/latest/answer.json",
        cache_bust=False,
        state_path=tmp_path / "state" / "outlook_cache.json",
        timeout_seconds=8.0,
        max_retries=1,
        retry_backoff_seconds=0.5,
    )


@pytest.fixture
def now() -> FakeNow:
    return FakeNow(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore) -> ConditionalCache:
    return ConditionalCache(store)


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()
