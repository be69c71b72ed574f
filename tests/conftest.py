# tests/conftest.py
import asyncio
import os
import sys
import tempfile
import time

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

TEST_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")
TEST_PRACTICE_SET = os.path.join(TEST_DATA_DIR, "practice_set.json")

# The collector engine is created at import time, so point it at a scratch database first.
_test_db_dir = tempfile.mkdtemp(prefix="vocab_practice_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_test_db_dir, 'collector.db')}"
os.environ["STORAGE_URL"] = f"sqlite:///{os.path.join(_test_db_dir, 'store.db')}"

from vocab_practice.utils.config import settings
from vocab_practice.utils.kv_store import MemoryKeyValueStore
from vocab_practice.models.question import PracticeSet
from vocab_practice.services.session_store import SessionStore
from vocab_practice.endpoints import mistakes as mistakes_endpoint

SESSION_TOKEN = "a" * 64
START_MS = 1_700_000_000_000


class FakeClock:
    """Deterministic epoch-ms clock."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Polls `predicate` on the running loop until it holds or `timeout` passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()

@pytest.fixture
def store(kv_store, clock):
    return SessionStore(kv_store=kv_store, clock=clock)

@pytest.fixture
def practice_set() -> PracticeSet:
    with open(TEST_PRACTICE_SET, mode="r", encoding="utf-8") as f:
        return PracticeSet.model_validate_json(f.read())

@pytest.fixture(scope="session")
def client():
    """TestClient for the collector, serving the practice sets under tests/data."""
    original_dir = settings.practice_sets_dir
    settings.practice_sets_dir = TEST_DATA_DIR
    from vocab_practice.main import app
    try:
        with TestClient(app) as c:
            yield c
    finally:
        settings.practice_sets_dir = original_dir

@pytest.fixture(autouse=True)
def reset_rate_limits():
    mistakes_endpoint.rate_limits.clear()
    mistakes_endpoint._last_sweep = 0.0
    yield
    mistakes_endpoint.rate_limits.clear()
    mistakes_endpoint._last_sweep = 0.0
