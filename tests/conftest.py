"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from leasequeue.api.main import create_app
from leasequeue.clock import Clock
from leasequeue.queue import Queue
from leasequeue.store.memory import InMemoryMessageStore

# PostgreSQL for SQL store tests; those tests are skipped when unset
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> ManualClock:
    """Create a manually driven clock."""
    return ManualClock()


@pytest.fixture
def store() -> InMemoryMessageStore:
    """Create an empty in-memory message store."""
    return InMemoryMessageStore()


@pytest.fixture
def queue_name() -> str:
    """Generate a unique queue name."""
    return f"test-queue-{uuid4().hex[:8]}"


@pytest.fixture
def queue(store: InMemoryMessageStore, clock: ManualClock, queue_name: str) -> Queue:
    """Create a queue with a 3 second lease and no delay."""
    return Queue(store, queue_name, visibility=3, delay=0, clock=clock)


@pytest.fixture
def app(store: InMemoryMessageStore) -> FastAPI:
    """Create a FastAPI app serving the in-memory store."""
    return create_app(store=store)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
