"""
Shared fixtures.

Every storage and API test runs once per backing: the in-memory store
and an in-memory SQLite database behind DatabaseStorage. Passing both
is what makes the backings interchangeable.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event

from app.main import app
from app.services.storage import DatabaseStorage, MemoryStorage, get_storage

BACKINGS = ["memory", "database"]


def build_storage(backing: str, enforce_foreign_keys: bool = False):
    if backing == "memory":
        return MemoryStorage(seed=False)
    store = DatabaseStorage.from_url("sqlite+aiosqlite://")
    if enforce_foreign_keys:
        # SQLite only checks constraints when asked to, PostgreSQL always does
        @event.listens_for(store.engine.sync_engine, "connect")
        def _foreign_keys_on(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return store


@pytest.fixture(params=BACKINGS)
async def storage(request):
    store = build_storage(request.param)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture(params=BACKINGS)
async def strict_storage(request):
    """Like ``storage``, with SQLite enforcing foreign keys the way PostgreSQL does."""
    store = build_storage(request.param, enforce_foreign_keys=True)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def make_client():
    """Build a TestClient wired to a fresh storage of the given backing."""
    clients = []

    def _make(backing: str) -> TestClient:
        store = build_storage(backing)
        app.dependency_overrides[get_storage] = lambda: store
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture(params=BACKINGS)
def client(request, make_client):
    return make_client(request.param)
