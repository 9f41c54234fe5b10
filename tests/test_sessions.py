"""Order session lifecycle: creation, link lookup, finalization."""

import pytest

from app.core.exceptions import NotFoundError
from app.services.sessions import SessionLifecycleManager
from tests.factories import session_data


@pytest.fixture
def manager(storage):
    return SessionLifecycleManager(storage)


async def test_create_generates_unique_links(manager):
    sessions = [await manager.create(session_data(name=f"s{i}")) for i in range(20)]

    links = {s.session_link for s in sessions}
    assert len(links) == 20
    assert all(len(link) >= 20 for link in links)
    assert all(s.is_active and s.finalized_at is None for s in sessions)


async def test_get_by_link_returns_that_session(manager):
    created = await manager.create(session_data())

    found = await manager.get_by_link(created.session_link)

    assert found == created


async def test_get_by_unknown_link_raises_not_found(manager):
    await manager.create(session_data())

    with pytest.raises(NotFoundError):
        await manager.get_by_link("does-not-exist")


async def test_finalize_sets_inactive_and_timestamp(manager):
    created = await manager.create(session_data())

    finalized = await manager.finalize(created.id)

    assert finalized.is_active is False
    assert finalized.finalized_at is not None
    assert finalized.finalized_at >= created.created_at
    assert finalized.session_link == created.session_link
    assert await manager.get(created.id) == finalized
    assert await manager.get_by_link(created.session_link) == finalized


async def test_finalize_missing_session_raises_and_writes_nothing(manager, storage):
    created = await manager.create(session_data())

    with pytest.raises(NotFoundError):
        await manager.finalize(created.id + 100)

    assert await storage.list_order_sessions() == [created]


async def test_refinalize_keeps_original_timestamp(manager):
    created = await manager.create(session_data())
    first = await manager.finalize(created.id)

    second = await manager.finalize(created.id)

    assert second == first
    assert second.is_active is False


async def test_link_collision_is_retried(storage, monkeypatch):
    manager = SessionLifecycleManager(storage)
    existing = await manager.create(session_data())
    tokens = iter([existing.session_link, "fresh-token"])
    monkeypatch.setattr(manager, "generate_link", lambda: next(tokens))

    created = await manager.create(session_data(name="second"))

    assert created.session_link == "fresh-token"


async def test_link_length_follows_configured_bytes(storage):
    manager = SessionLifecycleManager(storage, link_bytes=32)

    created = await manager.create(session_data())

    assert len(created.session_link) == 43
