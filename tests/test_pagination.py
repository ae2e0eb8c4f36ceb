"""Tests for loading older history into a session."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from chatstore.models.schemas import Message, Sender, utc_now
from chatstore.services.history_source import SyntheticHistorySource
from chatstore.services.pagination import HistoryPaginationLoader
from chatstore.store.chat_store import ChatStore
from chatstore.store.persistence import InMemoryPersistence


@pytest.fixture
def store():
    return ChatStore.open(InMemoryPersistence())


@pytest.fixture
def source(store):
    return SyntheticHistorySource(store.ids, delay=0.01, max_messages=15)


@pytest.fixture
def loader(store, source):
    return HistoryPaginationLoader(store, source)


def _timestamps(store, session_id):
    return [m.created_at for m in store.get_session(session_id).messages]


@pytest.mark.asyncio
async def test_first_batch_prepends_ten_oldest_first(store, loader):
    newest = store.get_session(1).messages[-1]

    added = await loader.load_older(1, 0)

    messages = store.get_session(1).messages
    assert added == 10
    assert len(messages) == 11
    assert messages[-1].id == newest.id
    assert _timestamps(store, 1) == sorted(_timestamps(store, 1))
    assert loader.is_exhausted(1) is False
    assert store.is_loading_history is False


@pytest.mark.asyncio
async def test_short_batch_marks_exhaustion(store, loader, source):
    await loader.load_older(1, 0)
    added = await loader.load_older(1, 10)

    assert added == 5
    assert loader.is_exhausted(1) is True
    assert len(store.get_session(1).messages) == 16
    assert _timestamps(store, 1) == sorted(_timestamps(store, 1))

    assert await loader.load_older(1, 15) == 0
    assert len(store.get_session(1).messages) == 16


@pytest.mark.asyncio
async def test_reset_allows_loading_again(store, loader):
    store.collection.mark_exhausted(1)
    assert await loader.load_older(1, 0) == 0

    loader.reset(1)
    assert await loader.load_older(1, 0) == 10


@pytest.mark.asyncio
async def test_synthetic_ids_do_not_collide(store, loader):
    await loader.load_older(1, 0)
    ids = [m.id for m in store.get_session(1).messages]
    assert len(ids) == len(set(ids))
    assert store.ids.peek_message_id() > max(ids)


@pytest.mark.asyncio
async def test_concurrent_load_is_ignored(store, loader):
    first = asyncio.create_task(loader.load_older(1, 0))
    await asyncio.sleep(0)

    assert store.is_loading_history is True
    assert await loader.load_older(1, 0) == 0

    assert await first == 10
    assert len(store.get_session(1).messages) == 11


@pytest.mark.asyncio
async def test_batch_is_persisted(store, loader):
    saves = store.gateway.save_count
    await loader.load_older(1, 0)
    assert store.gateway.save_count == saves + 1
    assert "Older message 10" in store.gateway.records["chatrooms"]


@pytest.mark.asyncio
async def test_failure_clears_flag_and_keeps_state(store):
    source = MagicMock()
    source.fetch_batch = AsyncMock(side_effect=ConnectionError("backend down"))
    loader = HistoryPaginationLoader(store, source)

    assert await loader.load_older(1, 0) == 0
    assert store.is_loading_history is False
    assert loader.is_exhausted(1) is False
    assert len(store.get_session(1).messages) == 1


@pytest.mark.asyncio
async def test_session_deleted_during_load_is_discarded(store, loader):
    work = store.create_session("Work")
    task = asyncio.create_task(loader.load_older(work.id, 0))
    await asyncio.sleep(0)

    store.delete_session(work.id)

    assert await task == 0
    assert store.get_session(work.id) is None
    assert store.is_loading_history is False


@pytest.mark.asyncio
async def test_unknown_session_is_noop(store, loader):
    assert await loader.load_older(999, 0) == 0
    assert store.is_loading_history is False


# ------------------------------------------------------------------
# Ordering against existing history
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_old_history_gets_strictly_older_batch(store, loader):
    greeting = store.get_session(1).messages[0]
    greeting.created_at = greeting.created_at - timedelta(days=3)

    assert await loader.load_older(1, 0) == 10

    stamps = _timestamps(store, 1)
    assert stamps == sorted(stamps)
    assert stamps[-1] == greeting.created_at
    assert all(t < greeting.created_at for t in stamps[:-1])


@pytest.mark.asyncio
async def test_repeated_offset_keeps_order(store, loader):
    await loader.load_older(1, 0)
    head = store.get_session(1).messages[0].created_at

    assert await loader.load_older(1, 0) == 10

    stamps = _timestamps(store, 1)
    assert len(stamps) == 21
    assert stamps == sorted(stamps)
    assert all(t < head for t in stamps[:10])


@pytest.mark.asyncio
async def test_source_batch_newer_than_history_is_dropped(store):
    now = utc_now()
    source = MagicMock()
    source.fetch_batch = AsyncMock(
        return_value=[
            Message(
                id=5001,
                text="too new",
                sender=Sender.USER,
                created_at=now + timedelta(hours=1),
            ),
        ]
    )
    loader = HistoryPaginationLoader(store, source)
    oldest = store.get_session(1).messages[0].created_at

    assert await loader.load_older(1, 0) == 0
    assert [m.id for m in store.get_session(1).messages] == [1]
    assert source.fetch_batch.call_args.kwargs["before"] == oldest
