"""Tests for id allocation and its recovery from persisted sessions."""

from __future__ import annotations

from chatstore.models.schemas import Message, Sender, Session
from chatstore.store.ids import MESSAGE_ID_BASELINE, SESSION_ID_BASELINE, IdAllocator


def _session(session_id: int, message_ids: list[int]) -> Session:
    return Session(
        id=session_id,
        title=f"Session {session_id}",
        messages=[Message(id=mid, text="x", sender=Sender.USER) for mid in message_ids],
    )


def test_empty_store_seeds_from_baselines():
    ids = IdAllocator.from_sessions([])
    assert ids.next_message_id() == MESSAGE_ID_BASELINE + 1
    assert ids.next_session_id() == SESSION_ID_BASELINE + 1


def test_resumes_past_highest_persisted_ids():
    sessions = [_session(140, [1500, 1502]), _session(205, [1499, 2001])]
    ids = IdAllocator.from_sessions(sessions)

    assert ids.next_message_id() > 2001
    assert ids.next_session_id() > 205


def test_low_persisted_ids_still_respect_baseline():
    ids = IdAllocator.from_sessions([_session(1, [1])])
    assert ids.next_message_id() == MESSAGE_ID_BASELINE + 1
    assert ids.next_session_id() == SESSION_ID_BASELINE + 1


def test_ids_strictly_increase_and_never_repeat():
    ids = IdAllocator()
    issued = [ids.next_message_id() for _ in range(50)]
    assert issued == sorted(set(issued))

    sessions = [ids.next_session_id() for _ in range(5)]
    assert sessions == sorted(set(sessions))
