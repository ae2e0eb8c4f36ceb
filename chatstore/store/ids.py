"""Identifier allocation for sessions and messages."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from chatstore.models.schemas import Session

logger = logging.getLogger(__name__)

MESSAGE_ID_BASELINE = 1000
SESSION_ID_BASELINE = 100


class IdAllocator:
    """Issues strictly increasing ids for messages and sessions.

    Message ids are unique across the whole store, not per session. Build
    the allocator with :meth:`from_sessions` at startup so counters resume
    past everything already persisted.
    """

    def __init__(
        self,
        next_message_id: int = MESSAGE_ID_BASELINE + 1,
        next_session_id: int = SESSION_ID_BASELINE + 1,
    ) -> None:
        self._next_message_id = next_message_id
        self._next_session_id = next_session_id

    @classmethod
    def from_sessions(cls, sessions: Iterable[Session]) -> IdAllocator:
        """Seed counters to one past the highest id seen in persisted data."""
        max_message_id = MESSAGE_ID_BASELINE
        max_session_id = SESSION_ID_BASELINE

        for session in sessions:
            max_session_id = max(max_session_id, session.id)
            for message in session.messages:
                max_message_id = max(max_message_id, message.id)

        allocator = cls(
            next_message_id=max_message_id + 1,
            next_session_id=max_session_id + 1,
        )
        logger.info(
            "Initialized id counters (message=%d, session=%d)",
            allocator.peek_message_id(),
            allocator.peek_session_id(),
        )
        return allocator

    def next_message_id(self) -> int:
        value = self._next_message_id
        self._next_message_id += 1
        return value

    def next_session_id(self) -> int:
        value = self._next_session_id
        self._next_session_id += 1
        return value

    def peek_message_id(self) -> int:
        return self._next_message_id

    def peek_session_id(self) -> int:
        return self._next_session_id
