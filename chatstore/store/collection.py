"""In-memory session collection.

Holds every session, the active selection and the store-wide flags. Nothing
here touches storage; :class:`chatstore.store.chat_store.ChatStore` persists
a snapshot after each successful mutation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from chatstore.models.schemas import Message, MessageStatus, Session, utc_now
from chatstore.store.errors import InvalidSubmissionError

logger = logging.getLogger(__name__)


class SessionCollection:
    """Sessions ordered by recency of last completed exchange, newest first."""

    def __init__(self, sessions: Iterable[Session] = ()):
        self._sessions: list[Session] = list(sessions)
        self.active_session_id: int | None = None
        self.search_query: str = ""
        self.is_exchange_in_flight = False
        self.is_loading_history = False
        self._exhausted: set[int] = set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    def get(self, session_id: int) -> Session | None:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def __contains__(self, session_id: object) -> bool:
        return any(s.id == session_id for s in self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def active_session(self) -> Session | None:
        if self.active_session_id is None:
            return None
        return self.get(self.active_session_id)

    def filter_by_title(self, query: str) -> list[Session]:
        """Case-insensitive substring match on title, in stored order."""
        needle = query.strip().lower()
        if not needle:
            return list(self._sessions)
        return [s for s in self._sessions if needle in s.title.lower()]

    def visible_sessions(self) -> list[Session]:
        return self.filter_by_title(self.search_query)

    def snapshot(self) -> list[Session]:
        return [s.model_copy(deep=True) for s in self._sessions]

    # ------------------------------------------------------------------
    # Session mutations
    # ------------------------------------------------------------------

    def create_session(
        self, title: str, session_id: int, now: datetime | None = None
    ) -> Session:
        title = title.strip()
        if not title:
            raise InvalidSubmissionError("Session title must not be empty")
        if session_id in self:
            raise InvalidSubmissionError(f"Session id {session_id} already in use")

        session = Session(
            id=session_id,
            title=title,
            last_message_text="",
            last_activity_at=now or utc_now(),
            messages=[],
        )
        self._sessions.insert(0, session)
        return session

    def delete_session(self, session_id: int) -> bool:
        before = len(self._sessions)
        self._sessions = [s for s in self._sessions if s.id != session_id]
        if len(self._sessions) == before:
            return False

        self._exhausted.discard(session_id)
        if self.active_session_id == session_id:
            self.active_session_id = None
        return True

    def select_session(self, session_id: int | None) -> Session | None:
        session = self.get(session_id) if session_id is not None else None
        self.active_session_id = session.id if session else None
        return session

    # ------------------------------------------------------------------
    # Message mutations
    # ------------------------------------------------------------------

    def append_message(self, session_id: int, message: Message) -> bool:
        """Append to the end of the session; duplicate ids are skipped."""
        session = self.get(session_id)
        if session is None:
            logger.warning(
                "Session %s not found, dropping message %s", session_id, message.id
            )
            return False
        if session.has_message(message.id):
            logger.warning("Message %s already exists, skipping", message.id)
            return False

        session.messages.append(message)
        return True

    def set_message_status(
        self, session_id: int, message_id: int, status: MessageStatus
    ) -> bool:
        session = self.get(session_id)
        if session is None:
            logger.warning("Session %s not found for status update", session_id)
            return False
        message = session.find_message(message_id)
        if message is None:
            logger.warning("Message %s not found in session %s", message_id, session_id)
            return False
        if message.status.is_terminal or status is MessageStatus.PENDING:
            logger.warning(
                "Rejected status transition %s -> %s for message %s",
                message.status.value,
                status.value,
                message_id,
            )
            return False

        message.status = status
        return True

    def record_reply(self, session_id: int, reply: Message) -> bool:
        """Append a completed reply and move the session to the front."""
        if not self.append_message(session_id, reply):
            return False

        session = self.get(session_id)
        session.last_message_text = reply.text
        session.last_activity_at = reply.created_at
        self._sessions = [session] + [s for s in self._sessions if s.id != session_id]
        return True

    def prepend_messages(self, session_id: int, messages: Iterable[Message]) -> int:
        """Prepend an older batch (given oldest first) ahead of existing history.

        Entries that are not strictly older than the current first message, or
        whose id is already present, are skipped.
        """
        session = self.get(session_id)
        if session is None:
            return 0

        head = session.messages[0].created_at if session.messages else None
        seen = {m.id for m in session.messages}
        batch: list[Message] = []
        for message in messages:
            if head is not None and message.created_at >= head:
                logger.warning(
                    "Message %s is not older than session %s history, skipping",
                    message.id,
                    session_id,
                )
                continue
            if message.id in seen:
                logger.warning("Message %s already exists, skipping", message.id)
                continue
            seen.add(message.id)
            batch.append(message)

        session.messages[:0] = batch
        return len(batch)

    # ------------------------------------------------------------------
    # Pagination exhaustion
    # ------------------------------------------------------------------

    def is_exhausted(self, session_id: int) -> bool:
        return session_id in self._exhausted

    def mark_exhausted(self, session_id: int) -> None:
        self._exhausted.add(session_id)

    def reset_exhaustion(self, session_id: int) -> None:
        self._exhausted.discard(session_id)
