"""Store orchestration: the collection plus its allocator and storage.

Every mutating call follows the same pattern: apply the transition to the
in-memory :class:`SessionCollection`, write the full collection to the
persistence gateway, then notify subscribers. Persistence is best-effort;
a failed write is logged and never rolls back the in-memory state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter, ValidationError

from chatstore.models.schemas import Message, MessageStatus, Sender, Session, utc_now
from chatstore.store.collection import SessionCollection
from chatstore.store.errors import SessionNotFoundError
from chatstore.store.ids import IdAllocator
from chatstore.store.persistence import CHATROOMS_KEY, PersistenceGateway

logger = logging.getLogger(__name__)

_SESSION_LIST = TypeAdapter(list[Session])

DEFAULT_GREETING = "Hello! How can I help you today?"


@dataclass
class StoreEvent:
    """Post-commit notification pushed to subscribers."""

    type: str  # "session_created", "message_added", "message_status", "typing", ...
    session_id: int | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "session_id": self.session_id, **self.data}


def default_sessions(title: str = "General Chat") -> list[Session]:
    now = utc_now()
    greeting = Message(
        id=1,
        text=DEFAULT_GREETING,
        sender=Sender.AGENT,
        created_at=now,
        status=MessageStatus.DELIVERED,
    )
    return [
        Session(
            id=1,
            title=title,
            last_message_text=greeting.text,
            last_activity_at=now,
            messages=[greeting],
        )
    ]


class ChatStore:
    """Owns the session collection, id allocator and persistence gateway."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        collection: SessionCollection,
        allocator: IdAllocator,
    ):
        self.gateway = gateway
        self.collection = collection
        self.ids = allocator
        self._subscribers: list[asyncio.Queue] = []

    @classmethod
    def open(
        cls,
        gateway: PersistenceGateway,
        default_title: str = "General Chat",
    ) -> ChatStore:
        """Load persisted sessions (or seed a default one) and build the store."""
        sessions = _load_sessions(gateway)
        seeded = sessions is None
        if seeded:
            sessions = default_sessions(default_title)
            logger.info("No persisted sessions, seeded '%s'", default_title)
        else:
            logger.info("Loaded %d session(s) from storage", len(sessions))

        store = cls(
            gateway=gateway,
            collection=SessionCollection(sessions),
            allocator=IdAllocator.from_sessions(sessions),
        )
        if seeded:
            store.save()
        return store

    # ------------------------------------------------------------------
    # Persistence and notification
    # ------------------------------------------------------------------

    def save(self) -> bool:
        """Write the whole collection. Failures are logged, never raised."""
        try:
            payload = _SESSION_LIST.dump_json(self.collection.snapshot()).decode()
            ok = self.gateway.save(CHATROOMS_KEY, payload)
        except Exception:
            logger.exception("Persisting sessions failed")
            return False
        if not ok:
            logger.warning("Persistence gateway rejected save of '%s'", CHATROOMS_KEY)
        return ok

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def _emit(self, event: StoreEvent) -> None:
        for queue in self._subscribers:
            queue.put_nowait(event)

    def _commit(self, event: StoreEvent) -> None:
        self.save()
        self._emit(event)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_session(self, session_id: int) -> Session | None:
        return self.collection.get(session_id)

    def require_session(self, session_id: int) -> Session:
        session = self.collection.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @property
    def sessions(self) -> list[Session]:
        return self.collection.sessions

    @property
    def active_session(self) -> Session | None:
        return self.collection.active_session

    def filter_by_title(self, query: str) -> list[Session]:
        return self.collection.filter_by_title(query)

    @property
    def is_exchange_in_flight(self) -> bool:
        return self.collection.is_exchange_in_flight

    @property
    def is_loading_history(self) -> bool:
        return self.collection.is_loading_history

    # ------------------------------------------------------------------
    # Session operations
    # ------------------------------------------------------------------

    def create_session(self, title: str) -> Session:
        session = self.collection.create_session(title, self.ids.next_session_id())
        logger.info("Created session %d (%s)", session.id, session.title)
        self._commit(
            StoreEvent("session_created", session.id, {"title": session.title})
        )
        return session

    def delete_session(self, session_id: int) -> bool:
        if not self.collection.delete_session(session_id):
            return False
        logger.info("Deleted session %d", session_id)
        self._commit(StoreEvent("session_deleted", session_id))
        return True

    def select_session(self, session_id: int | None) -> Session | None:
        return self.collection.select_session(session_id)

    def set_search_query(self, query: str) -> list[Session]:
        self.collection.search_query = query
        return self.collection.visible_sessions()

    # ------------------------------------------------------------------
    # Message operations
    # ------------------------------------------------------------------

    def append_message(self, session_id: int, message: Message) -> bool:
        if not self.collection.append_message(session_id, message):
            return False
        self._commit(
            StoreEvent(
                "message_added", session_id, {"message": message.model_dump(mode="json")}
            )
        )
        return True

    def set_message_status(
        self, session_id: int, message_id: int, status: MessageStatus
    ) -> bool:
        if not self.collection.set_message_status(session_id, message_id, status):
            return False
        logger.info("Message %d -> %s", message_id, status.value)
        self._commit(
            StoreEvent(
                "message_status",
                session_id,
                {"message_id": message_id, "status": status.value},
            )
        )
        return True

    def record_reply(self, session_id: int, reply: Message) -> bool:
        if not self.collection.record_reply(session_id, reply):
            return False
        self._commit(
            StoreEvent(
                "message_added", session_id, {"message": reply.model_dump(mode="json")}
            )
        )
        return True

    def prepend_messages(self, session_id: int, messages: list[Message]) -> int:
        count = self.collection.prepend_messages(session_id, messages)
        if count:
            self._commit(StoreEvent("history_loaded", session_id, {"count": count}))
        return count

    # ------------------------------------------------------------------
    # Store-wide flags (not persisted)
    # ------------------------------------------------------------------

    def set_exchange_in_flight(self, value: bool) -> None:
        self.collection.is_exchange_in_flight = value
        self._emit(StoreEvent("typing", data={"is_typing": value}))

    def set_loading_history(self, value: bool) -> None:
        self.collection.is_loading_history = value
        self._emit(StoreEvent("loading", data={"is_loading": value}))


def _load_sessions(gateway: PersistenceGateway) -> list[Session] | None:
    """Return persisted sessions, or None when no usable record exists."""
    try:
        raw = gateway.load(CHATROOMS_KEY)
    except Exception:
        logger.exception("Loading '%s' failed", CHATROOMS_KEY)
        return None
    if not raw:
        return None
    try:
        return _SESSION_LIST.validate_json(raw)
    except ValidationError:
        logger.exception("Discarding malformed '%s' record", CHATROOMS_KEY)
        return None
