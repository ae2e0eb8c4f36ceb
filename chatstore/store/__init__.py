"""Session collection, id allocation and persistence."""

from chatstore.store.chat_store import ChatStore, StoreEvent
from chatstore.store.collection import SessionCollection
from chatstore.store.errors import (
    ChatStoreError,
    InvalidSubmissionError,
    SessionNotFoundError,
)
from chatstore.store.ids import IdAllocator
from chatstore.store.persistence import (
    InMemoryPersistence,
    JsonFilePersistence,
    PersistenceGateway,
)

__all__ = [
    "ChatStore",
    "ChatStoreError",
    "IdAllocator",
    "InMemoryPersistence",
    "InvalidSubmissionError",
    "JsonFilePersistence",
    "PersistenceGateway",
    "SessionCollection",
    "SessionNotFoundError",
    "StoreEvent",
]
