"""History Pagination Loader: prepends older batches on demand."""

from __future__ import annotations

import logging

from chatstore.services.history_source import HistorySource
from chatstore.store.chat_store import ChatStore

logger = logging.getLogger(__name__)

HISTORY_BATCH_SIZE = 10


class HistoryPaginationLoader:
    """Fetches older messages from a :class:`HistorySource` and merges them.

    One load runs at a time across the whole store. A batch shorter than
    ``batch_size`` marks the session exhausted; later calls for that session
    are no-ops until :meth:`reset`.
    """

    def __init__(
        self,
        store: ChatStore,
        source: HistorySource,
        batch_size: int = HISTORY_BATCH_SIZE,
    ):
        self._store = store
        self._source = source
        self.batch_size = batch_size

    def is_exhausted(self, session_id: int) -> bool:
        return self._store.collection.is_exhausted(session_id)

    def reset(self, session_id: int) -> None:
        self._store.collection.reset_exhaustion(session_id)

    async def load_older(self, session_id: int, current_offset: int) -> int:
        """Prepend one batch; returns the number of messages added."""
        if self._store.is_loading_history:
            logger.debug("History load already in flight, ignoring request")
            return 0
        if self.is_exhausted(session_id):
            return 0
        session = self._store.get_session(session_id)
        if session is None:
            return 0
        oldest = session.messages[0].created_at if session.messages else None

        self._store.set_loading_history(True)
        try:
            batch = await self._source.fetch_batch(
                session_id, current_offset, self.batch_size, before=oldest
            )
        except Exception:
            logger.exception("Loading older messages for session %d failed", session_id)
            return 0
        finally:
            self._store.set_loading_history(False)

        if self._store.get_session(session_id) is None:
            logger.info("Session %d deleted during history load, discarding", session_id)
            return 0

        batch = sorted(batch, key=lambda m: m.created_at)
        added = self._store.prepend_messages(session_id, batch)
        if len(batch) < self.batch_size:
            self._store.collection.mark_exhausted(session_id)
            logger.info("No more history for session %d", session_id)

        logger.info(
            "Loaded %d older message(s) into session %d (offset=%d)",
            added,
            session_id,
            current_offset,
        )
        return added
