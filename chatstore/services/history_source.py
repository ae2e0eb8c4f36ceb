"""Sources of older message history for pagination."""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timedelta
from typing import Protocol

from chatstore.models.schemas import Message, MessageStatus, Sender, utc_now
from chatstore.store.ids import IdAllocator

logger = logging.getLogger(__name__)


class HistorySource(Protocol):
    async def fetch_batch(
        self,
        session_id: int,
        before_offset: int,
        size: int,
        before: datetime | None = None,
    ) -> list[Message]:
        """Return up to ``size`` messages older than ``before``, oldest first.

        ``before`` is the timestamp of the session's current oldest message;
        ``None`` means the session is empty.
        """
        ...


class SyntheticHistorySource:
    """Fabricates older messages, one hour apart, going back from an anchor.

    The anchor is ``before`` when given, otherwise now. Message ``i`` of a
    batch is stamped ``i + 1`` hours before the anchor, so every batch is
    strictly older than what the session already holds. ``max_messages``
    caps the total history per session; ``None`` never runs out.
    """

    def __init__(
        self,
        allocator: IdAllocator,
        delay: float = 1.0,
        max_messages: int | None = None,
        rng: random.Random | None = None,
    ):
        self.allocator = allocator
        self.delay = delay
        self.max_messages = max_messages
        self._rng = rng or random.Random()

    async def fetch_batch(
        self,
        session_id: int,
        before_offset: int,
        size: int,
        before: datetime | None = None,
    ) -> list[Message]:
        await asyncio.sleep(self.delay)

        count = size
        if self.max_messages is not None:
            count = max(0, min(size, self.max_messages - before_offset))

        anchor = before or utc_now()
        newest_first = [
            Message(
                id=self.allocator.next_message_id(),
                text=f"Older message {before_offset + i + 1}",
                sender=Sender.USER if self._rng.random() > 0.5 else Sender.AGENT,
                created_at=anchor - timedelta(hours=i + 1),
                status=MessageStatus.DELIVERED,
            )
            for i in range(count)
        ]
        logger.debug(
            "Synthesized %d older message(s) for session %s (offset=%d)",
            count,
            session_id,
            before_offset,
        )
        newest_first.reverse()
        return newest_first
