"""Message Lifecycle Controller: optimistic send and automated reply.

A submission is visible immediately as a ``pending`` user message. The rest
of the exchange runs as a background task:

1. Wait for the delivery channel.
2. Re-resolve the session; if it was deleted meanwhile, drop the result.
3. Ask the reply generator for an answer, mark the user message
   ``delivered`` and append the reply, which moves the session to the front.
4. Any exception in steps 1-3 marks the message ``failed`` instead; no
   reply is appended and the session keeps its position.

The "typing" flag is store-wide, so overlapping exchanges in different
sessions share one indicator. It stays on until the last one finishes.
"""

from __future__ import annotations

import asyncio
import logging

from chatstore.models.schemas import Message, MessageStatus, Sender, utc_now
from chatstore.services.delivery import DeliveryChannel
from chatstore.services.reply_generator import ReplyGenerator
from chatstore.store.chat_store import ChatStore
from chatstore.store.errors import InvalidSubmissionError
from chatstore.utils.text import is_image_data_url

logger = logging.getLogger(__name__)


class MessageLifecycleController:
    """Submits user messages and drives them to ``delivered`` or ``failed``.

    Usage::

        controller = MessageLifecycleController(store, channel, replies)
        pending = await controller.submit(session_id, "hello")
        # pending.status is MessageStatus.PENDING; the reply arrives later.
    """

    def __init__(
        self,
        store: ChatStore,
        channel: DeliveryChannel,
        reply_generator: ReplyGenerator,
    ) -> None:
        self._store = store
        self._channel = channel
        self._replies = reply_generator
        self._tasks: set[asyncio.Task] = set()  # type: ignore[type-arg]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def submit(
        self,
        session_id: int,
        text: str,
        image: str | None = None,
    ) -> Message:
        """Insert a pending user message and start the exchange in the background."""
        self._store.require_session(session_id)
        text = (text or "").strip()
        if not text and not image:
            raise InvalidSubmissionError("Message must have text or an image")
        if image and not is_image_data_url(image):
            raise InvalidSubmissionError("Image must be a data:image/... URL")

        message = Message(
            id=self._store.ids.next_message_id(),
            text=text,
            image=image,
            sender=Sender.USER,
            created_at=utc_now(),
            status=MessageStatus.PENDING,
        )
        if not self._store.append_message(session_id, message):
            # Duplicate dispatch: the message is already in flight.
            return message

        logger.info("Submitted message %d to session %d", message.id, session_id)
        self._store.set_exchange_in_flight(True)

        task = asyncio.create_task(self._complete_exchange(session_id, message.id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return message

    async def resend(self, session_id: int, message_id: int) -> Message:
        """Resubmit a failed message's content under a new id.

        The failed message stays in the history as it was.
        """
        session = self._store.require_session(session_id)
        original = session.find_message(message_id)
        if original is None:
            raise InvalidSubmissionError(f"Message {message_id} not found")
        if original.status is not MessageStatus.FAILED:
            raise InvalidSubmissionError(
                f"Only failed messages can be resent (status={original.status.value})"
            )
        return await self.submit(session_id, original.text, original.image)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every in-flight exchange has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _complete_exchange(self, session_id: int, message_id: int) -> None:
        try:
            await self._deliver_and_reply(session_id, message_id)
        except Exception:
            logger.exception(
                "Exchange failed for message %d in session %d", message_id, session_id
            )
            self._store.set_message_status(session_id, message_id, MessageStatus.FAILED)
        finally:
            current = asyncio.current_task()
            still_running = any(
                t is not current and not t.done() for t in self._tasks
            )
            self._store.set_exchange_in_flight(still_running)

    async def _deliver_and_reply(self, session_id: int, message_id: int) -> None:
        session = self._store.get_session(session_id)
        message = session.find_message(message_id) if session else None
        if message is None:
            logger.info("Session %d gone before delivery, dropping exchange", session_id)
            return

        await self._channel.deliver(session_id, message)

        # The session may have been deleted while we were waiting.
        session = self._store.get_session(session_id)
        if session is None:
            logger.info(
                "Session %d deleted during exchange, discarding completion", session_id
            )
            return

        reply_text = await self._replies.generate(list(session.messages))

        if self._store.get_session(session_id) is None:
            logger.info(
                "Session %d deleted during reply generation, discarding", session_id
            )
            return

        self._store.set_message_status(session_id, message_id, MessageStatus.DELIVERED)
        reply = Message(
            id=self._store.ids.next_message_id(),
            text=reply_text,
            sender=Sender.AGENT,
            created_at=utc_now(),
            status=MessageStatus.DELIVERED,
        )
        if self._store.record_reply(session_id, reply):
            logger.info("Appended reply %d to session %d", reply.id, session_id)
