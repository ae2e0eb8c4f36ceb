"""Reply generators produce the automated answer to a user's message."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from typing import Protocol

from openai import AsyncOpenAI

from chatstore.models.schemas import Message, Sender

logger = logging.getLogger(__name__)

REPLY_CATALOG: tuple[str, ...] = (
    "That's an interesting question! Let me help you with that.",
    "I understand what you're asking. Here's my response...",
    "Based on what you've shared, I think...",
    "That's a great point! Let me elaborate on that.",
    "I can help you with that. Here's what I suggest...",
    "Excellent question! Here's what I know about that topic.",
    "Let me think about that for a moment... Here's my take:",
    "That's a fascinating topic! Allow me to share some insights.",
    "I see what you're getting at. Let me provide some clarity on that.",
    "Great observation! Here's how I would approach this:",
)

SYSTEM_PROMPT = (
    "You are a friendly, concise chat assistant. "
    "Reply to the user's latest message in plain text."
)


class ReplyGenerator(Protocol):
    async def generate(self, history: Sequence[Message]) -> str: ...


class CannedReplyGenerator:
    """Picks an arbitrary entry from a fixed catalog."""

    def __init__(
        self,
        catalog: Sequence[str] = REPLY_CATALOG,
        rng: random.Random | None = None,
    ):
        if not catalog:
            raise ValueError("Reply catalog must not be empty")
        self.catalog = tuple(catalog)
        self._rng = rng or random.Random()

    async def generate(self, history: Sequence[Message]) -> str:
        return self._rng.choice(self.catalog)


class OpenAIReplyGenerator:
    """Generates replies with the OpenAI chat completions API."""

    def __init__(self, api_key: str, model: str = "gpt-5-mini", max_turns: int = 20):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_turns = max_turns

    def _build_messages(self, history: Sequence[Message]) -> list[dict]:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        for msg in list(history)[-self.max_turns:]:
            if not msg.text:
                continue
            role = "user" if msg.sender is Sender.USER else "assistant"
            messages.append({"role": role, "content": msg.text})
        return messages

    async def generate(self, history: Sequence[Message]) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=self._build_messages(history),
        )
        text = (response.choices[0].message.content or "").strip()
        if not text:
            raise ValueError("OpenAI returned an empty reply")
        logger.info("Generated reply with %s (%d chars)", self.model, len(text))
        return text
