from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Sender(str, Enum):
    """Who authored a message."""

    USER = "user"
    AGENT = "agent"


class MessageStatus(str, Enum):
    """Delivery state of a message.

    ``PENDING`` is the only non-terminal state; it moves to exactly one of
    ``DELIVERED`` or ``FAILED`` and never changes again.
    """

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not MessageStatus.PENDING


class Message(BaseModel):
    id: int
    text: str = ""
    image: str | None = None  # data URL
    sender: Sender
    created_at: datetime = Field(default_factory=utc_now)
    status: MessageStatus = MessageStatus.PENDING


class Session(BaseModel):
    """A named conversation ("chatroom") with its ordered history."""

    id: int
    title: str
    last_message_text: str = ""
    last_activity_at: datetime = Field(default_factory=utc_now)
    messages: list[Message] = []  # oldest first

    def find_message(self, message_id: int) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def has_message(self, message_id: int) -> bool:
        return self.find_message(message_id) is not None


# ----------------------------------------------------------------------
# API payloads
# ----------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    title: str


class SubmitMessageRequest(BaseModel):
    text: str = ""
    image: str | None = None


class SearchRequest(BaseModel):
    query: str = ""


class LoadHistoryRequest(BaseModel):
    offset: int = Field(default=0, ge=0)


class LoadHistoryResponse(BaseModel):
    loaded: int
    exhausted: bool


class SessionSummary(BaseModel):
    id: int
    title: str
    last_message_preview: str
    last_activity_at: datetime
    message_count: int


class StoreState(BaseModel):
    is_typing: bool
    is_loading: bool
    active_session_id: int | None
