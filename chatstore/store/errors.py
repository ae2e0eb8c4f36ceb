"""Errors raised synchronously by the store. None of them leave partial state behind."""


class ChatStoreError(Exception):
    """Base class for store errors."""


class SessionNotFoundError(ChatStoreError, LookupError):
    def __init__(self, session_id: int):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class InvalidSubmissionError(ChatStoreError, ValueError):
    """Empty title, empty message, or a malformed image payload."""
