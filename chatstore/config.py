"""Application settings loaded from environment variables.

Storage location, simulated latencies and the reply backend live here.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Persistence
    STORE_BACKEND: str = "json"  # "json" or "memory"
    STORE_DATA_DIR: str = "data"

    # Simulated exchange (seconds)
    REPLY_DELAY_MIN_SECONDS: float = 1.0
    REPLY_DELAY_MAX_SECONDS: float = 3.0

    # History pagination
    HISTORY_DELAY_SECONDS: float = 1.0
    HISTORY_BATCH_SIZE: int = 10
    HISTORY_MAX_MESSAGES: int | None = None  # None = unbounded synthetic history

    # Reply generation
    REPLY_BACKEND: str = "canned"  # "canned" or "openai"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-5-mini"

    # Application
    DEFAULT_SESSION_TITLE: str = "General Chat"
    FRONTEND_ORIGINS: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
