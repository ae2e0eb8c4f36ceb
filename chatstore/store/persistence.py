"""Durable key/value boundary for the store.

The store only ever calls ``load`` once per key at startup and ``save``
after each committed mutation. Implementations hold serialized strings and
know nothing about sessions or messages.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

CHATROOMS_KEY = "chatrooms"
# Reserved for the UI layer; the store never reads or writes these.
DARK_MODE_KEY = "darkMode"
USER_KEY = "user"
TOKEN_KEY = "token"


class PersistenceGateway(Protocol):
    def load(self, key: str) -> str | None: ...

    def save(self, key: str, value: str) -> bool: ...


class InMemoryPersistence:
    """Dict-backed gateway for tests and ephemeral runs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.records: dict[str, str] = dict(initial or {})
        self.save_count = 0

    def load(self, key: str) -> str | None:
        return self.records.get(key)

    def save(self, key: str, value: str) -> bool:
        self.records[key] = value
        self.save_count += 1
        return True


class JsonFilePersistence:
    """Stores each key as ``<data_dir>/<key>.json``."""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir)

    def _path_for(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def load(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError:
            logger.exception("Failed to read %s", path)
            return None

    def save(self, key: str, value: str) -> bool:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError:
            logger.exception("Failed to write %s", path)
            return False

        logger.debug("Saved %d bytes to %s", len(value), path)
        return True
