from chatstore.config import Settings
from chatstore.main import build_gateway, build_reply_generator
from chatstore.services.reply_generator import CannedReplyGenerator, OpenAIReplyGenerator
from chatstore.store.persistence import InMemoryPersistence, JsonFilePersistence
from chatstore.utils.text import is_image_data_url, truncate_text


def test_defaults_match_simulated_latencies(monkeypatch):
    for name in ("REPLY_DELAY_MIN_SECONDS", "REPLY_DELAY_MAX_SECONDS", "HISTORY_BATCH_SIZE"):
        monkeypatch.delenv(name, raising=False)
    cfg = Settings(_env_file=None)
    assert cfg.REPLY_DELAY_MIN_SECONDS == 1.0
    assert cfg.REPLY_DELAY_MAX_SECONDS == 3.0
    assert cfg.HISTORY_BATCH_SIZE == 10


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("HISTORY_MAX_MESSAGES", "30")
    cfg = Settings(_env_file=None)
    assert cfg.HISTORY_MAX_MESSAGES == 30
    assert isinstance(build_gateway(cfg), InMemoryPersistence)


def test_json_backend_uses_data_dir(tmp_path):
    cfg = Settings(_env_file=None, STORE_BACKEND="json", STORE_DATA_DIR=str(tmp_path))
    gateway = build_gateway(cfg)
    assert isinstance(gateway, JsonFilePersistence)
    assert gateway.data_dir == tmp_path


def test_openai_backend_requires_key():
    cfg = Settings(_env_file=None, REPLY_BACKEND="openai", OPENAI_API_KEY="")
    assert isinstance(build_reply_generator(cfg), CannedReplyGenerator)

    cfg = Settings(_env_file=None, REPLY_BACKEND="openai", OPENAI_API_KEY="sk-test")
    assert isinstance(build_reply_generator(cfg), OpenAIReplyGenerator)


def test_truncate_text():
    assert truncate_text("short") == "short"
    assert truncate_text("x" * 60) == "x" * 50 + "..."


def test_image_data_url_detection():
    assert is_image_data_url("data:image/jpeg;base64,/9j/4AAQ")
    assert not is_image_data_url("https://example.com/cat.png")
    assert not is_image_data_url("")
