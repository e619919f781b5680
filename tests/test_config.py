import logging
from pathlib import Path

from flashdeck.config import Settings
from flashdeck.log import setup_logging


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("FLASHDECK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("FLASHDECK_SESSION_TTL_HOURS", "2")
    config = Settings()
    assert config.data_dir == tmp_path
    assert config.session_ttl_hours == 2
    assert config.db_path == tmp_path / "flashdeck.db"
    assert config.log_path == tmp_path / "flashdeck.log"


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("FLASHDECK_DATA_DIR", raising=False)
    config = Settings()
    assert config.data_dir == Path.home() / ".flashdeck"
    assert config.default_study_goal == 20


def test_setup_logging_is_idempotent(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    log_path = tmp_path / "logs" / "test.log"
    try:
        setup_logging("DEBUG", log_path)
        setup_logging("DEBUG", log_path)
        ours = [h for h in root.handlers if getattr(h, "_flashdeck", False)]
        assert len(ours) == 2
        logging.getLogger("flashdeck.test").info("hello")
        for handler in ours:
            handler.flush()
        assert "hello" in log_path.read_text(encoding="utf-8")
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(logging.WARNING)
