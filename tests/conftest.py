import pytest

from flashdeck.auth import register_user
from flashdeck.db import init_db
from flashdeck.sets import create_set

PASSWORD = "Secret123"


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_flashdeck.db")
    return db_path


@pytest.fixture
def user(tmp_db):
    """An initialized database with one registered user."""
    init_db(tmp_db)
    return register_user(tmp_db, "Ada Lovelace", "ada@example.com", PASSWORD)


@pytest.fixture
def deck(tmp_db, user):
    return create_set(tmp_db, user.id, {"name": "Spanish", "description": "Verbs"})


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point settings.data_dir at a temp dir (token file, logs)."""
    from flashdeck.config import settings

    path = tmp_path / "data"
    monkeypatch.setattr(settings, "data_dir", path)
    return path
