import pytest

from flashdeck.auth import (
    create_session, get_user_by_session, hash_token, login, logout,
    refresh_session, register_user, require_user,
)
from flashdeck.db import get_connection, init_db
from flashdeck.errors import AuthenticationError, DuplicateError, InvalidInputError

PASSWORD = "Secret123"


def test_register_user(user):
    assert user.id is not None
    assert user.email == "ada@example.com"
    assert user.name == "Ada Lovelace"
    assert user.study_goal == 20
    assert user.current_streak == 0


def test_password_is_hashed(tmp_db, user):
    conn = get_connection(tmp_db)
    row = conn.execute("SELECT password_hash FROM users WHERE id = ?", (user.id,)).fetchone()
    conn.close()
    assert row["password_hash"] != PASSWORD
    assert row["password_hash"].startswith("$argon2")


def test_register_duplicate_email_case_insensitive(tmp_db, user):
    with pytest.raises(DuplicateError):
        register_user(tmp_db, "Other Person", "ADA@example.com", PASSWORD)


def test_register_rejects_weak_password(tmp_db):
    init_db(tmp_db)
    with pytest.raises(InvalidInputError, match="password"):
        register_user(tmp_db, "Ada", "ada@example.com", "weakpass")


def test_login_returns_profile_and_token(tmp_db, user):
    profile, token = login(tmp_db, "Ada@Example.com", PASSWORD)
    assert profile.id == user.id
    assert profile.last_login is not None
    assert token
    assert get_user_by_session(tmp_db, token).id == user.id


def test_login_wrong_password(tmp_db, user):
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        login(tmp_db, "ada@example.com", "Wrong1234")


def test_login_unknown_email_same_message(tmp_db, user):
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        login(tmp_db, "nobody@example.com", PASSWORD)


def test_token_stored_hashed(tmp_db, user):
    token = create_session(tmp_db, user.id)
    conn = get_connection(tmp_db)
    hashes = [r["token_hash"] for r in conn.execute("SELECT token_hash FROM auth_sessions")]
    conn.close()
    assert hashes == [hash_token(token)]
    assert token not in hashes


def test_expired_session_is_rejected(tmp_db, user):
    token = create_session(tmp_db, user.id, ttl_hours=-1)
    assert get_user_by_session(tmp_db, token) is None
    with pytest.raises(AuthenticationError):
        require_user(tmp_db, token)


def test_unknown_or_missing_token(tmp_db, user):
    assert get_user_by_session(tmp_db, "nope") is None
    assert get_user_by_session(tmp_db, None) is None


def test_refresh_session_rotates_token(tmp_db, user):
    token = create_session(tmp_db, user.id)
    fresh = refresh_session(tmp_db, token)
    assert fresh != token
    assert get_user_by_session(tmp_db, token) is None
    assert require_user(tmp_db, fresh).id == user.id


def test_logout(tmp_db, user):
    token = create_session(tmp_db, user.id)
    assert logout(tmp_db, token) is True
    assert get_user_by_session(tmp_db, token) is None
    assert logout(tmp_db, token) is False
    assert logout(tmp_db, None) is False


def test_create_session_prunes_expired_rows(tmp_db, user):
    create_session(tmp_db, user.id, ttl_hours=-1)
    create_session(tmp_db, user.id, ttl_hours=-2)
    live = create_session(tmp_db, user.id)
    conn = get_connection(tmp_db)
    hashes = [r["token_hash"] for r in conn.execute("SELECT token_hash FROM auth_sessions")]
    conn.close()
    assert hashes == [hash_token(live)]
