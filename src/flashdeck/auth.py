"""Authentication: register, login, session tokens."""
import hashlib
import logging
import secrets
from datetime import timedelta

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from flashdeck.config import settings
from flashdeck.db import get_connection, to_iso, utcnow
from flashdeck.errors import AuthenticationError, DuplicateError, InvalidInputError
from flashdeck.models import Profile
from flashdeck.profiles import row_to_profile
from flashdeck.validation import LoginInput, RegisterInput, validate

logger = logging.getLogger(__name__)
ph = PasswordHasher()

INVALID_CREDENTIALS = "Invalid email or password"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def register_user(db_path: str, name: str, email: str, password: str) -> Profile:
    """Create a new user. Raises DuplicateError if the email is taken."""
    result = validate(RegisterInput, {"name": name, "email": email, "password": password})
    if not result.ok:
        raise InvalidInputError(result.error)
    data = result.data
    conn = get_connection(db_path)
    existing = conn.execute("SELECT id FROM users WHERE email = ?", (data.email,)).fetchone()
    if existing:
        conn.close()
        logger.warning("Registration rejected: email already registered")
        raise DuplicateError("Email already registered")
    cur = conn.execute(
        """INSERT INTO users (email, name, password_hash, created_at, study_goal)
        VALUES (?, ?, ?, ?, ?)""",
        (data.email, data.name, ph.hash(data.password), to_iso(utcnow()), settings.default_study_goal),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    logger.info("Registered user %s", row["id"])
    return row_to_profile(row)


def create_session(db_path: str, user_id: int, ttl_hours: int | None = None) -> str:
    """Create a session and return the raw token. Only its hash is stored."""
    ttl_hours = settings.session_ttl_hours if ttl_hours is None else ttl_hours
    token = secrets.token_urlsafe(32)
    now = utcnow()
    conn = get_connection(db_path)
    conn.execute(
        "DELETE FROM auth_sessions WHERE user_id = ? AND expires_at <= ?", (user_id, to_iso(now))
    )
    conn.execute(
        "INSERT INTO auth_sessions (user_id, token_hash, created_at, expires_at) VALUES (?, ?, ?, ?)",
        (user_id, hash_token(token), to_iso(now), to_iso(now + timedelta(hours=ttl_hours))),
    )
    conn.commit()
    conn.close()
    return token


def login(db_path: str, email: str, password: str) -> tuple[Profile, str]:
    """Check credentials and open a session. Returns (profile, token)."""
    result = validate(LoginInput, {"email": email, "password": password})
    if not result.ok:
        raise AuthenticationError(INVALID_CREDENTIALS)
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM users WHERE email = ?", (result.data.email,)).fetchone()
    if row is None or not verify_password(result.data.password, row["password_hash"]):
        conn.close()
        logger.warning("Failed login attempt")
        raise AuthenticationError(INVALID_CREDENTIALS)
    conn.execute("UPDATE users SET last_login = ? WHERE id = ?", (to_iso(utcnow()), row["id"]))
    conn.commit()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (row["id"],)).fetchone()
    conn.close()
    token = create_session(db_path, row["id"])
    logger.info("User %s logged in", row["id"])
    return row_to_profile(row), token


def get_user_by_session(db_path: str, token: str | None) -> Profile | None:
    """Return the user for a live session token, else None."""
    if not token:
        return None
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT u.* FROM auth_sessions s JOIN users u ON u.id = s.user_id
        WHERE s.token_hash = ? AND s.expires_at > ?""",
        (hash_token(token), to_iso(utcnow())),
    ).fetchone()
    conn.close()
    return row_to_profile(row) if row else None


def require_user(db_path: str, token: str | None) -> Profile:
    user = get_user_by_session(db_path, token)
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user


def refresh_session(db_path: str, token: str) -> str:
    """Swap a live token for a fresh one with a new expiry."""
    user = require_user(db_path, token)
    logout(db_path, token)
    return create_session(db_path, user.id)


def logout(db_path: str, token: str | None) -> bool:
    """Delete the session. Returns True if it existed."""
    if not token:
        return False
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM auth_sessions WHERE token_hash = ?", (hash_token(token),))
    conn.commit()
    conn.close()
    return cur.rowcount > 0
