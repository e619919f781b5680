"""User profile preferences and study statistics."""
import logging
import sqlite3
from datetime import date, timedelta

from flashdeck.db import get_connection
from flashdeck.errors import InvalidInputError, NotFoundError
from flashdeck.models import Profile
from flashdeck.validation import ProfileUpdate, validate

logger = logging.getLogger(__name__)


def row_to_profile(row: sqlite3.Row) -> Profile:
    return Profile(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        created_at=row["created_at"],
        last_login=row["last_login"],
        study_goal=row["study_goal"],
        theme=row["theme"],
        notifications=bool(row["notifications"]),
        total_study_sessions=row["total_study_sessions"],
        current_streak=row["current_streak"],
        longest_streak=row["longest_streak"],
        total_cards_studied=row["total_cards_studied"],
        last_study_date=row["last_study_date"],
    )


def get_profile(db_path: str, user_id: int) -> Profile:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    if row is None:
        raise NotFoundError("Profile not found")
    return row_to_profile(row)


def update_profile(db_path: str, user_id: int, changes: dict) -> Profile:
    """Update name and preferences. Unknown or invalid fields are rejected."""
    result = validate(ProfileUpdate, changes)
    if not result.ok:
        raise InvalidInputError(result.error)
    fields = result.data.model_dump(exclude_none=True)
    if "notifications" in fields:
        fields["notifications"] = int(fields["notifications"])
    if fields:
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        conn = get_connection(db_path)
        conn.execute(
            f"UPDATE users SET {set_clause} WHERE id = ?",
            (*fields.values(), user_id),
        )
        conn.commit()
        conn.close()
        logger.info("Updated profile %s: %s", user_id, sorted(fields))
    return get_profile(db_path, user_id)


def next_streak(current: int, last_study_date: str | None, today: date) -> int:
    """Streak after studying on `today`, given the previous study day."""
    if last_study_date is None:
        return 1
    last = date.fromisoformat(last_study_date)
    if last == today:
        return max(current, 1)
    if last == today - timedelta(days=1):
        return current + 1
    return 1


def record_study_activity(
    conn: sqlite3.Connection, user_id: int, cards_studied: int, today: date
) -> None:
    """Bump session and card totals and roll the daily streak. Caller commits."""
    row = conn.execute(
        "SELECT current_streak, longest_streak, last_study_date FROM users WHERE id = ?",
        (user_id,),
    ).fetchone()
    streak = next_streak(row["current_streak"], row["last_study_date"], today)
    conn.execute(
        """UPDATE users SET
            total_study_sessions = total_study_sessions + 1,
            total_cards_studied = total_cards_studied + ?,
            current_streak = ?,
            longest_streak = ?,
            last_study_date = ?
        WHERE id = ?""",
        (cards_studied, streak, max(streak, row["longest_streak"]), today.isoformat(), user_id),
    )
