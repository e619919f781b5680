"""Flashcard set CRUD, scoped to the owning user."""
import logging
import sqlite3

from flashdeck.db import get_connection, to_iso, utcnow
from flashdeck.errors import DuplicateError, InvalidInputError, NotFoundError
from flashdeck.models import FlashcardSet
from flashdeck.validation import SetCreate, SetUpdate, validate

logger = logging.getLogger(__name__)

SET_NOT_FOUND = "Set not found"


def row_to_set(row: sqlite3.Row) -> FlashcardSet:
    keys = row.keys()
    return FlashcardSet(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        description=row["description"] or "",
        difficulty=row["difficulty"],
        starred=bool(row["starred"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        card_count=row["card_count"] if "card_count" in keys else 0,
    )


def _fetch_set(conn: sqlite3.Connection, user_id: int, set_id: int) -> sqlite3.Row:
    row = conn.execute(
        """SELECT s.*, (SELECT COUNT(*) FROM flashcards f WHERE f.set_id = s.id) AS card_count
        FROM sets s WHERE s.id = ? AND s.user_id = ?""",
        (set_id, user_id),
    ).fetchone()
    if row is None:
        raise NotFoundError(SET_NOT_FOUND)
    return row


def _name_taken(conn: sqlite3.Connection, user_id: int, name: str, exclude_id: int | None = None) -> bool:
    row = conn.execute(
        "SELECT id FROM sets WHERE user_id = ? AND lower(name) = lower(?) AND id IS NOT ?",
        (user_id, name, exclude_id),
    ).fetchone()
    return row is not None


def ensure_owned(conn: sqlite3.Connection, user_id: int, set_id: int) -> None:
    """Raise NotFoundError unless the set exists and belongs to user_id."""
    row = conn.execute(
        "SELECT id FROM sets WHERE id = ? AND user_id = ?", (set_id, user_id)
    ).fetchone()
    if row is None:
        raise NotFoundError(SET_NOT_FOUND)


def create_set(db_path: str, user_id: int, data: dict) -> FlashcardSet:
    result = validate(SetCreate, data)
    if not result.ok:
        raise InvalidInputError(result.error)
    payload = result.data
    conn = get_connection(db_path)
    if _name_taken(conn, user_id, payload.name):
        conn.close()
        logger.warning("Set name %r already used by user %s", payload.name, user_id)
        raise DuplicateError("Set already exists")
    cur = conn.execute(
        """INSERT INTO sets (user_id, name, description, difficulty, starred, created_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (user_id, payload.name, payload.description, payload.difficulty, int(payload.starred), to_iso(utcnow())),
    )
    conn.commit()
    row = _fetch_set(conn, user_id, cur.lastrowid)
    conn.close()
    logger.info("Created set %s for user %s", row["id"], user_id)
    return row_to_set(row)


def get_set(db_path: str, user_id: int, set_id: int, with_cards: bool = False) -> FlashcardSet:
    conn = get_connection(db_path)
    try:
        row = _fetch_set(conn, user_id, set_id)
    finally:
        conn.close()
    deck = row_to_set(row)
    if with_cards:
        from flashdeck.flashcards import list_flashcards

        deck.flashcards = list_flashcards(db_path, user_id, set_id)
    return deck


def list_sets(
    db_path: str, user_id: int, search: str | None = None, starred_only: bool = False
) -> list[FlashcardSet]:
    """User's sets, newest first, each with its card count."""
    query = """SELECT s.*, (SELECT COUNT(*) FROM flashcards f WHERE f.set_id = s.id) AS card_count
        FROM sets s WHERE s.user_id = ?"""
    params: list = [user_id]
    if search:
        query += " AND (s.name LIKE ? ESCAPE '\\' OR s.description LIKE ? ESCAPE '\\')"
        escaped = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        params += [pattern, pattern]
    if starred_only:
        query += " AND s.starred = 1"
    query += " ORDER BY s.created_at DESC, s.id DESC"
    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    return [row_to_set(r) for r in rows]


def update_set(db_path: str, user_id: int, set_id: int, data: dict) -> FlashcardSet:
    result = validate(SetUpdate, data)
    if not result.ok:
        raise InvalidInputError(result.error)
    fields = result.data.model_dump(exclude_none=True)
    conn = get_connection(db_path)
    try:
        ensure_owned(conn, user_id, set_id)
        if "name" in fields and _name_taken(conn, user_id, fields["name"], exclude_id=set_id):
            raise DuplicateError("Set already exists")
        if fields:
            if "starred" in fields:
                fields["starred"] = int(fields["starred"])
            fields["updated_at"] = to_iso(utcnow())
            set_clause = ", ".join(f"{k} = ?" for k in fields)
            conn.execute(
                f"UPDATE sets SET {set_clause} WHERE id = ?",
                (*fields.values(), set_id),
            )
            conn.commit()
            logger.info("Updated set %s: %s", set_id, sorted(fields))
        row = _fetch_set(conn, user_id, set_id)
    finally:
        conn.close()
    return row_to_set(row)


def toggle_star(db_path: str, user_id: int, set_id: int) -> FlashcardSet:
    deck = get_set(db_path, user_id, set_id)
    return update_set(db_path, user_id, set_id, {"starred": not deck.starred})


def delete_set(db_path: str, user_id: int, set_id: int) -> FlashcardSet:
    """Delete a set; its cards, reviews and saved progress go with it."""
    conn = get_connection(db_path)
    try:
        deck = row_to_set(_fetch_set(conn, user_id, set_id))
        conn.execute("DELETE FROM sets WHERE id = ?", (set_id,))
        conn.commit()
    finally:
        conn.close()
    logger.info("Deleted set %s (%d cards)", set_id, deck.card_count)
    return deck
