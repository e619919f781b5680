"""Flashcard CRUD and review recording with spaced-repetition scheduling."""
import logging
import sqlite3
from datetime import datetime
from typing import Iterable, Optional

from flashdeck.db import from_iso, get_connection, to_iso, utcnow
from flashdeck.errors import InvalidInputError, NotFoundError
from flashdeck.models import (
    BulkCreateFailure, BulkCreateResult, CardPerformance, Flashcard, ReviewResult,
)
from flashdeck.scheduler import calculate_next_review
from flashdeck.sets import ensure_owned
from flashdeck.validation import FlashcardCreate, FlashcardUpdate, validate

logger = logging.getLogger(__name__)

CARD_NOT_FOUND = "Flashcard not found"


def row_to_flashcard(row: sqlite3.Row) -> Flashcard:
    performance = None
    if row["next_review"] is not None:
        performance = CardPerformance(
            ease_factor=row["ease_factor"],
            interval=row["interval"],
            repetitions=row["repetitions"],
            next_review=from_iso(row["next_review"]),
            last_reviewed=from_iso(row["last_reviewed"]),
        )
    return Flashcard(
        id=row["id"],
        set_id=row["set_id"],
        user_id=row["user_id"],
        front=row["front"],
        back=row["back"],
        starred=bool(row["starred"]),
        review_count=row["review_count"],
        position=row["position"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        performance=performance,
    )


def _fetch_card(conn: sqlite3.Connection, user_id: int, card_id: int, set_id: int | None = None) -> sqlite3.Row:
    row = conn.execute(
        "SELECT * FROM flashcards WHERE id = ? AND user_id = ?", (card_id, user_id)
    ).fetchone()
    if row is None or (set_id is not None and row["set_id"] != set_id):
        raise NotFoundError(CARD_NOT_FOUND)
    return row


def _insert_card(conn: sqlite3.Connection, user_id: int, set_id: int, card: FlashcardCreate) -> int:
    position = conn.execute(
        "SELECT COALESCE(MAX(position), -1) + 1 FROM flashcards WHERE set_id = ?", (set_id,)
    ).fetchone()[0]
    cur = conn.execute(
        """INSERT INTO flashcards (set_id, user_id, front, back, starred, position, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (set_id, user_id, card.front, card.back, int(card.starred), position, to_iso(utcnow())),
    )
    return cur.lastrowid


def create_flashcard(db_path: str, user_id: int, set_id: int, data: dict) -> Flashcard:
    conn = get_connection(db_path)
    try:
        ensure_owned(conn, user_id, set_id)
        result = validate(FlashcardCreate, data)
        if not result.ok:
            raise InvalidInputError(result.error)
        card_id = _insert_card(conn, user_id, set_id, result.data)
        conn.commit()
        row = _fetch_card(conn, user_id, card_id)
    finally:
        conn.close()
    logger.info("Created flashcard %s in set %s", card_id, set_id)
    return row_to_flashcard(row)


def create_flashcards_bulk(db_path: str, user_id: int, set_id: int, cards: list[dict]) -> BulkCreateResult:
    """Create many cards at once; invalid cards are reported, not fatal."""
    if not cards:
        raise InvalidInputError("At least one flashcard is required")
    result = BulkCreateResult()
    conn = get_connection(db_path)
    try:
        ensure_owned(conn, user_id, set_id)
        for index, card in enumerate(cards):
            checked = validate(FlashcardCreate, card)
            if not checked.ok:
                result.failed.append(BulkCreateFailure(index=index, card=card, error=checked.error))
                continue
            try:
                card_id = _insert_card(conn, user_id, set_id, checked.data)
            except sqlite3.DatabaseError as exc:
                result.failed.append(BulkCreateFailure(index=index, card=card, error=str(exc)))
                continue
            result.created.append(row_to_flashcard(_fetch_card(conn, user_id, card_id)))
        conn.commit()
    finally:
        conn.close()
    logger.info(
        "Bulk create in set %s: %d created, %d failed",
        set_id, result.success_count, result.failure_count,
    )
    return result


def get_flashcard(db_path: str, user_id: int, card_id: int) -> Flashcard:
    conn = get_connection(db_path)
    try:
        row = _fetch_card(conn, user_id, card_id)
    finally:
        conn.close()
    return row_to_flashcard(row)


def list_flashcards(db_path: str, user_id: int, set_id: int) -> list[Flashcard]:
    """Cards of a set in the user's chosen order."""
    conn = get_connection(db_path)
    try:
        ensure_owned(conn, user_id, set_id)
        rows = conn.execute(
            "SELECT * FROM flashcards WHERE set_id = ? ORDER BY position ASC, id ASC",
            (set_id,),
        ).fetchall()
    finally:
        conn.close()
    return [row_to_flashcard(r) for r in rows]


def list_user_flashcards(db_path: str, user_id: int) -> list[Flashcard]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM flashcards WHERE user_id = ? ORDER BY set_id, position, id", (user_id,)
    ).fetchall()
    conn.close()
    return [row_to_flashcard(r) for r in rows]


def update_flashcard(db_path: str, user_id: int, set_id: int, card_id: int, data: dict) -> Flashcard:
    result = validate(FlashcardUpdate, data)
    if not result.ok:
        raise InvalidInputError(result.error)
    fields = result.data.model_dump(exclude_none=True)
    conn = get_connection(db_path)
    try:
        _fetch_card(conn, user_id, card_id, set_id)
        if fields:
            if "starred" in fields:
                fields["starred"] = int(fields["starred"])
            fields["updated_at"] = to_iso(utcnow())
            set_clause = ", ".join(f"{k} = ?" for k in fields)
            conn.execute(
                f"UPDATE flashcards SET {set_clause} WHERE id = ?",
                (*fields.values(), card_id),
            )
            conn.commit()
        row = _fetch_card(conn, user_id, card_id)
    finally:
        conn.close()
    return row_to_flashcard(row)


def toggle_star(db_path: str, user_id: int, set_id: int, card_id: int) -> Flashcard:
    card = get_flashcard(db_path, user_id, card_id)
    return update_flashcard(db_path, user_id, set_id, card_id, {"starred": not card.starred})


def delete_flashcard(db_path: str, user_id: int, set_id: int, card_id: int) -> Flashcard:
    conn = get_connection(db_path)
    try:
        card = row_to_flashcard(_fetch_card(conn, user_id, card_id, set_id))
        conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
        conn.commit()
    finally:
        conn.close()
    logger.info("Deleted flashcard %s from set %s", card_id, set_id)
    return card


def reorder_flashcards(db_path: str, user_id: int, set_id: int, card_ids: Iterable[int]) -> list[Flashcard]:
    """Put the given cards first, in the given order; the rest keep their order after them."""
    card_ids = list(dict.fromkeys(card_ids))
    current = [c.id for c in list_flashcards(db_path, user_id, set_id)]
    unknown = set(card_ids) - set(current)
    if unknown:
        raise NotFoundError(f"{CARD_NOT_FOUND}: {sorted(unknown)}")
    ordered = card_ids + [cid for cid in current if cid not in set(card_ids)]
    conn = get_connection(db_path)
    conn.executemany(
        "UPDATE flashcards SET position = ? WHERE id = ?",
        [(position, cid) for position, cid in enumerate(ordered)],
    )
    conn.commit()
    conn.close()
    return list_flashcards(db_path, user_id, set_id)


def record_review(
    db_path: str,
    user_id: int,
    card_id: int,
    result: ReviewResult,
    now: Optional[datetime] = None,
) -> Flashcard:
    """Reschedule a card from a review outcome and bump its review count."""
    if not 1 <= result.difficulty <= 5:
        raise InvalidInputError("difficulty: must be between 1 and 5")
    now = now or utcnow()
    conn = get_connection(db_path)
    try:
        card = row_to_flashcard(_fetch_card(conn, user_id, card_id))
        perf = calculate_next_review(card.performance, result, now=now)
        conn.execute(
            """UPDATE flashcards SET ease_factor = ?, interval = ?, repetitions = ?,
                next_review = ?, last_reviewed = ?, review_count = review_count + 1
            WHERE id = ?""",
            (perf.ease_factor, perf.interval, perf.repetitions,
             to_iso(perf.next_review), to_iso(perf.last_reviewed), card_id),
        )
        conn.commit()
        row = _fetch_card(conn, user_id, card_id)
    finally:
        conn.close()
    logger.info(
        "Reviewed card %s: difficulty=%d interval=%dd reps=%d",
        card_id, result.difficulty, perf.interval, perf.repetitions,
    )
    return row_to_flashcard(row)
