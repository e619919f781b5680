"""Study session management and progress tracking."""
import logging
import random
from datetime import datetime
from typing import Optional

from flashdeck.db import from_iso, get_connection, to_iso, utcnow
from flashdeck.errors import InvalidInputError
from flashdeck.flashcards import list_flashcards, record_review
from flashdeck.models import CardReview, Flashcard, ReviewResult, StudySession
from flashdeck.profiles import record_study_activity
from flashdeck.scheduler import get_due_cards, performance_of, sort_cards_by_priority
from flashdeck.sets import get_set

logger = logging.getLogger(__name__)

SESSION_TYPES = ("review", "new", "mixed", "all")


def build_study_queue(
    db_path: str,
    user_id: int,
    set_id: int,
    mode: str = "mixed",
    now: Optional[datetime] = None,
    starred_only: bool = False,
    shuffle: bool = False,
) -> list[Flashcard]:
    """Cards to study for the given mode.

    "all" walks the whole set in its saved order, or in random order with
    shuffle; the other modes take due cards only and sort them by priority.
    starred_only narrows any mode to starred cards.
    """
    if mode not in SESSION_TYPES:
        raise InvalidInputError(f"mode: must be one of {', '.join(SESSION_TYPES)}")
    if shuffle and mode != "all":
        raise InvalidInputError("shuffle: only available in 'all' mode")
    cards = list_flashcards(db_path, user_id, set_id)
    if starred_only:
        cards = [c for c in cards if c.starred]
    if mode == "all":
        if shuffle:
            random.shuffle(cards)
        return cards
    now = now or utcnow()
    due = get_due_cards(cards, now=now)
    if mode == "new":
        due = [c for c in due if performance_of(c) is None]
    elif mode == "review":
        due = [c for c in due if performance_of(c) is not None]
    return sort_cards_by_priority(due, now=now)


def start_session(
    db_path: str,
    user_id: int,
    set_id: int,
    total_cards: int,
    session_type: str = "mixed",
    now: Optional[datetime] = None,
) -> StudySession:
    if session_type not in SESSION_TYPES:
        raise InvalidInputError(f"session_type: must be one of {', '.join(SESSION_TYPES)}")
    deck = get_set(db_path, user_id, set_id)
    now = now or utcnow()
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO study_sessions (user_id, set_id, session_type, total_cards, started_at)
        VALUES (?, ?, ?, ?, ?)""",
        (user_id, set_id, session_type, total_cards, to_iso(now)),
    )
    conn.commit()
    conn.close()
    logger.info("Started %s session %s on set %s", session_type, cur.lastrowid, set_id)
    return StudySession(
        id=cur.lastrowid,
        user_id=user_id,
        set_id=set_id,
        set_name=deck.name,
        total_cards=total_cards,
        session_type=session_type,
        start_time=now,
    )


def record_card_review(
    db_path: str,
    session: StudySession,
    card_id: int,
    result: ReviewResult,
    now: Optional[datetime] = None,
) -> Optional[Flashcard]:
    """Reschedule a card and log the review against the session.

    Returns the updated card, or None if the session is no longer active.
    """
    if not session.is_active:
        return None
    now = now or utcnow()
    card = record_review(db_path, session.user_id, card_id, result, now=now)
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO card_reviews
        (session_id, flashcard_id, correct, difficulty, response_time, reviewed_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (session.id, card_id, int(result.correct), result.difficulty, result.response_time, to_iso(now)),
    )
    conn.commit()
    conn.close()
    session.cards_reviewed.append(CardReview(
        card_id=card_id,
        correct=result.correct,
        difficulty=result.difficulty,
        response_time=result.response_time,
        timestamp=now,
    ))
    return card


def end_session(db_path: str, session: StudySession, now: Optional[datetime] = None) -> Optional[StudySession]:
    """Close the session and roll its totals into the user's profile.

    Returns None if the session was already ended.
    """
    if not session.is_active:
        return None
    now = now or utcnow()
    session.end_time = now
    session.is_active = False
    conn = get_connection(db_path)
    conn.execute("UPDATE study_sessions SET ended_at = ? WHERE id = ?", (to_iso(now), session.id))
    if session.cards_reviewed:
        record_study_activity(conn, session.user_id, len(session.cards_reviewed), now.date())
    conn.commit()
    conn.close()
    logger.info("Ended session %s: %d cards reviewed", session.id, len(session.cards_reviewed))
    return session


def get_session_stats(session: StudySession, now: Optional[datetime] = None) -> dict | None:
    reviews = session.cards_reviewed
    if not reviews:
        return None
    total = len(reviews)
    correct = sum(1 for r in reviews if r.correct)
    end = session.end_time or now or utcnow()
    return {
        "total_reviewed": total,
        "correct_answers": correct,
        "accuracy": correct / total * 100,
        "average_response_time": sum(r.response_time for r in reviews) / total,
        "average_difficulty": sum(r.difficulty for r in reviews) / total,
        "time_spent": (end - session.start_time).total_seconds() / 60,
    }


def save_progress(db_path: str, user_id: int, set_id: int, current_index: int, total_cards: int) -> None:
    """Remember where the user stopped in a set so the next run can resume."""
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO study_progress (user_id, set_id, current_index, total_cards, last_studied)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(user_id, set_id) DO UPDATE SET
            current_index = excluded.current_index,
            total_cards = excluded.total_cards,
            last_studied = excluded.last_studied""",
        (user_id, set_id, current_index, total_cards, to_iso(utcnow())),
    )
    conn.commit()
    conn.close()


def get_progress(db_path: str, user_id: int, set_id: int) -> int | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT current_index FROM study_progress WHERE user_id = ? AND set_id = ?",
        (user_id, set_id),
    ).fetchone()
    conn.close()
    return row["current_index"] if row else None


def clear_progress(db_path: str, user_id: int, set_id: int) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM study_progress WHERE user_id = ? AND set_id = ?", (user_id, set_id))
    conn.commit()
    conn.close()


def get_recent_sessions(db_path: str, user_id: int, limit: int = 5) -> list[dict]:
    """Finished sessions, newest first, with review counts and accuracy."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT ss.id, ss.set_id, s.name AS set_name, ss.session_type,
            ss.started_at, ss.ended_at,
            COUNT(r.id) AS reviewed,
            COALESCE(SUM(r.correct), 0) AS correct
        FROM study_sessions ss
        JOIN sets s ON s.id = ss.set_id
        LEFT JOIN card_reviews r ON r.session_id = ss.id
        WHERE ss.user_id = ? AND ss.ended_at IS NOT NULL
        GROUP BY ss.id
        ORDER BY ss.ended_at DESC, ss.id DESC
        LIMIT ?""",
        (user_id, limit),
    ).fetchall()
    conn.close()
    return [
        {
            "session_id": r["id"],
            "set_id": r["set_id"],
            "set_name": r["set_name"],
            "session_type": r["session_type"],
            "started_at": from_iso(r["started_at"]),
            "ended_at": from_iso(r["ended_at"]),
            "reviewed": r["reviewed"],
            "accuracy": round(r["correct"] / r["reviewed"] * 100, 1) if r["reviewed"] else 0.0,
        }
        for r in rows
    ]
