"""Dashboard statistics across a user's sets."""
from datetime import date, datetime, timedelta
from typing import Optional

from flashdeck.db import get_connection, utcnow
from flashdeck.flashcards import list_user_flashcards
from flashdeck.profiles import get_profile
from flashdeck.scheduler import get_study_stats
from flashdeck.sets import list_sets


def get_goal_label(pct: float) -> str:
    if pct >= 100:
        return "GOAL MET"
    elif pct >= 50:
        return "HALFWAY"
    elif pct > 0:
        return "STARTED"
    return "NOT STARTED"


def get_goal_color(pct: float) -> str:
    if pct >= 100:
        return "green"
    elif pct >= 50:
        return "yellow"
    elif pct > 0:
        return "dark_orange"
    return "red"


def effective_streak(current_streak: int, last_study_date: str | None, today: date) -> int:
    """A stored streak only counts if the user studied today or yesterday."""
    if last_study_date is None:
        return 0
    if date.fromisoformat(last_study_date) < today - timedelta(days=1):
        return 0
    return current_streak


def cards_studied_on(db_path: str, user_id: int, day: date) -> int:
    conn = get_connection(db_path)
    count = conn.execute(
        """SELECT COUNT(*) FROM card_reviews r
        JOIN flashcards f ON f.id = r.flashcard_id
        WHERE f.user_id = ? AND substr(r.reviewed_at, 1, 10) = ?""",
        (user_id, day.isoformat()),
    ).fetchone()[0]
    conn.close()
    return count


def get_overview(db_path: str, user_id: int, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    profile = get_profile(db_path, user_id)
    stats = get_study_stats(list_user_flashcards(db_path, user_id), now=now)
    studied_today = cards_studied_on(db_path, user_id, now.date())
    goal_pct = min(100.0, studied_today / profile.study_goal * 100) if profile.study_goal else 0.0
    return {
        "total_sets": len(list_sets(db_path, user_id)),
        "stats": stats,
        "studied_today": studied_today,
        "study_goal": profile.study_goal,
        "goal_pct": round(goal_pct, 1),
        "current_streak": effective_streak(profile.current_streak, profile.last_study_date, now.date()),
        "longest_streak": profile.longest_streak,
        "total_study_sessions": profile.total_study_sessions,
        "total_cards_studied": profile.total_cards_studied,
    }


def get_set_breakdown(db_path: str, user_id: int, now: Optional[datetime] = None) -> list[dict]:
    """Scheduler stats per set, sets with the most due cards first."""
    now = now or utcnow()
    by_set: dict[int, list] = {}
    for card in list_user_flashcards(db_path, user_id):
        by_set.setdefault(card.set_id, []).append(card)
    results = []
    for deck in list_sets(db_path, user_id):
        stats = get_study_stats(by_set.get(deck.id, []), now=now)
        results.append({
            "set_id": deck.id,
            "name": deck.name,
            "starred": deck.starred,
            "stats": stats,
        })
    results.sort(key=lambda r: r["stats"].due_cards, reverse=True)
    return results
