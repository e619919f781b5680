from datetime import date, datetime, timedelta, timezone

from flashdeck.dashboard import (
    cards_studied_on, effective_streak, get_goal_color, get_goal_label,
    get_overview, get_set_breakdown,
)
from flashdeck.flashcards import create_flashcard
from flashdeck.models import ReviewResult
from flashdeck.profiles import update_profile
from flashdeck.sets import create_set
from flashdeck.study import end_session, record_card_review, start_session

NOW = datetime(2026, 4, 2, 15, 0, tzinfo=timezone.utc)
GOOD = ReviewResult(correct=True, difficulty=2, response_time=4000)


def test_goal_label():
    assert get_goal_label(100) == "GOAL MET"
    assert get_goal_label(75) == "HALFWAY"
    assert get_goal_label(10) == "STARTED"
    assert get_goal_label(0) == "NOT STARTED"


def test_goal_color():
    assert get_goal_color(100) == "green"
    assert get_goal_color(50) == "yellow"
    assert get_goal_color(1) == "dark_orange"
    assert get_goal_color(0) == "red"


def test_effective_streak():
    today = date(2026, 4, 2)
    assert effective_streak(4, "2026-04-02", today) == 4
    assert effective_streak(4, "2026-04-01", today) == 4
    assert effective_streak(4, "2026-03-30", today) == 0
    assert effective_streak(0, None, today) == 0


def test_overview_empty(tmp_db, user):
    overview = get_overview(tmp_db, user.id, now=NOW)
    assert overview["total_sets"] == 0
    assert overview["stats"].total_cards == 0
    assert overview["studied_today"] == 0
    assert overview["goal_pct"] == 0
    assert overview["current_streak"] == 0


def test_overview_after_study(tmp_db, user, deck):
    update_profile(tmp_db, user.id, {"study_goal": 4})
    cards = [create_flashcard(tmp_db, user.id, deck.id, {"front": f"q{i}", "back": "a"}) for i in range(3)]
    session = start_session(tmp_db, user.id, deck.id, 3, now=NOW)
    for card in cards[:2]:
        record_card_review(tmp_db, session, card.id, GOOD, now=NOW)
    end_session(tmp_db, session, now=NOW)

    overview = get_overview(tmp_db, user.id, now=NOW)
    assert overview["total_sets"] == 1
    assert overview["stats"].total_cards == 3
    assert overview["stats"].new_cards == 1
    assert overview["stats"].due_cards == 1
    assert overview["studied_today"] == 2
    assert overview["goal_pct"] == 50.0
    assert overview["current_streak"] == 1
    assert overview["total_cards_studied"] == 2

    # Two days later the streak has lapsed
    later = get_overview(tmp_db, user.id, now=NOW + timedelta(days=2))
    assert later["current_streak"] == 0
    assert later["longest_streak"] == 1
    assert later["studied_today"] == 0


def test_cards_studied_on(tmp_db, user, deck):
    card = create_flashcard(tmp_db, user.id, deck.id, {"front": "q", "back": "a"})
    session = start_session(tmp_db, user.id, deck.id, 1, now=NOW)
    record_card_review(tmp_db, session, card.id, GOOD, now=NOW)
    assert cards_studied_on(tmp_db, user.id, NOW.date()) == 1
    assert cards_studied_on(tmp_db, user.id, NOW.date() - timedelta(days=1)) == 0


def test_set_breakdown_sorted_by_due(tmp_db, user, deck):
    other = create_set(tmp_db, user.id, {"name": "German"})
    create_flashcard(tmp_db, user.id, deck.id, {"front": "q", "back": "a"})
    for i in range(3):
        create_flashcard(tmp_db, user.id, other.id, {"front": f"q{i}", "back": "a"})
    breakdown = get_set_breakdown(tmp_db, user.id, now=NOW)
    assert [row["name"] for row in breakdown] == ["German", "Spanish"]
    assert breakdown[0]["stats"].due_cards == 3
    assert breakdown[1]["stats"].new_cards == 1
