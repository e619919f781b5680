"""End-to-end flow: account, set, import, study days, dashboard."""
import json
from datetime import datetime, timedelta, timezone

from flashdeck.auth import login, register_user, require_user
from flashdeck.dashboard import get_overview, get_set_breakdown
from flashdeck.db import init_db
from flashdeck.importer import import_file
from flashdeck.models import ReviewResult
from flashdeck.sets import create_set, delete_set, get_set
from flashdeck.study import build_study_queue, end_session, record_card_review, start_session

DAY_ONE = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)


def study_all_due(db_path, user_id, set_id, now, difficulty=2):
    queue = build_study_queue(db_path, user_id, set_id, "mixed", now=now)
    session = start_session(db_path, user_id, set_id, len(queue), "mixed", now=now)
    for card in queue:
        record_card_review(db_path, session, card.id, ReviewResult(
            correct=difficulty <= 3, difficulty=difficulty, response_time=5000,
        ), now=now)
    end_session(db_path, session, now=now)
    return queue


def test_full_study_flow(tmp_db, tmp_path):
    init_db(tmp_db)
    register_user(tmp_db, "Ada Lovelace", "ada@example.com", "Secret123")
    profile, token = login(tmp_db, "ada@example.com", "Secret123")
    user = require_user(tmp_db, token)
    assert user.id == profile.id

    deck = create_set(tmp_db, user.id, {"name": "Capitals"})
    source = tmp_path / "capitals.json"
    source.write_text(json.dumps([
        {"front": "France", "back": "Paris"},
        {"front": "Spain", "back": "Madrid"},
        {"front": "Peru", "back": "Lima"},
    ]), encoding="utf-8")
    result = import_file(tmp_db, user.id, deck.id, str(source))
    assert result.success_count == 3
    assert get_set(tmp_db, user.id, deck.id).card_count == 3

    # Day 1: everything is new and goes to a 1-day interval
    assert len(study_all_due(tmp_db, user.id, deck.id, DAY_ONE)) == 3
    assert build_study_queue(tmp_db, user.id, deck.id, now=DAY_ONE + timedelta(hours=1)) == []

    # Day 2: due again, then pushed out 6 days
    day_two = DAY_ONE + timedelta(days=1)
    assert len(study_all_due(tmp_db, user.id, deck.id, day_two)) == 3
    assert build_study_queue(tmp_db, user.id, deck.id, now=day_two + timedelta(days=5)) == []
    assert len(build_study_queue(tmp_db, user.id, deck.id, now=day_two + timedelta(days=6))) == 3

    overview = get_overview(tmp_db, user.id, now=day_two)
    assert overview["current_streak"] == 2
    assert overview["longest_streak"] == 2
    assert overview["total_study_sessions"] == 2
    assert overview["total_cards_studied"] == 6
    assert overview["studied_today"] == 3
    assert overview["stats"].review_cards == 3
    assert overview["stats"].due_cards == 0

    breakdown = get_set_breakdown(tmp_db, user.id, now=day_two + timedelta(days=8))
    assert breakdown[0]["stats"].overdue_cards == 3

    delete_set(tmp_db, user.id, deck.id)
    assert get_overview(tmp_db, user.id, now=day_two)["stats"].total_cards == 0
