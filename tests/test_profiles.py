from datetime import date

import pytest

from flashdeck.db import get_connection
from flashdeck.errors import InvalidInputError, NotFoundError
from flashdeck.profiles import get_profile, next_streak, record_study_activity, update_profile


def test_get_profile(tmp_db, user):
    profile = get_profile(tmp_db, user.id)
    assert profile.email == "ada@example.com"
    assert profile.theme == "system"
    assert profile.notifications is True


def test_get_profile_missing(tmp_db, user):
    with pytest.raises(NotFoundError):
        get_profile(tmp_db, 999)


def test_update_profile(tmp_db, user):
    profile = update_profile(tmp_db, user.id, {"study_goal": 50, "theme": "dark", "notifications": False})
    assert profile.study_goal == 50
    assert profile.theme == "dark"
    assert profile.notifications is False
    assert profile.name == "Ada Lovelace"


def test_update_profile_invalid(tmp_db, user):
    with pytest.raises(InvalidInputError, match="study_goal"):
        update_profile(tmp_db, user.id, {"study_goal": 5000})


def test_next_streak():
    today = date(2026, 5, 10)
    assert next_streak(0, None, today) == 1
    assert next_streak(3, "2026-05-10", today) == 3
    assert next_streak(3, "2026-05-09", today) == 4
    assert next_streak(3, "2026-05-07", today) == 1


def test_record_study_activity_rolls_streak(tmp_db, user):
    conn = get_connection(tmp_db)
    record_study_activity(conn, user.id, 5, date(2026, 5, 8))
    record_study_activity(conn, user.id, 3, date(2026, 5, 9))
    record_study_activity(conn, user.id, 2, date(2026, 5, 9))
    conn.commit()
    conn.close()
    profile = get_profile(tmp_db, user.id)
    assert profile.total_study_sessions == 3
    assert profile.total_cards_studied == 10
    assert profile.current_streak == 2
    assert profile.longest_streak == 2
    assert profile.last_study_date == "2026-05-09"


def test_broken_streak_keeps_longest(tmp_db, user):
    conn = get_connection(tmp_db)
    for day in (1, 2, 3):
        record_study_activity(conn, user.id, 1, date(2026, 5, day))
    record_study_activity(conn, user.id, 1, date(2026, 5, 10))
    conn.commit()
    conn.close()
    profile = get_profile(tmp_db, user.id)
    assert profile.current_streak == 1
    assert profile.longest_streak == 3
