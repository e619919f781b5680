from datetime import datetime, timezone

from flashdeck.models import (
    BulkCreateFailure, BulkCreateResult, Flashcard, FlashcardSet, StudySession, StudyStats,
)


def test_flashcard_defaults_to_new():
    card = Flashcard(id=1, set_id=1, user_id=1, front="hola", back="hello")
    assert card.performance is None
    assert card.review_count == 0
    assert card.starred is False


def test_flashcard_set_defaults():
    deck = FlashcardSet(id=1, user_id=1, name="Spanish")
    assert deck.difficulty == 3
    assert deck.card_count == 0
    assert deck.flashcards is None


def test_study_stats_defaults():
    stats = StudyStats()
    assert stats.total_cards == 0
    assert stats.average_ease_factor == 2.5


def test_study_session_reviews_not_shared():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    s1 = StudySession(id=1, user_id=1, set_id=1, set_name="a", total_cards=2, session_type="mixed", start_time=now)
    s2 = StudySession(id=2, user_id=1, set_id=1, set_name="a", total_cards=2, session_type="mixed", start_time=now)
    s1.cards_reviewed.append("x")
    assert s2.cards_reviewed == []
    assert s1.is_active


def test_bulk_result_counts():
    result = BulkCreateResult()
    result.created.append(Flashcard(id=1, set_id=1, user_id=1, front="a", back="b"))
    result.failed.append(BulkCreateFailure(index=1, card={}, error="front: Field required"))
    result.failed.append(BulkCreateFailure(index=2, card={}, error="back: Field required"))
    assert result.success_count == 1
    assert result.failure_count == 2
