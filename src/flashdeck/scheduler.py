"""SM-2 style spaced repetition scheduling.

All functions are pure: they take values and return new values. Pass ``now``
to pin the clock; it defaults to the current UTC time.
"""
import math
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from flashdeck.models import CardPerformance, ReviewResult, StudyStats

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
BASELINE_RESPONSE_MS = 5000
MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 2.0
SECONDS_PER_DAY = 24 * 60 * 60


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _current_value(current, name: str, default):
    if current is None:
        return default
    if isinstance(current, Mapping):
        value = current.get(name)
    else:
        value = getattr(current, name, None)
    return default if value is None else value


def performance_of(card) -> Optional[CardPerformance]:
    """Return the card's performance record, or None for a new card."""
    if isinstance(card, Mapping):
        return card.get("performance")
    return getattr(card, "performance", None)


def response_time_multiplier(response_time: float) -> float:
    """Scale factor for the interval: fast answers stretch it, slow ones shrink it."""
    # Zero and negative times would divide by zero or flip sign; treat them as
    # instant answers.
    response_time = max(response_time, 1)
    return min(MAX_MULTIPLIER, max(MIN_MULTIPLIER, BASELINE_RESPONSE_MS / response_time))


def calculate_next_review(
    current,
    result: ReviewResult,
    now: Optional[datetime] = None,
) -> CardPerformance:
    """Compute the card's next schedule from its current state and a review.

    Args:
        current: CardPerformance, a mapping with any of ease_factor, interval,
            repetitions, or None for a new card.
        result: The review outcome. difficulty 1 is the best recall, 5 the worst.
        now: Review time.

    Returns:
        A new CardPerformance.
    """
    now = _now(now)
    ease_factor = _current_value(current, "ease_factor", DEFAULT_EASE_FACTOR)
    interval = _current_value(current, "interval", 1)
    repetitions = _current_value(current, "repetitions", 0)

    quality = 6 - result.difficulty

    if quality < 3:
        # Poor recall: start the streak over
        new_ease = ease_factor
        new_repetitions = 0
        new_interval = 1
    else:
        new_ease = max(
            MIN_EASE_FACTOR,
            ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)),
        )
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            new_interval = _round_half_up(interval * new_ease)
        new_repetitions = repetitions + 1

    new_interval = _round_half_up(new_interval * response_time_multiplier(result.response_time))

    return CardPerformance(
        ease_factor=new_ease,
        interval=new_interval,
        repetitions=new_repetitions,
        next_review=now + timedelta(days=new_interval),
        last_reviewed=now,
    )


def is_card_due(performance: CardPerformance, now: Optional[datetime] = None) -> bool:
    return _now(now) >= performance.next_review


def days_overdue(performance: CardPerformance, now: Optional[datetime] = None) -> float:
    elapsed = (_now(now) - performance.next_review).total_seconds()
    return max(0.0, elapsed / SECONDS_PER_DAY)


def get_due_cards(cards: Iterable, now: Optional[datetime] = None) -> list:
    """Keep new cards and cards whose review time has passed."""
    now = _now(now)
    due = []
    for card in cards:
        perf = performance_of(card)
        if perf is None or is_card_due(perf, now):
            due.append(card)
    return due


def sort_cards_by_priority(cards: Iterable, now: Optional[datetime] = None) -> list:
    """Order cards for study: new, then most overdue, then hardest (lowest ease).

    The sort is stable, so ties keep their incoming order.
    """
    now = _now(now)

    def priority(card):
        perf = performance_of(card)
        if perf is None:
            return (0, 0.0)
        overdue = days_overdue(perf, now)
        if overdue > 0:
            return (1, -overdue)
        return (2, perf.ease_factor)

    return sorted(cards, key=priority)


def get_study_stats(cards: Iterable, now: Optional[datetime] = None) -> StudyStats:
    now = _now(now)
    stats = StudyStats()
    ease_sum = 0.0

    for card in cards:
        stats.total_cards += 1
        perf = performance_of(card)
        if perf is None:
            stats.new_cards += 1
            stats.due_cards += 1
            continue
        stats.review_cards += 1
        ease_sum += perf.ease_factor
        if is_card_due(perf, now):
            stats.due_cards += 1
            if days_overdue(perf, now) > 1:
                stats.overdue_cards += 1

    if stats.review_cards:
        stats.average_ease_factor = ease_sum / stats.review_cards
    return stats
