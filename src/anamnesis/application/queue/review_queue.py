"""
Review queue selection and statistics.

Decides which cards are due, orders them for a sitting, and summarizes the
queue for dashboards. Pure functions, no I/O.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from anamnesis.domain.constants import DEFAULT_LOAD_DAYS_AHEAD, SECONDS_PER_DAY
from anamnesis.domain.mastery.models import MasteryState
from anamnesis.domain.review.models import ReviewCard


@dataclass
class ReviewQueueStats:
    """Summary of the currently due cards."""

    total_due: int = 0
    overdue_count: int = 0  # Due for at least one whole day
    avg_overdue_days: float = 0.0
    by_state: dict[MasteryState, int] = field(
        default_factory=lambda: {state: 0 for state in MasteryState}
    )
    by_project: dict[str, int] = field(default_factory=dict)


@dataclass
class DailyLoadEstimate:
    """Expected number of reviews in upcoming windows."""

    today: int
    tomorrow: int
    this_week: int
    average_per_day: float


def is_due(card: ReviewCard, now: datetime) -> bool:
    """
    A card is due once its due date has passed.

    Never-reviewed cards are new, not overdue.
    """
    if card.reps == 0 or card.due_at is None:
        return False
    return card.due_at <= now


def days_overdue(card: ReviewCard, now: datetime) -> int:
    """
    Whole days since the card fell due, 0 for cards not yet due.
    """
    if not is_due(card, now):
        return 0
    seconds = (now - card.due_at).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_DAY))


def _priority_key(card: ReviewCard, now: datetime) -> tuple:
    return (
        -days_overdue(card, now),
        card.stability,
        card.due_at.timestamp() if card.due_at else 0.0,
        card.concept_id,
    )


def order_due_cards(cards: Iterable[ReviewCard], now: datetime) -> list[ReviewCard]:
    """
    Most-overdue first; ties go to the least stable card.
    """
    return sorted(cards, key=lambda card: _priority_key(card, now))


def select_due_cards(
    cards: Iterable[ReviewCard],
    now: datetime,
    project_id: str | None = None,
    limit: int | None = None,
) -> list[ReviewCard]:
    """
    Due cards, optionally restricted to one project, in review order.

    Args:
        cards: Candidate cards.
        now: Reference time.
        project_id: Keep only cards of this project.
        limit: Maximum number of cards to return (highest priority kept).
    """
    due = [
        card
        for card in cards
        if is_due(card, now) and (project_id is None or card.project_id == project_id)
    ]
    ordered = order_due_cards(due, now)
    if limit is not None:
        ordered = ordered[:limit]
    return ordered


def calculate_queue_stats(cards: Iterable[ReviewCard], now: datetime) -> ReviewQueueStats:
    """
    Counts of due cards by state and project, and average overdue days.
    """
    stats = ReviewQueueStats()
    total_overdue_days = 0

    for card in cards:
        if not is_due(card, now):
            continue

        stats.total_due += 1
        overdue = days_overdue(card, now)
        if overdue > 0:
            stats.overdue_count += 1
            total_overdue_days += overdue

        stats.by_state[card.mastery_state] += 1
        project = card.project_id or ""
        stats.by_project[project] = stats.by_project.get(project, 0) + 1

    if stats.total_due:
        stats.avg_overdue_days = total_overdue_days / stats.total_due
    return stats


def estimate_daily_load(
    cards: Iterable[ReviewCard],
    now: datetime,
    days_ahead: int = DEFAULT_LOAD_DAYS_AHEAD,
) -> DailyLoadEstimate:
    """
    Estimate upcoming review load from scheduled due dates.

    Windows end at the close of today, tomorrow, and ``days_ahead`` days
    from today, measured in ``now``'s timezone. Counts are cumulative: a card
    due today also counts toward tomorrow and the week.
    """
    if days_ahead < 1:
        raise ValueError("days_ahead must be at least 1")

    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    today_end = start_of_day + timedelta(days=1)
    tomorrow_end = today_end + timedelta(days=1)
    week_end = today_end + timedelta(days=days_ahead)

    today = tomorrow = this_week = 0
    for card in cards:
        if card.reps == 0 or card.due_at is None:
            continue
        if card.due_at < today_end:
            today += 1
            tomorrow += 1
            this_week += 1
        elif card.due_at < tomorrow_end:
            tomorrow += 1
            this_week += 1
        elif card.due_at < week_end:
            this_week += 1

    return DailyLoadEstimate(
        today=today,
        tomorrow=tomorrow,
        this_week=this_week,
        average_per_day=this_week / days_ahead,
    )
