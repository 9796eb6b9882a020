# Application Queue Package
from .review_queue import (
    DailyLoadEstimate,
    ReviewQueueStats,
    calculate_queue_stats,
    days_overdue,
    estimate_daily_load,
    is_due,
    order_due_cards,
    select_due_cards,
)
from .session import ReviewSession, SessionStatus

__all__ = [
    "DailyLoadEstimate",
    "ReviewQueueStats",
    "ReviewSession",
    "SessionStatus",
    "calculate_queue_stats",
    "days_overdue",
    "estimate_daily_load",
    "is_due",
    "order_due_cards",
    "select_due_cards",
]
