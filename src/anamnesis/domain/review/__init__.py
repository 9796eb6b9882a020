# Domain Review Package
from .models import IntervalPreview, Rating, ReviewCard, ReviewLogEntry, SchedulingResult
from .ports import CardRepository

__all__ = [
    "CardRepository",
    "IntervalPreview",
    "Rating",
    "ReviewCard",
    "ReviewLogEntry",
    "SchedulingResult",
]
