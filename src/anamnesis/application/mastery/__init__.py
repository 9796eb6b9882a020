# Application Mastery Package
from .aggregation import (
    build_distribution,
    calculate_mastery_progress,
    get_lowest_state,
    summarize_cards,
)
from .engine import TRANSITIONS, MasteryEngine, Move

__all__ = [
    "MasteryEngine",
    "Move",
    "TRANSITIONS",
    "build_distribution",
    "calculate_mastery_progress",
    "get_lowest_state",
    "summarize_cards",
]
