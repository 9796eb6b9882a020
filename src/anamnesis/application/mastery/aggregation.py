"""
Mastery aggregation for dashboards.

Pure functions over MasteryDistribution; an empty scope is a valid input
and yields neutral defaults rather than an error.
"""

import math
from collections.abc import Iterable, Mapping
from fractions import Fraction

from anamnesis.domain.mastery.models import LADDER, MasteryDistribution, MasteryState
from anamnesis.domain.review.models import ReviewCard

DistributionLike = MasteryDistribution | Mapping[MasteryState | str, int]


def _as_distribution(distribution: DistributionLike) -> MasteryDistribution:
    if isinstance(distribution, MasteryDistribution):
        return distribution
    return MasteryDistribution.from_mapping(distribution)


def calculate_mastery_progress(
    distribution: DistributionLike,
    weights: Mapping[MasteryState | str, float] | None = None,
) -> int:
    """
    Count-weighted average of each state's progress percent.

    Rounds half away from zero; returns 0 for an empty scope.

    Args:
        distribution: Concept count per state.
        weights: Optional per-state overrides of ``progress_percent``.
    """
    dist = _as_distribution(distribution)
    total = dist.total
    if total == 0:
        return 0

    overrides = {MasteryState.parse(k): v for k, v in (weights or {}).items()}
    weighted = Fraction(0)
    for state, count in dist.counts.items():
        weight = overrides.get(state, state.metadata.progress_percent)
        weighted += count * Fraction(weight)

    # Weights are non-negative, so half-up is half-away-from-zero.
    return math.floor(weighted / total + Fraction(1, 2))


def get_lowest_state(distribution: DistributionLike) -> MasteryState:
    """
    Worst state present in the distribution.

    MISCONCEIVED dominates whenever it is present; an empty distribution
    yields UNSEEN.
    """
    dist = _as_distribution(distribution)
    if dist[MasteryState.MISCONCEIVED] > 0:
        return MasteryState.MISCONCEIVED

    for state in LADDER:
        if dist[state] > 0:
            return state
    return MasteryState.UNSEEN


def build_distribution(states: Iterable[MasteryState | str]) -> MasteryDistribution:
    return MasteryDistribution.from_states(states)


def summarize_cards(
    cards: Iterable[ReviewCard], project_id: str | None = None
) -> MasteryDistribution:
    """
    Distribution of stored card states, globally or for one project.
    """
    return build_distribution(
        card.mastery_state
        for card in cards
        if project_id is None or card.project_id == project_id
    )
