"""
Forgetting-curve scheduler.

Maintains each ReviewCard's stability and difficulty and computes due dates.
This is a pure computation module with no I/O: every method returns new
values and leaves its inputs untouched.

Model:
    R(t, S) = (1 + factor * t / S) ** decay

The factor is derived from the decay so that R(S, S) == 0.9, which makes
stability read as "days until recall probability falls to 90%" for any
configured curve shape.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from numbers import Real

from anamnesis.application.config import SchedulerConfig
from anamnesis.domain.constants import DECAY, SECONDS_PER_DAY
from anamnesis.domain.errors import InvariantViolationError
from anamnesis.domain.review.models import (
    IntervalPreview,
    Rating,
    ReviewCard,
    SchedulingResult,
)

logger = logging.getLogger(__name__)


def curve_factor(decay: float = DECAY) -> float:
    """Scale that pins R(S, S) to 0.9 for the given decay exponent."""
    return 0.9 ** (1 / decay) - 1


def retrievability(stability: float, elapsed_days: float, decay: float = DECAY) -> float:
    """
    Predicted probability of recall after ``elapsed_days``.

    Returns 1.0 for zero (or negative) elapsed time.
    """
    if elapsed_days <= 0:
        return 1.0
    return (1 + curve_factor(decay) * elapsed_days / stability) ** decay


def interval_for_retention(
    stability: float, target_retention: float, decay: float = DECAY
) -> float:
    """
    Invert the forgetting curve: days until recall drops to ``target_retention``.
    """
    return stability / curve_factor(decay) * (target_retention ** (1 / decay) - 1)


class Scheduler:
    """
    Computes updated card parameters for a rating.

    Stateless and side-effect free; all tuning comes from the injected
    SchedulerConfig.
    """

    def __init__(self, config: SchedulerConfig | None = None):
        self.config = config or SchedulerConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def rate(self, card: ReviewCard, rating: Rating | int | str, now: datetime) -> ReviewCard:
        """Apply a rating and return the updated card."""
        return self.schedule(card, rating, now).card

    def schedule(
        self, card: ReviewCard, rating: Rating | int | str, now: datetime
    ) -> SchedulingResult:
        """
        Apply a rating and return the updated card with scheduling details.

        Raises:
            InvalidRatingError: If ``rating`` is not one of the four ratings.
            InvariantViolationError: If ``card`` is malformed.
        """
        rating = Rating.parse(rating)
        self.validate(card)

        elapsed = self.elapsed_days(card, now)
        recall = retrievability(card.stability, elapsed, self.config.decay)

        stability = self._next_stability(card, rating, recall)
        difficulty = self._next_difficulty(card, rating)
        interval = self.interval_days(stability)

        updated = replace(
            card,
            stability=stability,
            difficulty=difficulty,
            reps=card.reps + 1,
            lapses=card.lapses + (1 if rating.is_lapse else 0),
            last_review_at=now,
            due_at=now + timedelta(days=interval),
        )

        logger.debug(
            "Scheduled %s/%s rating=%s R=%.3f S %.3f->%.3f D %.2f->%.2f interval=%dd",
            card.user_id,
            card.concept_id,
            rating.label,
            recall,
            card.stability,
            stability,
            card.difficulty,
            difficulty,
            interval,
        )

        return SchedulingResult(
            card=updated,
            rating=rating,
            interval_days=interval,
            elapsed_days=elapsed,
            retrievability=recall,
        )

    def preview_intervals(self, card: ReviewCard, now: datetime) -> IntervalPreview:
        """
        Interval each rating would produce, without committing any of them.

        The update rules with a validated SchedulerConfig keep
        again <= hard <= good <= easy. A preview that breaks the ordering,
        e.g. from a subclass overriding interval_days, is logged as a
        warning rather than raised.
        """
        preview = IntervalPreview(
            again=self.schedule(card, Rating.AGAIN, now).interval_days,
            hard=self.schedule(card, Rating.HARD, now).interval_days,
            good=self.schedule(card, Rating.GOOD, now).interval_days,
            easy=self.schedule(card, Rating.EASY, now).interval_days,
        )
        if not preview.is_monotonic:
            logger.warning(
                "Non-monotonic interval preview for %s/%s: %s (S=%.3f D=%.2f)",
                card.user_id,
                card.concept_id,
                preview.as_dict(),
                card.stability,
                card.difficulty,
            )
        return preview

    def current_retrievability(self, card: ReviewCard, now: datetime) -> float:
        """Predicted recall probability for ``card`` at ``now``."""
        self.validate(card)
        return retrievability(card.stability, self.elapsed_days(card, now), self.config.decay)

    def new_card(
        self, user_id: str, concept_id: str, project_id: str | None = None
    ) -> ReviewCard:
        """Card for a concept on first exposure."""
        return ReviewCard(
            user_id=user_id,
            concept_id=concept_id,
            project_id=project_id,
            stability=self.config.seed_stability,
            difficulty=self.config.seed_difficulty,
        )

    def validate(self, card: ReviewCard) -> None:
        """
        Check the structural invariants of a card.

        Raises:
            InvariantViolationError: On the first violated invariant.
        """
        cfg = self.config

        if not _is_finite_number(card.stability) or card.stability <= 0:
            raise InvariantViolationError(
                f"stability must be a positive finite number, got {card.stability!r}",
                field="stability",
            )
        if not _is_finite_number(card.difficulty) or not (
            cfg.min_difficulty <= card.difficulty <= cfg.max_difficulty
        ):
            raise InvariantViolationError(
                f"difficulty must lie in [{cfg.min_difficulty}, {cfg.max_difficulty}], "
                f"got {card.difficulty!r}",
                field="difficulty",
            )
        if not isinstance(card.reps, int) or card.reps < 0:
            raise InvariantViolationError(
                f"reps must be a non-negative integer, got {card.reps!r}", field="reps"
            )
        if not isinstance(card.lapses, int) or card.lapses < 0:
            raise InvariantViolationError(
                f"lapses must be a non-negative integer, got {card.lapses!r}", field="lapses"
            )
        if card.lapses > card.reps:
            raise InvariantViolationError(
                f"lapses ({card.lapses}) exceed reps ({card.reps})", field="lapses"
            )

    @staticmethod
    def elapsed_days(card: ReviewCard, now: datetime) -> float:
        if card.last_review_at is None:
            return 0.0
        seconds = (now - card.last_review_at).total_seconds()
        return max(0.0, seconds / SECONDS_PER_DAY)

    def interval_days(self, stability: float) -> int:
        """
        Whole-day interval for a stability at the target retention.

        Rounded half-up and clamped to the configured bounds, so it is
        always at least one day.
        """
        raw = interval_for_retention(stability, self.config.target_retention, self.config.decay)
        days = int(math.floor(raw + 0.5))
        return max(self.config.minimum_interval_days, min(self.config.maximum_interval_days, days))

    # ------------------------------------------------------------------
    # Update rules
    # ------------------------------------------------------------------

    def _next_stability(self, card: ReviewCard, rating: Rating, recall: float) -> float:
        cfg = self.config
        s = card.stability

        if rating.is_lapse:
            # Keep part of what was learned above the seed; below it, shrink.
            if s > cfg.seed_stability:
                new_s = cfg.seed_stability + (s - cfg.seed_stability) * cfg.lapse_penalty
            else:
                new_s = s * cfg.lapse_penalty
            return min(new_s, math.nextafter(s, 0.0))

        growth = {
            Rating.HARD: cfg.growth_hard,
            Rating.GOOD: cfg.growth_good,
            Rating.EASY: cfg.growth_easy,
        }[rating]

        ease = (cfg.max_difficulty - card.difficulty + cfg.min_difficulty) / cfg.max_difficulty
        saturation = s ** (-cfg.stability_damping)
        spacing = 1 + cfg.recall_bonus * (1 - recall)

        new_s = s * (1 + growth * ease * saturation * spacing)
        # Float saturation on huge stabilities must not break strict growth.
        return max(new_s, math.nextafter(s, math.inf))

    def _next_difficulty(self, card: ReviewCard, rating: Rating) -> float:
        cfg = self.config
        step = {
            Rating.AGAIN: cfg.difficulty_step_again,
            Rating.HARD: cfg.difficulty_step_hard,
            Rating.GOOD: 0.0,
            Rating.EASY: cfg.difficulty_step_easy,
        }[rating]
        return max(cfg.min_difficulty, min(cfg.max_difficulty, card.difficulty + step))


def _is_finite_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)
