"""
Mastery state derivation.

Maps a card's continuous scheduler parameters and its review history onto
the discrete MasteryState lattice. Two layers:

1. A *candidate* state from stability thresholds, with cutoffs raised for
   harder concepts.
2. A hysteresis transition table deciding how far the current state may
   move toward the candidate given the latest rating.
"""

import logging
from collections.abc import Iterable, Sequence
from enum import Enum

from anamnesis.application.config import MasteryConfig
from anamnesis.domain.constants import MAX_DIFFICULTY, MIN_DIFFICULTY
from anamnesis.domain.mastery.models import LADDER, MasteryState
from anamnesis.domain.review.models import Rating, ReviewCard

logger = logging.getLogger(__name__)


class Move(Enum):
    """How the current state may move toward the candidate state."""

    FOLLOW = "follow"  # take the candidate as-is
    RAISE = "raise"  # keep or climb, never drop
    LOWER = "lower"  # keep or drop, never climb
    HOLD = "hold"  # stay put
    RELEASE = "release"  # leave MISCONCEIVED, capped at FRAGILE


def _build_transition_table() -> dict[tuple[MasteryState, Rating, bool], Move]:
    """
    Key: (current state, latest rating, clear-streak reached).

    The streak flag only matters for MISCONCEIVED; other rows are
    duplicated for both values so every key is explicit.
    """
    table: dict[tuple[MasteryState, Rating, bool], Move] = {}
    for streak_met in (False, True):
        for rating in Rating:
            table[(MasteryState.UNSEEN, rating, streak_met)] = Move.FOLLOW

            for state in LADDER[1:]:
                table[(state, rating, streak_met)] = Move.LOWER if rating.is_lapse else Move.RAISE

            if rating.is_lapse or not streak_met:
                table[(MasteryState.MISCONCEIVED, rating, streak_met)] = Move.HOLD
            else:
                table[(MasteryState.MISCONCEIVED, rating, streak_met)] = Move.RELEASE
    return table


TRANSITIONS = _build_transition_table()


def success_streak(history: Sequence[Rating]) -> int:
    """Number of trailing non-Again ratings."""
    streak = 0
    for rating in reversed(history):
        if rating.is_lapse:
            break
        streak += 1
    return streak


class MasteryEngine:
    """
    Derives mastery states from scheduler parameters.

    Stateless and side-effect free.
    """

    def __init__(
        self,
        config: MasteryConfig | None = None,
        min_difficulty: float = MIN_DIFFICULTY,
        max_difficulty: float = MAX_DIFFICULTY,
    ):
        self.config = config or MasteryConfig()
        self.min_difficulty = min_difficulty
        self.max_difficulty = max_difficulty

    def derive_state(
        self,
        card: ReviewCard,
        correctness_history: Iterable[Rating | int | str | bool] = (),
        current_state: MasteryState | None = None,
    ) -> MasteryState:
        """
        Mastery state for ``card`` after the most recent entry of its history.

        Args:
            card: Card with its post-review scheduler parameters.
            correctness_history: Ratings oldest first. Booleans are accepted
                as correct (Good) / incorrect (Again).
            current_state: State before the latest review; defaults to
                ``card.mastery_state``.
        """
        if card.reps == 0:
            return MasteryState.UNSEEN

        history = [_as_rating(entry) for entry in correctness_history]
        current = MasteryState.parse(current_state or card.mastery_state)
        candidate = self.candidate_state(card)

        if not history:
            # No rating to judge by: never downgrade.
            move = Move.HOLD if current is MasteryState.MISCONCEIVED else Move.RAISE
            if current is MasteryState.UNSEEN:
                move = Move.FOLLOW
            return self._apply(move, current, candidate)

        latest = history[-1]
        if latest.is_lapse and self.is_misconception(card):
            if current is not MasteryState.MISCONCEIVED:
                logger.info(
                    "Concept %s/%s flagged misconceived (lapses=%d reps=%d)",
                    card.user_id,
                    card.concept_id,
                    card.lapses,
                    card.reps,
                )
            return MasteryState.MISCONCEIVED

        streak_met = success_streak(history) >= self.config.misconception_clear_streak
        move = TRANSITIONS[(current, latest, streak_met)]
        new_state = self._apply(move, current, candidate)

        if new_state is not current:
            logger.debug(
                "Mastery %s/%s: %s -> %s (%s on %s, candidate=%s)",
                card.user_id,
                card.concept_id,
                current.value,
                new_state.value,
                move.value,
                latest.label,
                candidate.value,
            )
        return new_state

    def candidate_state(self, card: ReviewCard) -> MasteryState:
        """
        Ladder state earned by stability alone, ignoring hysteresis.
        """
        if card.reps == 0:
            return MasteryState.UNSEEN

        scale = self.difficulty_scale(card.difficulty)
        cfg = self.config
        ladder = (
            (cfg.mastered_cutoff, MasteryState.MASTERED),
            (cfg.solid_cutoff, MasteryState.SOLID),
            (cfg.developing_cutoff, MasteryState.DEVELOPING),
            (cfg.fragile_cutoff, MasteryState.FRAGILE),
        )
        for cutoff, state in ladder:
            if card.stability >= cutoff * scale:
                return state
        return MasteryState.EXPOSED

    def difficulty_scale(self, difficulty: float) -> float:
        """Multiplier on every cutoff; 1.0 at minimum difficulty."""
        span = self.max_difficulty - self.min_difficulty
        normalized = (difficulty - self.min_difficulty) / span
        normalized = max(0.0, min(1.0, normalized))
        return 1 + self.config.difficulty_shift * normalized

    def is_misconception(self, card: ReviewCard) -> bool:
        """
        Repeated failure on the same concept, as opposed to slow progress.
        """
        if card.reps == 0 or card.lapses < self.config.misconception_min_lapses:
            return False
        return card.lapses / card.reps >= self.config.misconception_lapse_ratio

    @staticmethod
    def _apply(move: Move, current: MasteryState, candidate: MasteryState) -> MasteryState:
        if move is Move.FOLLOW:
            return candidate
        if move is Move.HOLD:
            return current
        if move is Move.RELEASE:
            return min(candidate, MasteryState.FRAGILE, key=lambda s: s.rank)
        if move is Move.RAISE:
            return max(current, candidate, key=lambda s: s.rank)
        return min(current, candidate, key=lambda s: s.rank)


def _as_rating(entry: Rating | int | str | bool) -> Rating:
    if isinstance(entry, bool):
        return Rating.GOOD if entry else Rating.AGAIN
    return Rating.parse(entry)
