"""
Domain models for review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

from anamnesis.domain.constants import SEED_DIFFICULTY, SEED_STABILITY
from anamnesis.domain.errors import InvalidRatingError
from anamnesis.domain.mastery.models import MasteryState


class Rating(IntEnum):
    """Button pressed after a review, ordered by recall quality."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def is_lapse(self) -> bool:
        return self is Rating.AGAIN

    @classmethod
    def parse(cls, value: "Rating | int | str") -> "Rating":
        """
        Coerce an enum member, its integer value, or its name.

        Raises:
            InvalidRatingError: For anything outside the four ratings.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidRatingError(value)
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidRatingError(value) from None
        if isinstance(value, str):
            text = value.strip()
            if text.isdecimal():
                return cls.parse(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                raise InvalidRatingError(value) from None
        raise InvalidRatingError(value)


@dataclass
class ReviewCard:
    """
    Scheduler state for one (learner, concept) pair.

    Attributes:
        stability: Days until recall probability drops to 90%.
        difficulty: Resistance to stabilizing, on the configured 1-10 scale.
        reps: Reviews performed.
        lapses: Reviews rated Again.
        last_review_at: Time of the most recent rating (None if unreviewed).
        due_at: When the next review becomes eligible (None if unreviewed).
        mastery_state: Current mastery state, input to hysteresis rules.
        version: Row version for compare-and-swap persistence.
    """

    user_id: str
    concept_id: str
    project_id: str | None = None
    stability: float = SEED_STABILITY
    difficulty: float = SEED_DIFFICULTY
    reps: int = 0
    lapses: int = 0
    last_review_at: datetime | None = None
    due_at: datetime | None = None
    mastery_state: MasteryState = MasteryState.UNSEEN
    version: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.concept_id)

    @property
    def is_new(self) -> bool:
        return self.reps == 0


@dataclass(frozen=True)
class SchedulingResult:
    """Outcome of scheduling one rating against a card."""

    card: ReviewCard
    rating: Rating
    interval_days: int
    elapsed_days: float
    retrievability: float  # Predicted recall at the moment of review


@dataclass(frozen=True)
class IntervalPreview:
    """Interval in days each rating would produce."""

    again: int
    hard: int
    good: int
    easy: int

    @property
    def is_monotonic(self) -> bool:
        return self.again <= self.hard <= self.good <= self.easy

    def for_rating(self, rating: Rating) -> int:
        return getattr(self, rating.name.lower())

    def as_dict(self) -> dict[str, int]:
        return {"again": self.again, "hard": self.hard, "good": self.good, "easy": self.easy}


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    A single review log entry.

    Attributes:
        rating: Button pressed.
        state_before: Mastery state prior to the review.
        state_after: Mastery state derived after the review.
        elapsed_days: Days since the previous review (0 for the first).
        retrievability: Predicted recall at review time.
        interval_days: Interval assigned after this review.
    """

    user_id: str
    concept_id: str
    rating: Rating
    reviewed_at: datetime
    state_before: MasteryState
    state_after: MasteryState
    stability_before: float
    stability_after: float
    difficulty_before: float
    difficulty_after: float
    elapsed_days: float
    retrievability: float
    interval_days: int
    due_at: datetime
