"""
Review Service: application layer orchestrator.

Runs the review control flow over the repository port: load a card, rate it
with the Scheduler, recompute its mastery state, then save it with
compare-and-swap together with its review log entry.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from anamnesis.application.mastery.aggregation import (
    calculate_mastery_progress,
    summarize_cards,
)
from anamnesis.application.mastery.engine import MasteryEngine
from anamnesis.application.queue.review_queue import (
    ReviewQueueStats,
    calculate_queue_stats,
    select_due_cards,
)
from anamnesis.application.queue.session import ReviewSession
from anamnesis.application.scheduling.scheduler import Scheduler
from anamnesis.domain.constants import DEFAULT_MAX_SESSION_SIZE
from anamnesis.domain.errors import CardNotFoundError
from anamnesis.domain.mastery.models import MasteryDistribution
from anamnesis.domain.review.models import (
    IntervalPreview,
    Rating,
    ReviewCard,
    ReviewLogEntry,
)
from anamnesis.domain.review.ports import CardRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of submitting one rating."""

    card: ReviewCard
    entry: ReviewLogEntry

    @property
    def interval_days(self) -> int:
        return self.entry.interval_days


class ReviewService:
    """
    Application service for rating cards and querying progress.

    Follows Dependency Inversion: depends on the CardRepository abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        repository: CardRepository,
        scheduler: Scheduler | None = None,
        engine: MasteryEngine | None = None,
        max_session_size: int = DEFAULT_MAX_SESSION_SIZE,
    ):
        """
        Args:
            repository: The repository (port) holding cards and review logs.
            scheduler: Optional custom scheduler; uses defaults if not provided.
            engine: Optional custom mastery engine; uses defaults if not provided.
            max_session_size: Cap on cards planned per review session.
        """
        self._repo = repository
        self._scheduler = scheduler or Scheduler()
        self._engine = engine or MasteryEngine(
            min_difficulty=self._scheduler.config.min_difficulty,
            max_difficulty=self._scheduler.config.max_difficulty,
        )
        self._max_session_size = max_session_size

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def get_card(self, user_id: str, concept_id: str) -> ReviewCard:
        """
        Raises:
            CardNotFoundError: If the concept was never introduced to the user.
        """
        card = self._repo.load_card(user_id, concept_id)
        if card is None:
            raise CardNotFoundError(user_id, concept_id)
        return card

    def get_or_create_card(
        self, user_id: str, concept_id: str, project_id: str | None = None
    ) -> ReviewCard:
        """
        Load a card, introducing the concept on first exposure.
        """
        card = self._repo.load_card(user_id, concept_id)
        if card is not None:
            return card

        logger.info(f"Introducing concept {concept_id} for user {user_id}")
        return self._repo.save_card(self._scheduler.new_card(user_id, concept_id, project_id))

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def submit_review(
        self,
        user_id: str,
        concept_id: str,
        rating: Rating | int | str,
        now: datetime,
    ) -> ReviewOutcome:
        """
        Rate a card and persist the result.

        Raises:
            CardNotFoundError: If no card exists.
            InvalidRatingError / InvariantViolationError: From the Scheduler.
            ConcurrentUpdateError: If the card changed since it was loaded.
        """
        card = self.get_card(user_id, concept_id)
        result = self._scheduler.schedule(card, rating, now)

        history = [entry.rating for entry in self._repo.get_review_history(user_id, concept_id)]
        history.append(result.rating)
        state = self._engine.derive_state(result.card, history, current_state=card.mastery_state)

        entry = ReviewLogEntry(
            user_id=user_id,
            concept_id=concept_id,
            rating=result.rating,
            reviewed_at=now,
            state_before=card.mastery_state,
            state_after=state,
            stability_before=card.stability,
            stability_after=result.card.stability,
            difficulty_before=card.difficulty,
            difficulty_after=result.card.difficulty,
            elapsed_days=result.elapsed_days,
            retrievability=result.retrievability,
            interval_days=result.interval_days,
            due_at=result.card.due_at,
        )
        saved = self._repo.record_review(replace(result.card, mastery_state=state), entry)

        logger.info(
            f"Reviewed {concept_id} for {user_id}: {result.rating.label}, "
            f"{card.mastery_state.value} -> {state.value}, next in {result.interval_days}d"
        )
        return ReviewOutcome(card=saved, entry=entry)

    def preview(self, user_id: str, concept_id: str, now: datetime) -> IntervalPreview:
        return self._scheduler.preview_intervals(self.get_card(user_id, concept_id), now)

    # ------------------------------------------------------------------
    # Queue and sessions
    # ------------------------------------------------------------------

    def due_cards(
        self, user_id: str, now: datetime, project_id: str | None = None
    ) -> list[ReviewCard]:
        return select_due_cards(self._repo.list_cards(user_id, project_id), now)

    def queue_stats(
        self, user_id: str, now: datetime, project_id: str | None = None
    ) -> ReviewQueueStats:
        return calculate_queue_stats(self._repo.list_cards(user_id, project_id), now)

    def start_session(
        self, user_id: str, now: datetime, project_id: str | None = None
    ) -> ReviewSession:
        session = ReviewSession(max_size=self._max_session_size)
        return session.start(self._repo.list_cards(user_id, project_id), now, project_id)

    def answer(
        self, session: ReviewSession, rating: Rating | int | str, now: datetime
    ) -> ReviewOutcome:
        """
        Rate the session's current card, then advance the cursor.

        The cursor only moves once the rating has been saved.
        """
        user_id, concept_id = session.current
        outcome = self.submit_review(user_id, concept_id, rating, now)
        session.advance()
        return outcome

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------

    def distribution(self, user_id: str, project_id: str | None = None) -> MasteryDistribution:
        return summarize_cards(self._repo.list_cards(user_id, project_id), project_id)

    def progress(self, user_id: str, project_id: str | None = None) -> int:
        return calculate_mastery_progress(self.distribution(user_id, project_id))
