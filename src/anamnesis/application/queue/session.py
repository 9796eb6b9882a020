"""
Review session state machine.

A session is an ephemeral plan for one sitting: the due set is snapshotted
at start and never grows, a cursor walks it, and reaching the end completes
the session. Nothing here is persisted; ratings are saved by the caller as
they happen, so abandoning a session only discards the plan.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from enum import Enum

from anamnesis.domain.constants import DEFAULT_MAX_SESSION_SIZE
from anamnesis.domain.errors import SessionStateError
from anamnesis.domain.review.models import ReviewCard

from .review_queue import select_due_cards

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ReviewSession:
    """
    Fixed, ordered plan of cards for one review sitting.

    Holds card keys rather than card objects, so callers always rate the
    freshest stored version of each card.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SESSION_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.status = SessionStatus.NOT_STARTED
        self.started_at: datetime | None = None
        self.project_id: str | None = None
        self._plan: tuple[tuple[str, str], ...] = ()
        self._cursor = 0

    def start(
        self,
        cards: Iterable[ReviewCard],
        now: datetime,
        project_id: str | None = None,
    ) -> "ReviewSession":
        """
        Snapshot the due cards and begin the session.

        A session with nothing due completes immediately.

        Raises:
            SessionStateError: If the session was already started.
        """
        if self.status is not SessionStatus.NOT_STARTED:
            raise SessionStateError(f"Cannot start a session that is {self.status.value}")

        due = select_due_cards(cards, now, project_id=project_id, limit=self.max_size)
        self._plan = tuple(card.key for card in due)
        self._cursor = 0
        self.started_at = now
        self.project_id = project_id
        self.status = SessionStatus.IN_PROGRESS if self._plan else SessionStatus.COMPLETED

        logger.info(
            "Review session started with %d card(s)%s",
            len(self._plan),
            f" for project {project_id}" if project_id else "",
        )
        return self

    @property
    def plan(self) -> tuple[tuple[str, str], ...]:
        """Ordered (user_id, concept_id) keys fixed at start."""
        return self._plan

    @property
    def total(self) -> int:
        return len(self._plan)

    @property
    def answered(self) -> int:
        return self._cursor

    @property
    def remaining(self) -> int:
        return self.total - self._cursor

    @property
    def position(self) -> int:
        """1-based index of the current card ("Question X of Y")."""
        if self.status is SessionStatus.IN_PROGRESS:
            return self._cursor + 1
        return self._cursor

    @property
    def current(self) -> tuple[str, str]:
        """
        Key of the card awaiting an answer.

        Raises:
            SessionStateError: If the session is not in progress.
        """
        self._require_in_progress("read the current card")
        return self._plan[self._cursor]

    def advance(self) -> tuple[str, str] | None:
        """
        Mark the current card answered and move the cursor.

        Returns:
            The next card key, or None once the session completes.
        """
        self._require_in_progress("advance")
        self._cursor += 1
        if self._cursor >= len(self._plan):
            self.status = SessionStatus.COMPLETED
            logger.info("Review session completed (%d card(s))", len(self._plan))
            return None
        return self._plan[self._cursor]

    def abandon(self) -> None:
        """
        Discard the plan. Already-rated cards keep their saved updates.
        """
        logger.info(
            "Review session abandoned after %d of %d card(s)", self._cursor, len(self._plan)
        )
        self._plan = ()
        self._cursor = 0
        self.started_at = None
        self.project_id = None
        self.status = SessionStatus.NOT_STARTED

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    def _require_in_progress(self, action: str) -> None:
        if self.status is not SessionStatus.IN_PROGRESS:
            raise SessionStateError(f"Cannot {action}: session is {self.status.value}")
