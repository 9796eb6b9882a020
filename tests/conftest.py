from datetime import datetime, timedelta, timezone

import pytest

from anamnesis.application.mastery.engine import MasteryEngine
from anamnesis.application.review_service import ReviewService
from anamnesis.application.scheduling.scheduler import Scheduler
from anamnesis.domain.mastery.models import MasteryState
from anamnesis.domain.review.models import ReviewCard
from anamnesis.infrastructure.adapters.memory_store import InMemoryCardRepository


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and the card store
    monkeypatch.setenv("HOME", str(home))
    for var in ("ANAMNESIS_STORE_PATH", "ANAMNESIS_VERBOSE"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scheduler():
    return Scheduler()


@pytest.fixture
def engine():
    return MasteryEngine()


@pytest.fixture
def make_card(now):
    """Factory for reviewed cards due ``overdue_days`` before ``now``."""

    def _make(
        concept_id="c1",
        *,
        user_id="u1",
        project_id=None,
        stability=5.0,
        difficulty=5.0,
        reps=3,
        lapses=0,
        overdue_days=0.0,
        state=MasteryState.DEVELOPING,
    ):
        due_at = now - timedelta(days=overdue_days)
        return ReviewCard(
            user_id=user_id,
            concept_id=concept_id,
            project_id=project_id,
            stability=stability,
            difficulty=difficulty,
            reps=reps,
            lapses=lapses,
            last_review_at=due_at - timedelta(days=stability),
            due_at=due_at,
            mastery_state=state,
        )

    return _make


@pytest.fixture
def repo():
    return InMemoryCardRepository()


@pytest.fixture
def service(repo):
    return ReviewService(repo)
