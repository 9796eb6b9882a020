import pytest

from anamnesis.application.queue.session import ReviewSession, SessionStatus
from anamnesis.domain.errors import SessionStateError


@pytest.fixture
def due_cards(make_card):
    return [make_card(f"c{i}", overdue_days=i + 1) for i in range(5)]


def test_session_lifecycle(due_cards, now):
    session = ReviewSession()
    assert session.status is SessionStatus.NOT_STARTED

    session.start(due_cards, now)
    assert session.status is SessionStatus.IN_PROGRESS
    assert session.total == 5
    assert session.position == 1
    # Most overdue first
    assert session.current == ("u1", "c4")

    keys = [session.current]
    while (key := session.advance()) is not None:
        keys.append(key)

    assert len(keys) == 5
    assert session.is_complete
    assert session.answered == 5
    assert session.remaining == 0


def test_plan_is_fixed_at_start(due_cards, make_card, now):
    session = ReviewSession().start(due_cards, now)
    plan = session.plan

    # A card falling due mid-session does not join the sitting
    due_cards.append(make_card("late", overdue_days=10))
    session.advance()

    assert session.plan == plan
    assert session.total == 5
    assert ("u1", "late") not in session.plan


def test_plan_capped_at_max_size(due_cards, now):
    session = ReviewSession(max_size=2).start(due_cards, now)
    assert session.plan == (("u1", "c4"), ("u1", "c3"))


def test_nothing_due_completes_immediately(make_card, now):
    session = ReviewSession().start([make_card(overdue_days=-2)], now)
    assert session.is_complete
    assert session.total == 0
    with pytest.raises(SessionStateError):
        session.current


def test_project_filter(make_card, now):
    cards = [
        make_card("a", project_id="p1", overdue_days=1),
        make_card("b", project_id="p2", overdue_days=1),
    ]
    session = ReviewSession().start(cards, now, project_id="p2")
    assert session.plan == (("u1", "b"),)
    assert session.project_id == "p2"


def test_cannot_start_twice(due_cards, now):
    session = ReviewSession().start(due_cards, now)
    with pytest.raises(SessionStateError, match="in_progress"):
        session.start(due_cards, now)


def test_cannot_advance_completed_session(due_cards, now):
    session = ReviewSession(max_size=1).start(due_cards, now)
    assert session.advance() is None
    with pytest.raises(SessionStateError):
        session.advance()


def test_abandon_resets(due_cards, now):
    session = ReviewSession().start(due_cards, now)
    session.advance()
    session.abandon()

    assert session.status is SessionStatus.NOT_STARTED
    assert session.plan == ()
    assert session.position == 0

    session.start(due_cards, now)
    assert session.total == 5


def test_position_counts_answered(due_cards, now):
    session = ReviewSession().start(due_cards, now)
    session.advance()
    session.advance()
    assert session.position == 3
    assert session.remaining == 3


def test_max_size_must_be_positive():
    with pytest.raises(ValueError):
        ReviewSession(max_size=0)
