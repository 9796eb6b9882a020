from datetime import timedelta

import pytest

from anamnesis.domain.errors import ConcurrentUpdateError
from anamnesis.domain.mastery.models import MasteryState
from anamnesis.domain.review.models import Rating, ReviewCard, ReviewLogEntry
from anamnesis.infrastructure.adapters.memory_store import InMemoryCardRepository


def _entry(now, concept_id="c1", rating=Rating.GOOD, offset_days=0):
    at = now + timedelta(days=offset_days)
    return ReviewLogEntry(
        user_id="u1",
        concept_id=concept_id,
        rating=rating,
        reviewed_at=at,
        state_before=MasteryState.EXPOSED,
        state_after=MasteryState.FRAGILE,
        stability_before=1.0,
        stability_after=2.0,
        difficulty_before=5.0,
        difficulty_after=5.0,
        elapsed_days=1.0,
        retrievability=0.9,
        interval_days=2,
        due_at=at + timedelta(days=2),
    )


def test_save_and_load(repo):
    saved = repo.save_card(ReviewCard("u1", "c1"))
    assert saved.version == 1
    assert repo.load_card("u1", "c1") == saved
    assert repo.load_card("u1", "other") is None


def test_loaded_cards_are_copies(repo):
    repo.save_card(ReviewCard("u1", "c1"))
    loaded = repo.load_card("u1", "c1")
    loaded.stability = 99.0
    assert repo.load_card("u1", "c1").stability == 1.0


def test_compare_and_swap(repo):
    first = repo.save_card(ReviewCard("u1", "c1"))
    second = repo.save_card(first)
    assert second.version == 2

    with pytest.raises(ConcurrentUpdateError) as exc_info:
        repo.save_card(first)
    assert exc_info.value.expected == 1
    assert exc_info.value.actual == 2


def test_creating_with_nonzero_version_is_rejected(repo):
    with pytest.raises(ConcurrentUpdateError):
        repo.save_card(ReviewCard("u1", "c1", version=3))


def test_list_cards_filters_user_and_project(repo):
    repo.save_card(ReviewCard("u1", "a", project_id="p1"))
    repo.save_card(ReviewCard("u1", "b", project_id="p2"))
    repo.save_card(ReviewCard("u2", "a", project_id="p1"))

    assert {c.concept_id for c in repo.list_cards("u1")} == {"a", "b"}
    assert [c.concept_id for c in repo.list_cards("u1", "p1")] == ["a"]
    assert repo.list_cards("u3") == []


def test_review_history_sorted_and_scoped(repo, now):
    repo.append_review(_entry(now, offset_days=2, rating=Rating.EASY))
    repo.append_review(_entry(now, offset_days=0, rating=Rating.AGAIN))
    repo.append_review(_entry(now, concept_id="c2"))

    history = repo.get_review_history("u1", "c1")
    assert [e.rating for e in history] == [Rating.AGAIN, Rating.EASY]
    assert repo.get_review_history("u1", "missing") == []


def test_record_review_saves_card_and_entry(repo, now):
    first = repo.save_card(ReviewCard("u1", "c1"))
    saved = repo.record_review(first, _entry(now))

    assert saved.version == 2
    assert len(repo.get_review_history("u1", "c1")) == 1


def test_record_review_rejected_write_appends_nothing(repo, now):
    first = repo.save_card(ReviewCard("u1", "c1"))
    repo.save_card(first)

    with pytest.raises(ConcurrentUpdateError):
        repo.record_review(first, _entry(now))
    assert repo.get_review_history("u1", "c1") == []
    assert repo.load_card("u1", "c1").version == 2
