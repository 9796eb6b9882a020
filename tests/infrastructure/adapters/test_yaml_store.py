import threading
from dataclasses import replace
from datetime import timedelta

import pytest
import yaml

from anamnesis.application.review_service import ReviewService
from anamnesis.domain.errors import ConcurrentUpdateError, StoreError
from anamnesis.domain.mastery.models import MasteryState
from anamnesis.domain.review.models import Rating, ReviewCard
from anamnesis.infrastructure.adapters.yaml_store import YamlCardRepository


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "cards.yaml"


@pytest.fixture
def yaml_repo(store_path):
    return YamlCardRepository(store_path)


def test_missing_file_is_empty_store(yaml_repo, store_path):
    assert yaml_repo.load_card("u1", "c1") is None
    assert yaml_repo.list_cards("u1") == []
    assert yaml_repo.get_review_history("u1", "c1") == []
    assert not store_path.exists()


def test_save_creates_file(yaml_repo, store_path, now):
    card = ReviewCard(
        "u1",
        "c1",
        project_id="p1",
        stability=4.5,
        reps=2,
        last_review_at=now,
        due_at=now + timedelta(days=5),
        mastery_state=MasteryState.FRAGILE,
    )
    saved = yaml_repo.save_card(card)

    assert store_path.exists()
    assert saved.version == 1
    loaded = YamlCardRepository(store_path).load_card("u1", "c1")
    assert loaded == saved
    assert loaded.due_at == now + timedelta(days=5)
    assert loaded.mastery_state is MasteryState.FRAGILE


def test_file_layout(yaml_repo, store_path):
    yaml_repo.save_card(ReviewCard("u1", "c1"))
    doc = yaml.safe_load(store_path.read_text())
    assert set(doc) == {"cards", "reviews"}
    assert doc["cards"][0]["concept_id"] == "c1"
    assert doc["cards"][0]["mastery_state"] == "unseen"


def test_compare_and_swap(yaml_repo):
    first = yaml_repo.save_card(ReviewCard("u1", "c1"))
    yaml_repo.save_card(first)
    with pytest.raises(ConcurrentUpdateError):
        yaml_repo.save_card(first)


def test_two_handles_detect_conflict(store_path):
    a = YamlCardRepository(store_path)
    b = YamlCardRepository(store_path)
    a.save_card(ReviewCard("u1", "c1"))

    from_a = a.load_card("u1", "c1")
    from_b = b.load_card("u1", "c1")
    a.save_card(from_a)

    with pytest.raises(ConcurrentUpdateError):
        b.save_card(from_b)


def test_service_round_trip(yaml_repo, store_path, now):
    service = ReviewService(yaml_repo)
    service.get_or_create_card("u1", "c1", project_id="p1")
    service.submit_review("u1", "c1", Rating.GOOD, now)
    service.submit_review("u1", "c1", Rating.HARD, now + timedelta(days=2))

    reopened = YamlCardRepository(store_path)
    card = reopened.load_card("u1", "c1")
    history = reopened.get_review_history("u1", "c1")

    assert card.reps == 2
    assert card.version == 3
    assert [e.rating for e in history] == [Rating.GOOD, Rating.HARD]
    assert history[0].reviewed_at == now
    assert reopened.list_cards("u1", "p1")[0].concept_id == "c1"


def test_corrupt_file_raises_store_error(store_path, yaml_repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("cards: [unclosed\n")
    with pytest.raises(StoreError, match="Corrupt"):
        yaml_repo.list_cards("u1")


def test_non_mapping_file_raises_store_error(store_path, yaml_repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("- just\n- a list\n")
    with pytest.raises(StoreError, match="mapping"):
        yaml_repo.load_card("u1", "c1")


def test_empty_file_is_empty_store(store_path, yaml_repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("")
    assert yaml_repo.list_cards("u1") == []


@pytest.mark.parametrize(
    "content",
    [
        "cards: [{user_id: u1, concept_id: c1}]\n",
        "cards: [oops]\n",
        "cards: 5\n",
        "cards: [{user_id: u1, concept_id: c1, stability: 1.0, difficulty: 5.0, mastery_state: guru}]\n",
        "cards: [{user_id: u1, concept_id: c1, stability: lots, difficulty: 5.0}]\n",
        "cards: [{user_id: u1, concept_id: c1, stability: 1.0, difficulty: 5.0, due_at: [1]}]\n",
        "reviews: {u1: c1}\n",
    ],
)
def test_malformed_entries_raise_store_error(store_path, yaml_repo, content):
    store_path.parent.mkdir(parents=True)
    store_path.write_text(content)
    with pytest.raises(StoreError, match="Malformed entry"):
        yaml_repo.load_card("u1", "c1")


def test_malformed_review_entry_raises_store_error(store_path, yaml_repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("reviews: [{user_id: u1, concept_id: c1, rating: 9}]\n")
    with pytest.raises(StoreError, match="Malformed entry"):
        yaml_repo.get_review_history("u1", "c1")


def test_malformed_entry_blocks_save(store_path, yaml_repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("cards: [{user_id: u1, concept_id: c1}]\n")
    with pytest.raises(StoreError, match="Malformed entry"):
        yaml_repo.save_card(ReviewCard("u1", "c1"))
    assert store_path.read_text() == "cards: [{user_id: u1, concept_id: c1}]\n"


def test_interleaved_handles_keep_both_cards(store_path):
    a = YamlCardRepository(store_path)
    b = YamlCardRepository(store_path)
    errors = []

    def save_from_a():
        try:
            a.save_card(ReviewCard("u1", "c2"))
        except Exception as e:
            errors.append(e)

    # a blocks until b releases the store lock
    with b._locked():
        writer = threading.Thread(target=save_from_a)
        writer.start()
        writer.join(timeout=0.3)
        assert writer.is_alive()
        b.save_card(ReviewCard("u1", "c1"))

    writer.join(timeout=5)
    assert not writer.is_alive()
    assert errors == []
    reopened = YamlCardRepository(store_path)
    assert {c.concept_id for c in reopened.list_cards("u1")} == {"c1", "c2"}


def test_concurrent_writers_lose_no_updates(store_path):
    handles = [YamlCardRepository(store_path) for _ in range(4)]

    def save_many(repo, worker):
        for i in range(10):
            repo.save_card(ReviewCard("u1", f"w{worker}-{i}"))

    threads = [
        threading.Thread(target=save_many, args=(repo, n)) for n, repo in enumerate(handles)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(YamlCardRepository(store_path).list_cards("u1")) == 40


def test_append_review_keeps_concurrent_card_save(store_path, now):
    a = YamlCardRepository(store_path)
    b = YamlCardRepository(store_path)
    a.save_card(ReviewCard("u1", "c1"))
    service = ReviewService(b)
    outcome = service.submit_review("u1", "c1", Rating.GOOD, now)

    a.save_card(ReviewCard("u1", "c2"))
    b.append_review(outcome.entry)

    reopened = YamlCardRepository(store_path)
    assert {c.concept_id for c in reopened.list_cards("u1")} == {"c1", "c2"}
    assert len(reopened.get_review_history("u1", "c1")) == 2


def test_lock_timeout_raises_store_error(store_path):
    holder = YamlCardRepository(store_path)
    waiter = YamlCardRepository(store_path, lock_timeout=0.1)
    errors = []

    def save_from_waiter():
        try:
            waiter.save_card(ReviewCard("u1", "c1"))
        except StoreError as e:
            errors.append(e)

    with holder._locked():
        worker = threading.Thread(target=save_from_waiter)
        worker.start()
        worker.join(timeout=5)

    assert len(errors) == 1
    assert "Timed out" in str(errors[0])


def test_record_review_is_all_or_nothing(yaml_repo, now):
    service = ReviewService(yaml_repo)
    service.get_or_create_card("u1", "c1")
    outcome = service.submit_review("u1", "c1", Rating.GOOD, now)

    with pytest.raises(ConcurrentUpdateError):
        yaml_repo.record_review(replace(outcome.card, version=0), outcome.entry)

    assert len(yaml_repo.get_review_history("u1", "c1")) == 1
    assert yaml_repo.load_card("u1", "c1").version == 2
