"""
In-memory card repository.

Process-local storage for tests and for hosts that persist cards
themselves. Thread-safe; enforces the same compare-and-swap contract as
durable adapters.
"""

import logging
import threading
from dataclasses import replace

from anamnesis.domain.errors import ConcurrentUpdateError
from anamnesis.domain.review.models import ReviewCard, ReviewLogEntry
from anamnesis.domain.review.ports import CardRepository

logger = logging.getLogger(__name__)


class InMemoryCardRepository(CardRepository):
    def __init__(self, cards: list[ReviewCard] | None = None):
        self._lock = threading.Lock()
        self._cards: dict[tuple[str, str], ReviewCard] = {}
        self._reviews: list[ReviewLogEntry] = []
        for card in cards or []:
            self._cards[card.key] = replace(card)

    def load_card(self, user_id: str, concept_id: str) -> ReviewCard | None:
        with self._lock:
            card = self._cards.get((user_id, concept_id))
            return replace(card) if card is not None else None

    def save_card(self, card: ReviewCard) -> ReviewCard:
        with self._lock:
            return self._save(card)

    def record_review(self, card: ReviewCard, entry: ReviewLogEntry) -> ReviewCard:
        with self._lock:
            saved = self._save(card)
            self._reviews.append(entry)
            return saved

    def _save(self, card: ReviewCard) -> ReviewCard:
        stored = self._cards.get(card.key)
        actual = stored.version if stored is not None else 0
        if card.version != actual:
            logger.warning(f"Rejected stale write for {card.user_id}/{card.concept_id}")
            raise ConcurrentUpdateError(card.user_id, card.concept_id, card.version, actual)

        saved = replace(card, version=actual + 1)
        self._cards[card.key] = saved
        return replace(saved)

    def list_cards(self, user_id: str, project_id: str | None = None) -> list[ReviewCard]:
        with self._lock:
            return [
                replace(card)
                for card in self._cards.values()
                if card.user_id == user_id and (project_id is None or card.project_id == project_id)
            ]

    def append_review(self, entry: ReviewLogEntry) -> None:
        with self._lock:
            self._reviews.append(entry)

    def get_review_history(self, user_id: str, concept_id: str) -> list[ReviewLogEntry]:
        with self._lock:
            entries = [
                e for e in self._reviews if e.user_id == user_id and e.concept_id == concept_id
            ]
        return sorted(entries, key=lambda e: e.reviewed_at)
