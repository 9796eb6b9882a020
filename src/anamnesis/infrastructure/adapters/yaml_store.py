"""
YAML Card Repository: infrastructure adapter for a single YAML file.

Implements CardRepository by reading and rewriting one document:

    cards:
      - {user_id: ..., concept_id: ..., stability: ..., version: 3, ...}
    reviews:
      - {user_id: ..., concept_id: ..., rating: 3, ...}

Writes go through a temp file and an atomic rename, so a crash never
leaves a half-written store. Every read-check-write cycle runs under an
inter-process lock on a sibling ``.lock`` file, so handles in other
threads or processes cannot interleave their writes.
"""

import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

import yaml
from filelock import FileLock, Timeout

from anamnesis.domain.errors import ConcurrentUpdateError, StoreError
from anamnesis.domain.review.models import ReviewCard, ReviewLogEntry
from anamnesis.domain.review.ports import CardRepository

from .serialization import card_from_dict, card_to_dict, entry_from_dict, entry_to_dict

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCK_TIMEOUT_SECONDS = 10.0


class YamlCardRepository(CardRepository):
    """
    Stores cards and review logs in a YAML file.

    A missing file is treated as an empty store and created on first write.
    """

    def __init__(self, path: Path, lock_timeout: float = LOCK_TIMEOUT_SECONDS):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._lock = FileLock(str(self.lock_path), timeout=lock_timeout)

    # ------------------------------------------------------------------
    # CardRepository
    # ------------------------------------------------------------------

    def load_card(self, user_id: str, concept_id: str) -> ReviewCard | None:
        for raw in self._read()["cards"]:
            if raw.get("user_id") == user_id and raw.get("concept_id") == concept_id:
                return self._parse(card_from_dict, raw)
        return None

    def save_card(self, card: ReviewCard) -> ReviewCard:
        with self._locked():
            doc = self._read()
            saved = self._put_card(doc, card)
            self._write(doc)
            return saved

    def record_review(self, card: ReviewCard, entry: ReviewLogEntry) -> ReviewCard:
        with self._locked():
            doc = self._read()
            saved = self._put_card(doc, card)
            doc["reviews"].append(entry_to_dict(entry))
            self._write(doc)
            return saved

    def list_cards(self, user_id: str, project_id: str | None = None) -> list[ReviewCard]:
        return [
            self._parse(card_from_dict, raw)
            for raw in self._read()["cards"]
            if raw.get("user_id") == user_id
            and (project_id is None or raw.get("project_id") == project_id)
        ]

    def append_review(self, entry: ReviewLogEntry) -> None:
        with self._locked():
            doc = self._read()
            doc["reviews"].append(entry_to_dict(entry))
            self._write(doc)

    def get_review_history(self, user_id: str, concept_id: str) -> list[ReviewLogEntry]:
        entries = [
            self._parse(entry_from_dict, raw)
            for raw in self._read()["reviews"]
            if raw.get("user_id") == user_id and raw.get("concept_id") == concept_id
        ]
        return sorted(entries, key=lambda e: e.reviewed_at)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _put_card(self, doc: dict[str, list[dict[str, Any]]], card: ReviewCard) -> ReviewCard:
        """Compare-and-swap ``card`` into ``doc`` in place; caller holds the lock."""
        cards = doc["cards"]
        index = next(
            (
                i
                for i, raw in enumerate(cards)
                if raw.get("user_id") == card.user_id and raw.get("concept_id") == card.concept_id
            ),
            None,
        )
        actual = self._parse(card_from_dict, cards[index]).version if index is not None else 0
        if card.version != actual:
            logger.warning(f"Rejected stale write for {card.user_id}/{card.concept_id}")
            raise ConcurrentUpdateError(card.user_id, card.concept_id, card.version, actual)

        saved = card_from_dict({**card_to_dict(card), "version": actual + 1})
        if index is None:
            cards.append(card_to_dict(saved))
        else:
            cards[index] = card_to_dict(saved)
        return saved

    def _parse(self, parser: Callable[[dict[str, Any]], T], raw: dict[str, Any]) -> T:
        try:
            return parser(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StoreError(f"Malformed entry in {self.path}: {e!r}") from e

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire()
        except Timeout as e:
            raise StoreError(f"Timed out waiting for lock on card store {self.path}") from e
        except OSError as e:
            raise StoreError(f"Cannot lock card store {self.path}: {e}") from e
        try:
            yield
        finally:
            self._lock.release()

    def _read(self) -> dict[str, list[dict[str, Any]]]:
        if not self.path.exists():
            return {"cards": [], "reviews": []}

        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise StoreError(f"Corrupt card store {self.path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Cannot read card store {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError(f"Card store {self.path} must contain a mapping at the top level")

        return {key: self._section(data, key) for key in ("cards", "reviews")}

    def _section(self, data: dict[str, Any], key: str) -> list[dict[str, Any]]:
        raw = data.get(key) or []
        if not isinstance(raw, list):
            raise StoreError(
                f"Malformed entry in {self.path}: '{key}' must be a list, got {type(raw).__name__}"
            )
        for item in raw:
            if not isinstance(item, dict):
                raise StoreError(
                    f"Malformed entry in {self.path}: '{key}' items must be mappings, got {item!r}"
                )
        return list(raw)

    def _write(self, doc: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(doc, f, sort_keys=False, allow_unicode=True)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise StoreError(f"Cannot write card store {self.path}: {e}") from e

