"""
Ports (interfaces) for review-card persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import ReviewCard, ReviewLogEntry


class CardRepository(ABC):
    """
    Port for loading and saving review cards.

    Implementations:
        - InMemoryCardRepository: Process-local dict, used by tests and embedding hosts.
        - YamlCardRepository: Single YAML file, used by the CLI.
    """

    @abstractmethod
    def load_card(self, user_id: str, concept_id: str) -> ReviewCard | None:
        """
        Fetch the card for a (user, concept) pair.

        Returns:
            The stored card, or None if the concept was never introduced.
        """
        pass

    @abstractmethod
    def save_card(self, card: ReviewCard) -> ReviewCard:
        """
        Persist a card using compare-and-swap on ``card.version``.

        The version on the incoming card must equal the stored version (0 for
        a card not yet stored).

        Returns:
            The stored card with its version incremented.

        Raises:
            ConcurrentUpdateError: If the stored version has moved on.
        """
        pass

    @abstractmethod
    def list_cards(self, user_id: str, project_id: str | None = None) -> list[ReviewCard]:
        """
        List a user's cards, optionally restricted to one project.
        """
        pass

    @abstractmethod
    def append_review(self, entry: ReviewLogEntry) -> None:
        """
        Append an entry to the review log.
        """
        pass

    @abstractmethod
    def record_review(self, card: ReviewCard, entry: ReviewLogEntry) -> ReviewCard:
        """
        Save a reviewed card and append its log entry as one unit.

        Either both are persisted or neither is, so the stored history
        always matches the card's review count.

        Returns:
            The stored card with its version incremented.

        Raises:
            ConcurrentUpdateError: If the stored version has moved on.
        """
        pass

    @abstractmethod
    def get_review_history(self, user_id: str, concept_id: str) -> list[ReviewLogEntry]:
        """
        Fetch the review log for one card, sorted by reviewed_at ascending.
        """
        pass
