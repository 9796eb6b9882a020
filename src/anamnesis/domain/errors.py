"""
Exception hierarchy for the anamnesis engine.

Every error the core raises derives from AnamnesisError so callers can catch
the whole family at a boundary (the CLI does this).
"""


class AnamnesisError(Exception):
    """Base class for all engine errors."""


class InvariantViolationError(AnamnesisError, ValueError):
    """
    A ReviewCard violates a structural invariant.

    Raised at the scheduler boundary instead of clamping, so corrupted
    upstream data surfaces where it enters the engine.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidRatingError(AnamnesisError, ValueError):
    """A rating outside Again/Hard/Good/Easy was supplied."""

    def __init__(self, rating: object):
        super().__init__(f"Invalid rating: {rating!r} (expected 1-4 or Again/Hard/Good/Easy)")
        self.rating = rating


class SessionStateError(AnamnesisError):
    """An operation was attempted in the wrong review-session state."""


class CardNotFoundError(AnamnesisError, KeyError):
    """No card stored for the requested (user, concept) pair."""

    def __init__(self, user_id: str, concept_id: str):
        super().__init__(f"No review card for user={user_id} concept={concept_id}")
        self.user_id = user_id
        self.concept_id = concept_id

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0])


class ConcurrentUpdateError(AnamnesisError):
    """A card was saved from a stale snapshot (row version mismatch)."""

    def __init__(self, user_id: str, concept_id: str, expected: int, actual: int):
        super().__init__(
            f"Card user={user_id} concept={concept_id} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.expected = expected
        self.actual = actual


class StoreError(AnamnesisError):
    """The backing store could not be read or written."""
