"""
Domain models for mastery tracking.

These are pure data structures with no I/O or external dependencies.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum


class MasteryState(str, Enum):
    """
    Discrete summary of a learner's grasp of a concept.

    The ladder states are ordered by increasing competence. MISCONCEIVED is a
    sentinel outside that order and has no rank.
    """

    UNSEEN = "unseen"
    EXPOSED = "exposed"
    FRAGILE = "fragile"
    DEVELOPING = "developing"
    SOLID = "solid"
    MASTERED = "mastered"
    MISCONCEIVED = "misconceived"

    @property
    def rank(self) -> int | None:
        """Position on the competence ladder, None for MISCONCEIVED."""
        if self is MasteryState.MISCONCEIVED:
            return None
        return LADDER.index(self)

    @property
    def metadata(self) -> "StateMetadata":
        return STATE_METADATA[self]

    @classmethod
    def parse(cls, value: "MasteryState | str") -> "MasteryState":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown mastery state: {value!r}") from None


LADDER: tuple[MasteryState, ...] = (
    MasteryState.UNSEEN,
    MasteryState.EXPOSED,
    MasteryState.FRAGILE,
    MasteryState.DEVELOPING,
    MasteryState.SOLID,
    MasteryState.MASTERED,
)


@dataclass(frozen=True)
class StateMetadata:
    """
    Display metadata for a mastery state.

    Attributes:
        label: Human-readable label.
        color: Theme color token, passed through to the presentation layer.
        description: Short description.
        progress_percent: Aggregation weight in [0, 100].
    """

    label: str
    color: str
    description: str
    progress_percent: int


STATE_METADATA: dict[MasteryState, StateMetadata] = {
    MasteryState.UNSEEN: StateMetadata("Unseen", "#9CA3AF", "Not yet encountered", 0),
    MasteryState.EXPOSED: StateMetadata("Exposed", "#3B82F6", "First exposure, needs review", 10),
    MasteryState.FRAGILE: StateMetadata("Fragile", "#F97316", "Early learning, review soon", 30),
    MasteryState.DEVELOPING: StateMetadata("Developing", "#EAB308", "Building strength", 50),
    MasteryState.SOLID: StateMetadata("Solid", "#84CC16", "Well learned, approaching mastery", 75),
    MasteryState.MASTERED: StateMetadata("Mastered", "#10B981", "Fully mastered", 100),
    MasteryState.MISCONCEIVED: StateMetadata("Misconceived", "#EF4444", "Needs correction", 20),
}


@dataclass(frozen=True)
class MasteryDistribution:
    """
    Count of concepts per mastery state within a scope.

    Report-only: always recomputed from card states, never persisted.
    Every state has an entry; missing states count as zero.
    """

    counts: Mapping[MasteryState, int] = field(default_factory=dict)

    def __post_init__(self):
        normalized = {state: 0 for state in MasteryState}
        for key, count in self.counts.items():
            if count < 0:
                raise ValueError(f"Negative count for {key}: {count}")
            normalized[MasteryState.parse(key)] += int(count)
        object.__setattr__(self, "counts", normalized)

    @classmethod
    def from_mapping(cls, mapping: Mapping[MasteryState | str, int]) -> "MasteryDistribution":
        return cls(counts=dict(mapping))

    @classmethod
    def from_states(cls, states: Iterable[MasteryState | str]) -> "MasteryDistribution":
        counts: dict[MasteryState, int] = {}
        for state in states:
            parsed = MasteryState.parse(state)
            counts[parsed] = counts.get(parsed, 0) + 1
        return cls(counts=counts)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def __getitem__(self, state: MasteryState | str) -> int:
        return self.counts[MasteryState.parse(state)]

    def as_dict(self) -> dict[str, int]:
        return {state.value: count for state, count in self.counts.items()}
