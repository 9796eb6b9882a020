"""
Prerequisite gap analysis.

A threshold classifier over pretest answers, independent of the scheduling
core. It shares a UI surface with the review engine but neither consumes
nor produces mastery states.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from anamnesis.domain.constants import GAP_REVIEW_SUGGESTED_PERCENT


class GapRecommendation(str, Enum):
    PROCEED = "proceed"
    REVIEW_SUGGESTED = "review_suggested"
    REVIEW_REQUIRED = "review_required"


@dataclass(frozen=True)
class PretestResponse:
    question_id: str
    prerequisite_id: str
    is_correct: bool


@dataclass
class GapAnalysisResult:
    """
    Attributes:
        total_prerequisites: Distinct prerequisites tested.
        correct: Prerequisites whose every question was answered correctly.
        percentage: Share of known prerequisites, 0-100.
        gaps: Prerequisite ids with at least one wrong answer, in first-seen order.
    """

    total_prerequisites: int
    correct: int
    percentage: int
    recommendation: GapRecommendation
    gaps: list[str] = field(default_factory=list)


def classify_percentage(
    percentage: int, review_suggested_at: int = GAP_REVIEW_SUGGESTED_PERCENT
) -> GapRecommendation:
    if percentage >= 100:
        return GapRecommendation.PROCEED
    if percentage >= review_suggested_at:
        return GapRecommendation.REVIEW_SUGGESTED
    return GapRecommendation.REVIEW_REQUIRED


def analyze_gaps(responses: Iterable[PretestResponse]) -> GapAnalysisResult:
    """
    Score pretest answers per prerequisite and recommend next steps.

    No responses means nothing to remediate: 100% and PROCEED.
    """
    by_prereq: dict[str, bool] = {}
    for response in responses:
        known = by_prereq.get(response.prerequisite_id, True)
        by_prereq[response.prerequisite_id] = known and response.is_correct

    total = len(by_prereq)
    if total == 0:
        return GapAnalysisResult(
            total_prerequisites=0,
            correct=0,
            percentage=100,
            recommendation=GapRecommendation.PROCEED,
        )

    correct = sum(1 for known in by_prereq.values() if known)
    percentage = math.floor(100 * correct / total + 0.5)

    return GapAnalysisResult(
        total_prerequisites=total,
        correct=correct,
        percentage=percentage,
        recommendation=classify_percentage(percentage),
        gaps=[prereq for prereq, known in by_prereq.items() if not known],
    )
