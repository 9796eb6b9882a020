import pytest

from anamnesis.application.gap_analysis import (
    GapRecommendation,
    PretestResponse,
    analyze_gaps,
    classify_percentage,
)


def _r(question, prereq, ok):
    return PretestResponse(question_id=question, prerequisite_id=prereq, is_correct=ok)


def test_all_correct_proceeds():
    result = analyze_gaps([_r("q1", "algebra", True), _r("q2", "limits", True)])
    assert result.percentage == 100
    assert result.recommendation is GapRecommendation.PROCEED
    assert result.gaps == []


def test_any_wrong_answer_marks_prerequisite_as_gap():
    result = analyze_gaps(
        [
            _r("q1", "algebra", True),
            _r("q2", "algebra", False),
            _r("q3", "limits", True),
        ]
    )
    assert result.total_prerequisites == 2
    assert result.correct == 1
    assert result.percentage == 50
    assert result.recommendation is GapRecommendation.REVIEW_SUGGESTED
    assert result.gaps == ["algebra"]


def test_mostly_wrong_requires_review():
    result = analyze_gaps(
        [_r("q1", "a", False), _r("q2", "b", False), _r("q3", "c", True)]
    )
    assert result.percentage == 33
    assert result.recommendation is GapRecommendation.REVIEW_REQUIRED
    assert result.gaps == ["a", "b"]


def test_no_responses_means_nothing_to_remediate():
    result = analyze_gaps([])
    assert result.total_prerequisites == 0
    assert result.percentage == 100
    assert result.recommendation is GapRecommendation.PROCEED


@pytest.mark.parametrize(
    "percentage, expected",
    [
        (100, GapRecommendation.PROCEED),
        (99, GapRecommendation.REVIEW_SUGGESTED),
        (50, GapRecommendation.REVIEW_SUGGESTED),
        (49, GapRecommendation.REVIEW_REQUIRED),
        (0, GapRecommendation.REVIEW_REQUIRED),
    ],
)
def test_classify_percentage(percentage, expected):
    assert classify_percentage(percentage) is expected
