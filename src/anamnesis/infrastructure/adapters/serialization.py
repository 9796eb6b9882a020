"""Plain-dict conversion for cards and review log entries."""

from datetime import datetime
from typing import Any

from anamnesis.domain.mastery.models import MasteryState
from anamnesis.domain.review.models import Rating, ReviewCard, ReviewLogEntry


def _dt_out(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_in(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def card_to_dict(card: ReviewCard) -> dict[str, Any]:
    return {
        "user_id": card.user_id,
        "concept_id": card.concept_id,
        "project_id": card.project_id,
        "stability": card.stability,
        "difficulty": card.difficulty,
        "reps": card.reps,
        "lapses": card.lapses,
        "last_review_at": _dt_out(card.last_review_at),
        "due_at": _dt_out(card.due_at),
        "mastery_state": card.mastery_state.value,
        "version": card.version,
    }


def card_from_dict(data: dict[str, Any]) -> ReviewCard:
    return ReviewCard(
        user_id=str(data["user_id"]),
        concept_id=str(data["concept_id"]),
        project_id=data.get("project_id"),
        stability=float(data["stability"]),
        difficulty=float(data["difficulty"]),
        reps=int(data.get("reps", 0)),
        lapses=int(data.get("lapses", 0)),
        last_review_at=_dt_in(data.get("last_review_at")),
        due_at=_dt_in(data.get("due_at")),
        mastery_state=MasteryState.parse(data.get("mastery_state", MasteryState.UNSEEN)),
        version=int(data.get("version", 0)),
    )


def entry_to_dict(entry: ReviewLogEntry) -> dict[str, Any]:
    return {
        "user_id": entry.user_id,
        "concept_id": entry.concept_id,
        "rating": int(entry.rating),
        "reviewed_at": _dt_out(entry.reviewed_at),
        "state_before": entry.state_before.value,
        "state_after": entry.state_after.value,
        "stability_before": entry.stability_before,
        "stability_after": entry.stability_after,
        "difficulty_before": entry.difficulty_before,
        "difficulty_after": entry.difficulty_after,
        "elapsed_days": entry.elapsed_days,
        "retrievability": entry.retrievability,
        "interval_days": entry.interval_days,
        "due_at": _dt_out(entry.due_at),
    }


def entry_from_dict(data: dict[str, Any]) -> ReviewLogEntry:
    return ReviewLogEntry(
        user_id=str(data["user_id"]),
        concept_id=str(data["concept_id"]),
        rating=Rating.parse(data["rating"]),
        reviewed_at=_dt_in(data["reviewed_at"]),
        state_before=MasteryState.parse(data["state_before"]),
        state_after=MasteryState.parse(data["state_after"]),
        stability_before=float(data["stability_before"]),
        stability_after=float(data["stability_after"]),
        difficulty_before=float(data["difficulty_before"]),
        difficulty_after=float(data["difficulty_after"]),
        elapsed_days=float(data["elapsed_days"]),
        retrievability=float(data["retrievability"]),
        interval_days=int(data["interval_days"]),
        due_at=_dt_in(data["due_at"]),
    )
