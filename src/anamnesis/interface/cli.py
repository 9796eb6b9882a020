"""anamnesis CLI — review, preview, queue and progress commands over the card store."""

import json
import logging
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer

from anamnesis.application.config import AppConfig, resolve_config
from anamnesis.domain.errors import AnamnesisError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="anamnesis: spaced-repetition scheduling and mastery tracking.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

config_app = typer.Typer(help="Manage anamnesis configuration.")
app.add_typer(config_app, name="config")

T = TypeVar("T")

StoreOption = Annotated[
    Path | None, typer.Option("--store", help="Card store file. Defaults to config.")
]
ProjectOption = Annotated[str | None, typer.Option("--project", "-p", help="Filter by project.")]
AtOption = Annotated[
    str | None,
    typer.Option("--at", help="Reference time (ISO 8601). Defaults to now, UTC."),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON.")]


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for anamnesis."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(ctx: typer.Context, store: Path | None = None) -> AppConfig:
    """Resolve config with CLI overrides and apply its log level."""
    verbose = (ctx.obj or {}).get("verbose") or None
    config = resolve_config({"store_path": store, "verbose": verbose})

    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif config.verbose == 1:
        logging.getLogger().setLevel(logging.INFO)

    logger.debug(f"Using card store {config.store_path}")
    return config


def _service(ctx: typer.Context, store: Path | None = None):
    from anamnesis.application.factory import get_review_service

    return get_review_service(_config(ctx, store))


def _parse_at(at: str | None) -> datetime:
    if at is None:
        return datetime.now(timezone.utc)
    try:
        moment = datetime.fromisoformat(at)
    except ValueError:
        typer.secho(f"Invalid --at timestamp: {at}", fg="red", err=True)
        raise typer.Exit(2) from None
    # Naive timestamps are taken as UTC so they compare with stored ones.
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _run(action: Callable[[], T]) -> T:
    """Run an engine call, turning engine errors into a red message and exit 1."""
    try:
        return action()
    except AnamnesisError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e


def _dump(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


# ---------------------------------------------------------------------------
# Card commands
# ---------------------------------------------------------------------------


@app.command()
def introduce(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    concept: Annotated[str, typer.Argument(help="Concept id.")],
    project: ProjectOption = None,
    store: StoreOption = None,
):
    """Create the review card for a concept on first exposure."""
    service = _service(ctx, store)
    created = _run(lambda: service.get_or_create_card(user, concept, project))
    typer.secho(f"Card {user}/{concept} is {created.mastery_state.value}.", fg="green")


@app.command()
def card(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    concept: Annotated[str, typer.Argument(help="Concept id.")],
    store: StoreOption = None,
    at: AtOption = None,
    json_output: JsonOption = False,
):
    """Show a card's scheduler parameters and current recall probability."""
    from anamnesis.application.factory import get_review_service, get_scheduler
    from anamnesis.infrastructure.adapters.serialization import card_to_dict

    config = _config(ctx, store)
    service = get_review_service(config)
    now = _parse_at(at)
    found = _run(lambda: service.get_card(user, concept))
    recall = _run(lambda: get_scheduler(config).current_retrievability(found, now))

    if json_output:
        _dump({**card_to_dict(found), "retrievability": recall})
        return

    meta = found.mastery_state.metadata
    typer.echo(f"{user}/{concept}  [{meta.label}]")
    typer.echo(f"  stability:      {found.stability:.2f} d")
    typer.echo(f"  difficulty:     {found.difficulty:.2f}")
    typer.echo(f"  reps / lapses:  {found.reps} / {found.lapses}")
    typer.echo(f"  due:            {found.due_at.isoformat() if found.due_at else 'new'}")
    typer.echo(f"  retrievability: {recall:.1%}")


@app.command()
def rate(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    concept: Annotated[str, typer.Argument(help="Concept id.")],
    rating: Annotated[str, typer.Argument(help="again|hard|good|easy or 1-4.")],
    store: StoreOption = None,
    at: AtOption = None,
    json_output: JsonOption = False,
):
    """Record a review rating and schedule the next review."""
    from anamnesis.infrastructure.adapters.serialization import entry_to_dict

    service = _service(ctx, store)
    now = _parse_at(at)
    outcome = _run(lambda: service.submit_review(user, concept, rating, now))

    if json_output:
        _dump(entry_to_dict(outcome.entry))
        return

    entry = outcome.entry
    typer.echo(
        f"{entry.rating.label}: {entry.state_before.value} -> {entry.state_after.value}, "
        f"stability {entry.stability_before:.2f} -> {entry.stability_after:.2f} d"
    )
    typer.secho(
        f"Next review in {entry.interval_days} day(s) ({entry.due_at.isoformat()}).", fg="green"
    )


@app.command()
def preview(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    concept: Annotated[str, typer.Argument(help="Concept id.")],
    store: StoreOption = None,
    at: AtOption = None,
    json_output: JsonOption = False,
):
    """Show the interval each rating would produce, without saving."""
    service = _service(ctx, store)
    now = _parse_at(at)
    result = _run(lambda: service.preview(user, concept, now))

    if json_output:
        _dump(result.as_dict())
        return

    for name, days in result.as_dict().items():
        typer.echo(f"  {name.capitalize():<6} {days} d")
    if not result.is_monotonic:
        typer.secho("Note: intervals are not in rating order for this card.", fg="yellow")


# ---------------------------------------------------------------------------
# Queue and progress
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    project: ProjectOption = None,
    store: StoreOption = None,
    at: AtOption = None,
    json_output: JsonOption = False,
):
    """List due cards in review order (most overdue first)."""
    from anamnesis.application.queue.review_queue import days_overdue

    service = _service(ctx, store)
    now = _parse_at(at)
    cards = _run(lambda: service.due_cards(user, now, project))

    if json_output:
        _dump(
            [
                {
                    "concept_id": c.concept_id,
                    "project_id": c.project_id,
                    "days_overdue": days_overdue(c, now),
                    "stability": c.stability,
                    "mastery_state": c.mastery_state.value,
                }
                for c in cards
            ]
        )
        return

    if not cards:
        typer.secho("No cards due.", fg="green")
        return

    typer.echo(f"Due cards: {len(cards)}")
    for i, c in enumerate(cards, start=1):
        typer.echo(
            f"  [{i}] {c.concept_id}  overdue {days_overdue(c, now)}d"
            f"  S={c.stability:.2f}  {c.mastery_state.value}"
        )


@app.command()
def stats(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    project: ProjectOption = None,
    store: StoreOption = None,
    at: AtOption = None,
    json_output: JsonOption = False,
):
    """Queue statistics and estimated upcoming review load."""
    from anamnesis.application.factory import get_card_repository
    from anamnesis.application.queue.review_queue import (
        calculate_queue_stats,
        estimate_daily_load,
    )

    config = _config(ctx, store)
    repo = get_card_repository(config)
    now = _parse_at(at)
    cards = _run(lambda: repo.list_cards(user, project))
    queue_stats = calculate_queue_stats(cards, now)
    load = estimate_daily_load(cards, now, config.queue.load_days_ahead)

    data = {
        "total_due": queue_stats.total_due,
        "overdue_count": queue_stats.overdue_count,
        "avg_overdue_days": round(queue_stats.avg_overdue_days, 2),
        "by_state": {s.value: n for s, n in queue_stats.by_state.items() if n},
        "by_project": queue_stats.by_project,
        "load": {
            "today": load.today,
            "tomorrow": load.tomorrow,
            "this_week": load.this_week,
            "average_per_day": round(load.average_per_day, 2),
        },
    }
    if json_output:
        _dump(data)
        return

    typer.echo(
        f"Due: {data['total_due']}  Overdue: {data['overdue_count']}"
        f"  Avg overdue: {data['avg_overdue_days']} d"
    )
    typer.echo(
        f"Load: today {load.today}, tomorrow {load.tomorrow}, "
        f"next {config.queue.load_days_ahead} days {load.this_week}"
    )


@app.command()
def progress(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    project: ProjectOption = None,
    store: StoreOption = None,
    json_output: JsonOption = False,
):
    """Mastery distribution, weighted progress, and weakest state."""
    from anamnesis.application.mastery.aggregation import (
        calculate_mastery_progress,
        get_lowest_state,
    )

    service = _service(ctx, store)
    distribution = _run(lambda: service.distribution(user, project))
    percent = calculate_mastery_progress(distribution)
    lowest = get_lowest_state(distribution)

    if json_output:
        _dump(
            {
                "total": distribution.total,
                "progress": percent,
                "lowest_state": lowest.value,
                "distribution": distribution.as_dict(),
            }
        )
        return

    typer.echo(f"Concepts: {distribution.total}  Progress: {percent}%")
    for state, count in distribution.counts.items():
        if count:
            typer.echo(f"  {state.metadata.label:<13} {count}")
    if lowest.rank is None:
        typer.secho(f"Weakest: {lowest.metadata.label}", fg="red")
    else:
        typer.echo(f"Weakest: {lowest.metadata.label}")


@app.command()
def session(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner id.")],
    project: ProjectOption = None,
    store: StoreOption = None,
):
    """Review every due card in one sitting, prompting for each rating."""
    service = _service(ctx, store)
    sitting = _run(lambda: service.start_session(user, datetime.now(timezone.utc), project))

    if sitting.is_complete:
        typer.secho("Nothing to review.", fg="green")
        return

    while not sitting.is_complete:
        _, concept_id = sitting.current
        typer.echo(f"[{sitting.position}/{sitting.total}] {concept_id}")
        answer = typer.prompt("Rating (again/hard/good/easy)")
        if answer.strip().lower() in ("q", "quit"):
            sitting.abandon()
            typer.secho("Session abandoned.", fg="yellow")
            return
        try:
            outcome = service.answer(sitting, answer, datetime.now(timezone.utc))
        except AnamnesisError as e:
            # Invalid ratings leave the cursor on the same card.
            typer.secho(f"Error: {e}", fg="red", err=True)
            continue
        typer.echo(f"  next in {outcome.interval_days} d ({outcome.card.mastery_state.value})")

    typer.secho(f"Session complete: {sitting.total} card(s) reviewed.", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    _dump(config.model_dump(mode="json"))
