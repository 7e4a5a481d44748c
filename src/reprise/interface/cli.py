"""reprise CLI: register cards, inspect the due queue, drill and record reviews."""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer

from reprise.application.card_source import load_known_cards
from reprise.application.config import AppConfig, resolve_config
from reprise.application.scheduler import Scheduler
from reprise.application.study_service import StudyService, find_card
from reprise.domain.errors import RepriseError
from reprise.domain.models import Card, ReviewGrade
from reprise.domain.stats.models import CardLifecycle, CollectionStats, Histogram
from reprise.infrastructure.sqlite_store import SqliteCardStore

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="reprise: spaced repetition for flashcards kept in Markdown files.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage reprise configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

PathsArg = Annotated[
    list[Path],
    typer.Argument(help="Markdown files or directories holding cards."),
]
CardLimitOpt = Annotated[
    int | None, typer.Option(min=0, help="Maximum cards in the session. Defaults to all due.")
]
NewCardLimitOpt = Annotated[
    int | None, typer.Option(min=0, help="Maximum new (never reviewed) cards in the session.")
]


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
    db: Annotated[
        Path | None, typer.Option("--db", help="Card database path. Defaults to config.")
    ] = None,
):
    """Global settings for reprise."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["db_path"] = db


def _resolve(ctx: typer.Context, **overrides) -> AppConfig:
    obj = ctx.obj or {}
    config = resolve_config(
        {"db_path": obj.get("db_path"), "verbose": obj.get("verbose") or None, **overrides}
    )
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    return config


@contextmanager
def _session(
    ctx: typer.Context, paths: list[Path], **overrides
) -> Iterator[tuple[AppConfig, StudyService, dict[str, Card]]]:
    """Resolve config, load cards, open the store and register every known card."""
    try:
        config = _resolve(ctx, **overrides)
        known = load_known_cards(paths)
        with SqliteCardStore(config.db_path) as store:
            service = StudyService(store, Scheduler(config.scheduler))
            added = service.register(known)
            logger.debug(f"{len(known)} cards found, {added} newly registered")
            yield config, service, known
    except (RepriseError, FileNotFoundError) as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def check(ctx: typer.Context, paths: PathsArg):
    """[bold green]Register[/bold green] cards and print collection statistics."""
    with _session(ctx, paths) as (_config, service, known):
        typer.echo(f"Found {len(known)} unique cards and registered them to the DB")
        _print_stats(service.collection_stats(known))


@app.command()
def due(
    ctx: typer.Context,
    paths: PathsArg,
    card_limit: CardLimitOpt = None,
    new_card_limit: NewCardLimitOpt = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List the cards a drill session would show right now."""
    with _session(ctx, paths, card_limit=card_limit, new_card_limit=new_card_limit) as (
        config,
        service,
        known,
    ):
        cards = service.due_session(known, config.card_limit, config.new_card_limit)

        if json_output:
            typer.echo(
                json.dumps(
                    [
                        {
                            "id": card.identity,
                            "type": card.card_type,
                            "origin": str(card.origin),
                            "front": card.front,
                        }
                        for card in cards
                    ],
                    indent=2,
                )
            )
            return

        if not cards:
            typer.secho("No cards due.", fg="green")
            return
        typer.echo(f"Due cards: {len(cards)}")
        for card in cards:
            typer.echo(f"  {card.identity[:12]}  {_one_line(card.front)}  ({card.origin.name})")


@app.command()
def drill(
    ctx: typer.Context,
    paths: PathsArg,
    card_limit: CardLimitOpt = None,
    new_card_limit: NewCardLimitOpt = None,
):
    """Drill due cards one at a time, grading each answer."""
    with _session(ctx, paths, card_limit=card_limit, new_card_limit=new_card_limit) as (
        config,
        service,
        known,
    ):
        cards = service.due_session(known, config.card_limit, config.new_card_limit)
        if not cards:
            typer.secho("No cards due.", fg="green")
            return

        reviewed = 0
        for position, card in enumerate(cards, start=1):
            typer.secho(f"\n[{position}/{len(cards)}] {card.origin.name}", bold=True)
            typer.echo(card.front)
            typer.prompt("Press Enter to reveal", default="", show_default=False)
            if card.back:
                typer.echo(card.back)

            grade = _prompt_grade()
            if grade is None:
                break
            state = service.record_review(card.identity, grade)
            reviewed += 1
            typer.echo(f"Next review in {state.interval_days} day(s)")

        typer.secho(f"\nReviewed {reviewed} card(s).", fg="green")


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card identity or unambiguous prefix.")],
    grade: Annotated[str, typer.Argument(help="again, hard, good, easy (or 1-4).")],
    paths: PathsArg,
):
    """Record a single review without the interactive drill."""
    with _session(ctx, paths) as (_config, service, known):
        card = find_card(known, card_id)
        state = service.record_review(card.identity, ReviewGrade.parse(grade))
        typer.echo(
            f"{card.identity[:12]}: stability {state.stability:.2f}, "
            f"difficulty {state.difficulty:.2f}, due {state.due_date:%Y-%m-%d} "
            f"({state.interval_days}d)"
        )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _resolve(ctx)
    typer.echo(config.model_dump_json(indent=2))


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _prompt_grade() -> ReviewGrade | None:
    while True:
        answer = typer.prompt("Grade [1 again, 2 hard, 3 good, 4 easy, q quit]")
        if answer.strip().lower() in ("q", "quit"):
            return None
        try:
            return ReviewGrade.parse(answer)
        except RepriseError as e:
            typer.secho(str(e), fg="yellow")


def _one_line(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 1] + "…"


def _print_stats(stats: CollectionStats) -> None:
    typer.echo(
        f"Cards: total {stats.num_cards} • new {stats.new_cards} • "
        f"reviewed {stats.reviewed_cards} (rows in DB: {stats.total_rows})"
    )
    typer.echo(
        f"Lifecycle: young {stats.lifecycles.get(CardLifecycle.YOUNG, 0)} • "
        f"mature {stats.lifecycles.get(CardLifecycle.MATURE, 0)}"
    )
    typer.echo(f"Due now: {stats.due_now} ({stats.overdue} overdue)")

    if stats.upcoming_week:
        typer.echo(f"Due in next 7 days: {sum(stats.upcoming_week.values())}")
        for day, count in stats.upcoming_week.items():
            typer.echo(f"  {day.isoformat()}: {count}")
    typer.echo(f"Due in next 30 days: {stats.upcoming_month}")

    if stats.file_paths:
        typer.echo("Files:")
        for path, count in sorted(stats.file_paths.items(), key=lambda item: -item[1]):
            typer.echo(f"  {path}: {count}")

    _print_histogram("Difficulty", stats.difficulty_histogram)
    _print_histogram("Retrievability", stats.retrievability_histogram)


def _print_histogram(label: str, histogram: Histogram) -> None:
    if histogram.count == 0:
        return
    n = len(histogram.bins)
    buckets = "  ".join(
        f"{i / n:.1f}-{(i + 1) / n:.1f}: {count}" for i, count in enumerate(histogram.bins)
    )
    typer.echo(f"{label} (mean {histogram.mean():.2f}): {buckets}")
