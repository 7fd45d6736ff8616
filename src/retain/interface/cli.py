"""Retain CLI: root commands and subgroup registration."""

import asyncio
import json
import logging
import random
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer

from retain.application.config import resolve_config
from retain.application.graph_resolver import build_unlock_graph, find_orphan_info_cards
from retain.application.scheduler import reset_deck
from retain.application.stats import StatsCalculator, due_count, due_forecast, simulate_workload
from retain.consts import VERSION
from retain.domain.models import SessionMode
from retain.domain.session.models import SessionKey
from retain.infrastructure.adapters.snapshot_store import JsonSnapshotStore
from retain.infrastructure.deck_file import save_deck
from retain.interface._common import _load, _resolve_with_overrides, _today

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="retain: spaced-repetition scheduling and study sessions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

from retain.interface.study_commands import study  # noqa: E402

app.command("study")(study)

config_app = typer.Typer(help="Manage retain configuration.")
app.add_typer(config_app, name="config")

session_app = typer.Typer(help="Inspect or discard saved study sessions.", no_args_is_help=True)
app.add_typer(session_app, name="session")

DeckArg = Annotated[Path, typer.Argument(help="Path to a YAML deck file.", exists=True)]
TodayOpt = Annotated[
    str | None, typer.Option("--today", help="Study date (YYYY-MM-DD). Defaults to the system date.")
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
    ] = 1,
):
    """Global settings for retain."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def version():
    """Print the retain version."""
    typer.echo(f"retain {VERSION}")


@app.command()
def due(
    deck_path: DeckArg,
    today: TodayOpt = None,
):
    """Count items due today or earlier."""
    day = _today(today)
    deck = _load(deck_path, day)
    typer.echo(f"{deck.name}: {due_count(deck, day)} due of {len(deck.items)}")


@app.command()
def mastery(
    ctx: typer.Context,
    deck_path: DeckArg,
    today: TodayOpt = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show deck mastery (decayed to today) and related counts."""
    config = _resolve_with_overrides(verbose=ctx.obj.get("verbose_bonus", 1))
    day = _today(today)
    deck = _load(deck_path, day)
    stats = StatsCalculator(config.scheduler_params()).deck_stats(deck, day)

    if json_output:
        typer.echo(json.dumps(asdict(stats), indent=2))
        return

    typer.echo(f"Deck: {stats.deck_name}")
    typer.echo(f"  Mastery:   {stats.mastery:.0%}")
    typer.echo(f"  Items:     {stats.total} ({stats.new} new, {stats.suspended} suspended)")
    typer.echo(f"  Due:       {stats.due}")
    if stats.leeches:
        typer.secho(f"  Leeches:   {stats.leeches}", fg="yellow")
    if stats.average_ease is not None:
        typer.echo(f"  Avg ease:  {stats.average_ease:.2f}")


@app.command()
def check(
    deck_path: DeckArg,
    today: TodayOpt = None,
):
    """Check a learning deck's unlock graph for dangling and unused info cards."""
    deck = _load(deck_path, _today(today))
    graph = build_unlock_graph(deck)

    typer.echo(
        f"{deck.name}: {len(graph.question_ids)} questions, {len(graph.info_card_ids)} info cards, "
        f"{graph.edge_count} unlock edges"
    )
    for question_id in sorted(graph.gated_question_ids):
        typer.echo(f"  {question_id} <- {', '.join(graph.gates_for(question_id))}")

    for card_id in find_orphan_info_cards(graph):
        typer.secho(f"Warning: info card {card_id} unlocks no questions", fg="yellow")

    if graph.unresolved_refs:
        for card_id, refs in sorted(graph.unresolved_refs.items()):
            typer.secho(f"Error: info card {card_id} unlocks missing {', '.join(refs)}", fg="red")
        raise typer.Exit(code=1)


@app.command()
def forecast(
    deck_path: DeckArg,
    today: TodayOpt = None,
    days: Annotated[int, typer.Option(help="Days to look ahead.", min=1)] = 14,
):
    """Show how many items fall due on each upcoming day."""
    day = _today(today)
    deck = _load(deck_path, day)
    for when, count in due_forecast(deck, day, days):
        typer.echo(f"{when.isoformat()}  {count:>4}  {'#' * min(count, 60)}")


@app.command()
def simulate(
    ctx: typer.Context,
    deck_path: DeckArg,
    today: TodayOpt = None,
    days: Annotated[int, typer.Option(help="Days to simulate.", min=1)] = 30,
    new_per_day: Annotated[int, typer.Option(help="New items introduced per day.", min=0)] = 10,
    retention: Annotated[
        float, typer.Option(help="Probability of answering correctly.", min=0.0, max=1.0)
    ] = 0.9,
    seed: Annotated[int | None, typer.Option(help="Random seed for reproducible runs.")] = None,
):
    """Simulate future daily workload for a deck."""
    config = _resolve_with_overrides(verbose=ctx.obj.get("verbose_bonus", 1))
    day = _today(today)
    deck = _load(deck_path, day)
    results = simulate_workload(
        list(deck.items),
        day,
        days,
        new_per_day,
        retention,
        rng=random.Random(seed),
        params=config.scheduler_params(),
    )
    for sim in results:
        typer.echo(
            f"{sim.date.isoformat()}  reviews={sim.review_count:<4} new={sim.new_count:<4} "
            f"total={sim.total_load}"
        )


@app.command("reset")
def reset_cmd(
    ctx: typer.Context,
    deck_path: DeckArg,
    today: TodayOpt = None,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Reset every item of a deck to its never-reviewed state."""
    config = _resolve_with_overrides(verbose=ctx.obj.get("verbose_bonus", 1))
    day = _today(today)
    deck = _load(deck_path, day)

    if not force and not typer.confirm(f"Reset progress for all {len(deck.items)} items?"):
        raise typer.Exit(1)

    params = config.scheduler_params()
    save_deck(reset_deck(deck, day, params), deck_path)
    typer.secho(f"Progress for deck '{deck.name}' has been reset.", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


# ---------------------------------------------------------------------------
# Session subgroup
# ---------------------------------------------------------------------------


@session_app.command("show")
def session_show(
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    mode: Annotated[SessionMode, typer.Option(help="Session mode.")] = SessionMode.NORMAL,
):
    """Print the saved snapshot for a deck, if any."""
    config = resolve_config()
    store = JsonSnapshotStore(config.snapshot_dir)
    snapshot = asyncio.run(store.load(SessionKey(deck_id, mode)))
    if snapshot is None:
        typer.secho("No saved session.", fg="yellow")
        raise typer.Exit(1)
    typer.echo(snapshot.model_dump_json(indent=2))


@session_app.command("clear")
def session_clear(
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    mode: Annotated[SessionMode, typer.Option(help="Session mode.")] = SessionMode.NORMAL,
):
    """Discard the saved snapshot for a deck."""
    config = resolve_config()
    store = JsonSnapshotStore(config.snapshot_dir)
    asyncio.run(store.delete(SessionKey(deck_id, mode)))
    typer.secho(f"Cleared saved session for {deck_id} ({mode.value}).", fg="green")


@session_app.command("list")
def session_list():
    """List saved snapshots."""
    config = resolve_config()
    keys = JsonSnapshotStore(config.snapshot_dir).list_keys()
    if not keys:
        typer.echo("No saved sessions.")
        return
    for name in keys:
        typer.echo(name)


def main():
    app()
