"""Interactive terminal study session."""

import asyncio
import logging
import random
from pathlib import Path
from typing import Annotated

import typer

from retain.application.session import StudySession, start_session
from retain.application.snapshot_writer import SnapshotWriter
from retain.application.stats import summarize
from retain.domain.errors import InvalidInputError, InvalidTransitionError
from retain.domain.models import QueueEntry, ReviewableKind, SessionMode
from retain.infrastructure.adapters.snapshot_store import JsonSnapshotStore
from retain.infrastructure.deck_file import save_deck
from retain.interface._common import _load, _resolve_with_overrides, _today

logger = logging.getLogger(__name__)

RATING_PROMPT = "Rate: 1=Again 2=Hard 3=Good 4=Easy"


def study(
    ctx: typer.Context,
    deck_path: Annotated[Path, typer.Argument(help="Path to a YAML deck file.", exists=True)],
    mode: Annotated[SessionMode, typer.Option(help="normal, cram or flip.")] = SessionMode.NORMAL,
    today: Annotated[
        str | None, typer.Option("--today", help="Study date (YYYY-MM-DD).")
    ] = None,
    shuffle: Annotated[
        bool | None, typer.Option("--shuffle/--no-shuffle", help="Shuffle due items.")
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed.")] = None,
):
    """[bold green]Study[/bold green] a deck in the terminal. Progress resumes where you left off."""
    config = _resolve_with_overrides(shuffle=shuffle, verbose=ctx.obj.get("verbose_bonus", 1))
    day = _today(today)
    deck = _load(deck_path, day)

    async def run() -> StudySession:
        writer = SnapshotWriter(JsonSnapshotStore(config.snapshot_dir))
        session = await start_session(
            deck, mode, day, writer, config=config, rng=random.Random(seed)
        )
        try:
            if len(session.queue) == 0:
                typer.secho("All caught up! Nothing is due in this deck.", fg="green")
                return session
            while not session.is_completed:
                if not _step(session):
                    typer.echo("Session paused. Run the same command to resume.")
                    break
                # Give queued snapshot writes a chance to run between prompts
                await asyncio.sleep(0)
        finally:
            await writer.flush()
            # Runs on quit and on an aborted prompt alike
            _save_progress(session, deck_path)
        return session

    session = asyncio.run(run())

    if session.is_completed and len(session.queue) > 0:
        _print_summary(session, day)


def _save_progress(session: StudySession, deck_path: Path) -> None:
    for warning in session.drain_warnings():
        typer.secho(f"Warning: {warning.message}", fg="yellow", err=True)
    if session.updated_items():
        save_deck(session.deck, deck_path)


def _step(session: StudySession) -> bool:
    """Handle one prompt. Returns False when the learner quits."""
    entry = session.displayed
    done, total = session.progress
    typer.echo(f"\n[{done}/{total}] position {session.queue.display_index + 1} of {len(session.queue)}")

    if session.queue.is_historical:
        _render(entry, reveal=True)
        choice = typer.prompt("[p]revious, [n]ext, [c]urrent, [q]uit", default="c").strip().lower()
        if choice == "q":
            return False
        {"p": session.navigate_previous, "n": session.navigate_next}.get(
            choice, session.return_to_current
        )()
        return True

    _render(entry, reveal=False)
    match entry.kind:
        case ReviewableKind.INFO_CARD:
            choice = typer.prompt("[enter] mark as read, [p]revious, [q]uit", default="").strip()
            if choice == "q":
                return False
            if choice == "p":
                session.navigate_previous()
                return True
            result = session.read_info_card()
            if result.inserted_ids:
                typer.secho(f"Unlocked {len(result.inserted_ids)} question(s).", fg="cyan")
            return True
        case ReviewableKind.QUESTION:
            choice = typer.prompt("Answer with an option id, [p]revious, [q]uit").strip()
            if choice == "q":
                return False
            if choice == "p":
                session.navigate_previous()
                return True
            try:
                correct = session.select_answer(choice)
            except (InvalidInputError, InvalidTransitionError) as e:
                typer.secho(str(e), fg="red")
                return True
            if correct is not None:
                typer.secho("Correct!" if correct else "Incorrect.", fg="green" if correct else "red")
        case ReviewableKind.FLASHCARD:
            choice = typer.prompt("[enter] show answer, [p]revious, [q]uit", default="").strip()
            if choice == "q":
                return False
            if choice == "p":
                session.navigate_previous()
                return True
            session.flip()
            _render(entry, reveal=True)

    return _rate(session)


def _rate(session: StudySession) -> bool:
    can_suspend = session.mode.schedules
    prompt = RATING_PROMPT + (", s=suspend" if can_suspend else "") + ", q=quit"
    while True:
        choice = typer.prompt(prompt).strip().lower()
        if choice == "q":
            return False
        try:
            if choice == "s" and can_suspend:
                session.suspend()
                typer.echo("Item suspended for future sessions.")
            else:
                result = session.review(choice)
                if result.mastered:
                    typer.secho("Item mastered!", fg="green")
                if result.leech:
                    typer.secho(f"Leech: {result.entry.id} keeps lapsing.", fg="yellow")
            return True
        except InvalidInputError as e:
            typer.secho(str(e), fg="red")


def _render(entry: QueueEntry, reveal: bool) -> None:
    content = entry.content
    match entry.kind:
        case ReviewableKind.INFO_CARD:
            typer.echo(str(content.get("content") or content.get("title") or entry.id))
        case ReviewableKind.FLASHCARD:
            typer.echo(f"Q: {content.get('front', entry.id)}")
            if reveal:
                typer.echo(f"A: {content.get('back', '')}")
        case ReviewableKind.QUESTION:
            typer.echo(str(content.get("question", entry.id)))
            for opt in content.get("options", []) or []:
                if isinstance(opt, dict):
                    typer.echo(f"  ({opt.get('id')}) {opt.get('text', '')}")
                else:
                    typer.echo(f"  ({opt})")
            if reveal and entry.correct_option is not None:
                typer.echo(f"Answer: {entry.correct_option}")


def _print_summary(session: StudySession, day) -> None:
    summary = summarize(session.review_log, day)
    typer.secho("\nSession complete!", fg="green", bold=True)
    if not session.mode.schedules:
        return
    typer.echo(f"Due tomorrow:           {summary.due_tomorrow} items")
    typer.echo(f"Due in the next 7 days: {summary.due_next_week} items")
    if summary.challenging:
        typer.secho("Challenging items:", fg="yellow")
        for item in summary.challenging:
            label = item.content.get("front") or item.content.get("question") or item.id
            typer.echo(f"  - {label}")
