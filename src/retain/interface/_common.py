"""Helpers shared by CLI command groups."""

import logging
from datetime import date
from pathlib import Path
from typing import Any

import typer

from retain.application.config import EngineConfig, resolve_config
from retain.domain.errors import DeckFileError
from retain.domain.models import Deck
from retain.infrastructure.deck_file import load_deck

logger = logging.getLogger(__name__)


def _resolve_with_overrides(**overrides: Any) -> EngineConfig:
    """Resolve config with CLI overrides, mapping verbosity onto the root logger."""
    config = resolve_config(overrides)
    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    return config


def _today(value: str | None) -> date:
    """Parse --today, falling back to the system date. The engine itself never reads the clock."""
    if value is None:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        typer.secho(f"Invalid date {value!r}; expected YYYY-MM-DD.", fg="red", err=True)
        raise typer.Exit(2) from None


def _load(path: Path, today: date) -> Deck:
    try:
        return load_deck(path, today)
    except DeckFileError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(1) from e
