"""
YAML deck files.

A deck file holds one deck:

    id: spanish-101
    name: Spanish basics
    type: learning            # flashcard | quiz | learning
    items:
      - id: q1
        question: "¿Cómo estás?"
        options: [{id: a, text: "How are you?"}, {id: b, text: "Who are you?"}]
        answer: a
        interval: 3
        ease_factor: 2.5
        due_date: 2024-05-01
    info_cards:
      - id: ic1
        content: "Greetings ..."
        unlocks: [q1]
    order: [ic1, q1]          # optional authored order (learning decks)

Scheduling fields are optional; an item without `due_date` is due on the
date passed to `load_deck`. Every other item key is kept as opaque content.
"""

import logging
import os
import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from retain.domain.errors import DeckFileError, InvalidInputError
from retain.domain.models import (
    Deck,
    DeckType,
    InfoCard,
    ReviewableItem,
    ReviewableKind,
)

logger = logging.getLogger(__name__)

SCHEDULING_KEYS = {
    "id",
    "interval",
    "ease_factor",
    "due_date",
    "last_reviewed",
    "lapses",
    "mastery_level",
    "suspended",
    "tags",
    "options",
    "answer",
}


def load_deck(path: Path, today: date) -> Deck:
    """Read and parse a deck file."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise DeckFileError(f"{path}: invalid YAML: {e}") from e
    except OSError as e:
        raise DeckFileError(f"{path}: {e}") from e

    if not isinstance(data, dict):
        raise DeckFileError(f"{path}: expected a mapping at the top level")
    return parse_deck(data, today, source=str(path))


def parse_deck(data: dict[str, Any], today: date, source: str = "<deck>") -> Deck:
    deck_id = data.get("id")
    if not deck_id:
        raise DeckFileError(f"{source}: deck has no id")

    try:
        deck_type = DeckType(str(data.get("type", DeckType.FLASHCARD.value)).lower())
    except ValueError:
        raise DeckFileError(f"{source}: unknown deck type {data.get('type')!r}") from None

    kind = ReviewableKind.FLASHCARD if deck_type is DeckType.FLASHCARD else ReviewableKind.QUESTION

    items: list[ReviewableItem] = []
    raw_items = data.get("items", []) or []
    if not isinstance(raw_items, list):
        raise DeckFileError(f"{source}: 'items' must be a list")
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict) or not raw.get("id"):
            logger.warning(f"{source}: skipping item #{i} without an id")
            continue
        items.append(_parse_item(raw, kind, today, source))

    info_cards: list[InfoCard] = []
    for i, raw in enumerate(data.get("info_cards", []) or []):
        if not isinstance(raw, dict) or not raw.get("id"):
            logger.warning(f"{source}: skipping info card #{i} without an id")
            continue
        unlocks = raw.get("unlocks", []) or []
        content = {k: v for k, v in raw.items() if k not in ("id", "unlocks")}
        info_cards.append(
            InfoCard(
                id=str(raw["id"]),
                unlocks_question_ids=tuple(str(q) for q in unlocks),
                content=content,
            )
        )

    try:
        return Deck(
            id=str(deck_id),
            name=str(data.get("name", deck_id)),
            deck_type=deck_type,
            items=tuple(items),
            info_cards=tuple(info_cards),
            authored_order=tuple(str(x) for x in data.get("order", []) or []),
        )
    except InvalidInputError as e:
        raise DeckFileError(f"{source}: {e}") from e


def _parse_item(raw: dict[str, Any], kind: ReviewableKind, today: date, source: str) -> ReviewableItem:
    options, correct = _parse_options(raw)
    content = {k: v for k, v in raw.items() if k not in SCHEDULING_KEYS}
    if raw.get("options"):
        content["options"] = raw["options"]

    try:
        interval = int(raw.get("interval", 0) or 0)
        mastery_level = float(raw.get("mastery_level", 0) or 0)
        if interval == 0 and mastery_level != 0:
            # Unscheduled items carry no mastery
            logger.warning(
                f"{source}: item {raw['id']} has mastery {mastery_level} without an interval; "
                f"treating it as 0"
            )
            mastery_level = 0.0
        return ReviewableItem(
            id=str(raw["id"]),
            kind=kind,
            due_date=_parse_date(raw.get("due_date")) or today,
            interval=interval,
            ease_factor=float(raw.get("ease_factor", 2.5) or 2.5),
            last_reviewed=_parse_date(raw.get("last_reviewed")),
            lapses=int(raw.get("lapses", 0) or 0),
            mastery_level=mastery_level,
            suspended=bool(raw.get("suspended", False)),
            tags=tuple(str(t) for t in raw.get("tags", []) or []),
            options=options,
            correct_option=correct,
            content=content,
        )
    except (TypeError, ValueError) as e:
        raise DeckFileError(f"{source}: item {raw.get('id')}: {e}") from e


def _parse_options(raw: dict[str, Any]) -> tuple[tuple[str, ...], str | None]:
    options: list[str] = []
    for opt in raw.get("options", []) or []:
        if isinstance(opt, dict) and "id" in opt:
            options.append(str(opt["id"]))
        elif isinstance(opt, (str, int)):
            options.append(str(opt))
    answer = raw.get("answer")
    return tuple(options), str(answer) if answer is not None else None


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError as e:
        raise DeckFileError(f"invalid date {value!r}") from e


def dump_deck(deck: Deck) -> dict[str, Any]:
    """Serialize a deck back to the file layout."""
    data: dict[str, Any] = {
        "id": deck.id,
        "name": deck.name,
        "type": deck.deck_type.value,
        "items": [_dump_item(item) for item in deck.items],
    }
    if deck.info_cards:
        data["info_cards"] = [
            {"id": card.id, **card.content, "unlocks": list(card.unlocks_question_ids)}
            for card in deck.info_cards
        ]
    if deck.authored_order:
        data["order"] = list(deck.authored_order)
    return data


def _dump_item(item: ReviewableItem) -> dict[str, Any]:
    out: dict[str, Any] = {"id": item.id, **item.content}
    if item.correct_option is not None:
        out["answer"] = item.correct_option
    out.update(
        {
            "interval": item.interval,
            "ease_factor": round(item.ease_factor, 4),
            "due_date": item.due_date.isoformat(),
            "last_reviewed": item.last_reviewed.isoformat() if item.last_reviewed else None,
            "lapses": item.lapses,
            "mastery_level": round(item.mastery_level, 4),
            "suspended": item.suspended,
            "tags": list(item.tags),
        }
    )
    return out


def save_deck(deck: Deck, path: Path) -> None:
    """Write the deck to `path` atomically; a failed write leaves the old file intact."""
    text = yaml.safe_dump(dump_deck(deck), sort_keys=False, allow_unicode=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
