"""
Aggregate queries over collections of reviewable items.

This is a pure computation module with no I/O. Everything is recomputed on
demand from the items and the date passed in.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from retain.application.scheduler import DEFAULT_PARAMS, SchedulerParams, effective_mastery
from retain.domain.constants import DEFAULT_FORECAST_DAYS, LEECH_TAG
from retain.domain.models import Deck, ReviewableItem


def due_count(deck: Deck | Iterable[ReviewableItem], as_of: date) -> int:
    """Non-suspended items due on or before `as_of` (whole day inclusive)."""
    as_of = _as_day(as_of)
    return sum(1 for item in _items(deck) if item.is_due(as_of))


def collection_mastery(
    items: Deck | Iterable[ReviewableItem],
    now: date | datetime,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> float:
    """Mean effective mastery of non-suspended items; 0 for an empty set."""
    active = [item for item in _items(items) if not item.suspended]
    if not active:
        return 0.0
    return sum(effective_mastery(item, now, params) for item in active) / len(active)


def due_forecast(
    items: Deck | Iterable[ReviewableItem],
    today: date,
    days: int = DEFAULT_FORECAST_DAYS,
) -> list[tuple[date, int]]:
    """
    Count items falling due on each of the next `days` days.

    Overdue items are counted on `today`.
    """
    today = _as_day(today)
    counts = [0] * max(0, days)
    for item in _items(items):
        if item.suspended:
            continue
        offset = max(0, (item.due_date - today).days)
        if offset < days:
            counts[offset] += 1
    return [(today + timedelta(days=i), n) for i, n in enumerate(counts)]


@dataclass
class DeckStats:
    """Display-oriented rollup of one deck."""

    deck_id: str
    deck_name: str
    total: int
    due: int
    new: int
    suspended: int
    leeches: int
    mastery: float
    average_ease: float | None


class StatsCalculator:
    """
    Computes deck-level rollups.

    Stateless and side-effect free.
    """

    def __init__(self, params: SchedulerParams = DEFAULT_PARAMS):
        self._params = params

    def deck_stats(self, deck: Deck, today: date | datetime) -> DeckStats:
        items = list(deck.items)
        active = [item for item in items if not item.suspended]
        reviewed = [item for item in active if not item.is_new]

        return DeckStats(
            deck_id=deck.id,
            deck_name=deck.name,
            total=len(items),
            due=due_count(items, _as_day(today)),
            new=sum(1 for item in active if item.is_new),
            suspended=len(items) - len(active),
            leeches=sum(1 for item in items if LEECH_TAG in item.tags),
            mastery=collection_mastery(items, today, self._params),
            average_ease=(
                sum(item.ease_factor for item in reviewed) / len(reviewed) if reviewed else None
            ),
        )


def _items(source: Deck | Iterable[ReviewableItem]) -> Iterable[ReviewableItem]:
    if isinstance(source, Deck):
        return source.items
    return source


def _as_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
