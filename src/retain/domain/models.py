"""
Domain models for reviewable content.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum, IntEnum
from typing import Any

from .constants import INITIAL_EASE_FACTOR
from .errors import InvalidInputError


class Rating(IntEnum):
    """Review outcome, ordered from worst to best."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: Any) -> "Rating":
        """
        Coerce a rating from its enum, integer or name form.

        Raises:
            InvalidInputError: if the value is not one of the four ratings.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidInputError(f"Invalid rating: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidInputError(f"Invalid rating: {value!r}") from None
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
            if name.isdigit():
                return cls.parse(int(name))
        raise InvalidInputError(f"Invalid rating: {value!r}")


class DeckType(str, Enum):
    FLASHCARD = "flashcard"
    QUIZ = "quiz"
    LEARNING = "learning"


class ReviewableKind(str, Enum):
    """Closed set of queue entry shapes."""

    FLASHCARD = "flashcard"
    QUESTION = "question"
    INFO_CARD = "info_card"


class LeechAction(str, Enum):
    SUSPEND = "suspend"
    TAG = "tag"
    WARN = "warn"


class SessionMode(str, Enum):
    """
    How a study session selects and treats its items.

    normal: due items only, scheduled, resumable.
    cram: every item, never scheduled, never resumed.
    flip: every item, scheduled, never resumed.
    """

    NORMAL = "normal"
    CRAM = "cram"
    FLIP = "flip"

    @property
    def resumable(self) -> bool:
        return self is SessionMode.NORMAL

    @property
    def schedules(self) -> bool:
        return self is not SessionMode.CRAM

    @property
    def due_only(self) -> bool:
        return self is SessionMode.NORMAL


@dataclass(frozen=True)
class ReviewableItem:
    """
    A flashcard or question the scheduler reasons about.

    Attributes:
        id: Stable identifier, unique within a deck.
        due_date: Calendar day the item is next due.
        kind: FLASHCARD or QUESTION.
        interval: Days until next due; 0 means never successfully reviewed.
        ease_factor: Growth multiplier for the interval.
        last_reviewed: Day of the last scheduling decision, None if never.
        lapses: Consecutive "Again" ratings since the last successful review.
        mastery_level: Point-in-time mastery in [0, 1], set on review.
        suspended: Suspended items are never due and never enqueued.
        tags: Free-form labels; leech tagging appends here.
        options: Answer option ids (questions only).
        correct_option: Id of the correct option, if known.
        content: Opaque display payload (front/back, question text, ...).
    """

    id: str
    due_date: date
    kind: ReviewableKind = ReviewableKind.FLASHCARD
    interval: int = 0
    ease_factor: float = INITIAL_EASE_FACTOR
    last_reviewed: date | None = None
    lapses: int = 0
    mastery_level: float = 0.0
    suspended: bool = False
    tags: tuple[str, ...] = ()
    options: tuple[str, ...] = ()
    correct_option: str | None = None
    content: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if self.kind is ReviewableKind.INFO_CARD:
            raise InvalidInputError(f"Item {self.id} cannot be an info card")
        if self.interval < 0:
            raise InvalidInputError(f"Item {self.id} has a negative interval")

    @property
    def is_new(self) -> bool:
        return self.interval == 0

    def is_due(self, as_of: date) -> bool:
        return not self.suspended and self.due_date <= as_of

    def with_tag(self, tag: str) -> "ReviewableItem":
        if tag in self.tags:
            return self
        return replace(self, tags=self.tags + (tag,))


@dataclass(frozen=True)
class InfoCard:
    """Reading material in a learning deck that unlocks questions once read."""

    id: str
    unlocks_question_ids: tuple[str, ...] = ()
    content: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def kind(self) -> ReviewableKind:
        return ReviewableKind.INFO_CARD


QueueEntry = ReviewableItem | InfoCard


_ITEM_KIND_BY_DECK = {
    DeckType.FLASHCARD: ReviewableKind.FLASHCARD,
    DeckType.QUIZ: ReviewableKind.QUESTION,
    DeckType.LEARNING: ReviewableKind.QUESTION,
}


@dataclass(frozen=True)
class Deck:
    """
    A named collection of reviewable items.

    Learning decks additionally carry info cards. `authored_order` lists entry
    ids (info cards and questions) in the order the author arranged them; when
    empty, info cards come first followed by the items in list order.
    """

    id: str
    name: str
    deck_type: DeckType
    items: tuple[ReviewableItem, ...] = ()
    info_cards: tuple[InfoCard, ...] = ()
    authored_order: tuple[str, ...] = ()

    def __post_init__(self):
        expected = _ITEM_KIND_BY_DECK[self.deck_type]
        for item in self.items:
            if item.kind is not expected:
                raise InvalidInputError(
                    f"Deck {self.id} ({self.deck_type.value}) cannot hold {item.kind.value} {item.id}"
                )
        if self.info_cards and self.deck_type is not DeckType.LEARNING:
            raise InvalidInputError(f"Only learning decks carry info cards (deck {self.id})")

        seen: set[str] = set()
        for entry in (*self.items, *self.info_cards):
            if entry.id in seen:
                raise InvalidInputError(f"Duplicate entry id {entry.id} in deck {self.id}")
            seen.add(entry.id)

    @property
    def is_learning(self) -> bool:
        return self.deck_type is DeckType.LEARNING

    def entries_in_authored_order(self) -> list[QueueEntry]:
        """All info cards and items, in authored order."""
        by_id = self.entry_index()
        if not self.authored_order:
            return [*self.info_cards, *self.items]

        ordered: list[QueueEntry] = []
        placed: set[str] = set()
        for entry_id in self.authored_order:
            entry = by_id.get(entry_id)
            if entry is not None and entry_id not in placed:
                ordered.append(entry)
                placed.add(entry_id)
        # Entries the authored order forgot still belong to the deck
        ordered.extend(e for e in (*self.info_cards, *self.items) if e.id not in placed)
        return ordered

    def entry_index(self) -> dict[str, QueueEntry]:
        index: dict[str, QueueEntry] = {item.id: item for item in self.items}
        index.update({card.id: card for card in self.info_cards})
        return index

    def get_item(self, item_id: str) -> ReviewableItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def with_items(self, items: list[ReviewableItem] | tuple[ReviewableItem, ...]) -> "Deck":
        return replace(self, items=tuple(items))

    def merge_items(self, updated: list[ReviewableItem]) -> "Deck":
        """Return a copy with matching items replaced by their updated versions."""
        by_id = {item.id: item for item in updated}
        return self.with_items(tuple(by_id.get(item.id, item) for item in self.items))
