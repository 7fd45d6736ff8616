"""
Domain models for study sessions.

The queue is an index-addressable list plus a cursor; inserting entries right
after the cursor is the only structural mutation.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field

from retain.domain.models import QueueEntry, Rating, ReviewableItem, SessionMode


class SessionState(str, Enum):
    AWAITING_ACTION = "awaiting_action"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionKey:
    """Identifies the single resumable session of a deck in a given mode."""

    deck_id: str
    mode: SessionMode = SessionMode.NORMAL

    @property
    def storage_name(self) -> str:
        return f"session_deck_{self.deck_id}__{self.mode.value}"

    def __str__(self) -> str:
        return f"{self.deck_id}/{self.mode.value}"


class SessionSnapshot(BaseModel):
    """
    Persisted point-in-time state of an in-progress session.

    Entries are stored by id only and re-resolved against the deck on resume.
    """

    deck_id: str
    mode: SessionMode = SessionMode.NORMAL
    entry_ids: list[str]
    current_index: int = Field(ge=0)
    items_completed: int = Field(default=0, ge=0)
    read_info_card_ids: list[str] = Field(default_factory=list)
    unlocked_question_ids: list[str] = Field(default_factory=list)

    @property
    def key(self) -> SessionKey:
        return SessionKey(self.deck_id, self.mode)


@dataclass
class SessionQueue:
    """
    The ordered working set of one sitting.

    current_index only moves forward; display_index may trail it while the
    learner browses history.
    """

    entries: list[QueueEntry]
    total_items: int
    current_index: int = 0
    display_index: int = 0
    items_completed: int = 0
    read_info_card_ids: set[str] = field(default_factory=set)
    unlocked_question_ids: set[str] = field(default_factory=set)
    # Snapshot ids that no longer exist in the deck (rehydration only)
    dropped_entry_ids: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.entries)

    @property
    def current(self) -> QueueEntry | None:
        if self.is_complete:
            return None
        return self.entries[self.current_index]

    @property
    def displayed(self) -> QueueEntry | None:
        if self.display_index >= len(self.entries):
            return None
        return self.entries[self.display_index]

    @property
    def is_historical(self) -> bool:
        return self.display_index < self.current_index

    @property
    def remaining(self) -> int:
        """Entries not yet acted on, including the current one."""
        return max(0, len(self.entries) - self.current_index)

    def ids(self) -> list[str]:
        return [entry.id for entry in self.entries]

    def contains_after_current(self, entry_id: str) -> bool:
        return any(e.id == entry_id for e in self.entries[self.current_index + 1 :])

    def replace_current(self, entry: QueueEntry) -> None:
        self.entries[self.current_index] = entry

    def insert_after_current(self, entries: list[QueueEntry]) -> None:
        pos = self.current_index + 1
        self.entries[pos:pos] = entries

    def to_snapshot(self, deck_id: str, mode: SessionMode) -> SessionSnapshot:
        return SessionSnapshot(
            deck_id=deck_id,
            mode=mode,
            entry_ids=self.ids(),
            current_index=self.current_index,
            items_completed=self.items_completed,
            read_info_card_ids=sorted(self.read_info_card_ids),
            unlocked_question_ids=sorted(self.unlocked_question_ids),
        )


@dataclass(frozen=True)
class ReviewLogEntry:
    """One scheduling event, emitted for progress-history collaborators."""

    id: str
    deck_id: str
    reviewed_on: date
    rating: Rating | None  # None for a suspend action
    old_item: ReviewableItem
    new_item: ReviewableItem


@dataclass(frozen=True)
class SessionWarning:
    """Advisory output that never blocks progression."""

    code: str  # "leech" or "snapshot_write"
    message: str
    entry_id: str | None = None


@dataclass
class TransitionResult:
    """What a terminal action did."""

    entry: QueueEntry
    completed: bool = False
    leech: bool = False
    mastered: bool = False
    inserted_ids: list[str] = field(default_factory=list)
    warnings: list[SessionWarning] = field(default_factory=list)
