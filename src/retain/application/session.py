"""
Study session progression.

A StudySession owns one SessionQueue and turns learner actions into queue
movement and scheduling updates:

    AwaitingAction --terminal action--> (advance) --> AwaitingAction | Completed

Terminal actions (review, suspend, read_info_card) are only accepted on the
entry at the cursor while it is displayed. Navigation moves the display
position through history without touching scheduling state. After every
state-changing transition a snapshot write is requested for resumable modes;
completion requests deletion instead.
"""

import logging
import random
from dataclasses import replace
from datetime import date

from ulid import ULID

from retain.application.config import EngineConfig
from retain.application.graph_resolver import build_unlock_graph
from retain.application.leech import LeechPolicy, check_leech
from retain.application.queue_builder import build_from_snapshot, build_queue, unlockable_entries
from retain.application.scheduler import (
    DEFAULT_PARAMS,
    SchedulerParams,
    effective_mastery,
    next_state,
)
from retain.application.snapshot_writer import SnapshotWriter
from retain.domain.constants import MASTERED_THRESHOLD
from retain.domain.errors import InvalidInputError, InvalidTransitionError, SnapshotWriteError
from retain.domain.models import (
    Deck,
    InfoCard,
    QueueEntry,
    Rating,
    ReviewableItem,
    ReviewableKind,
    SessionMode,
)
from retain.domain.session.models import (
    ReviewLogEntry,
    SessionKey,
    SessionQueue,
    SessionState,
    SessionWarning,
    TransitionResult,
)

logger = logging.getLogger(__name__)


class StudySession:
    def __init__(
        self,
        deck: Deck,
        queue: SessionQueue,
        today: date,
        mode: SessionMode = SessionMode.NORMAL,
        *,
        params: SchedulerParams = DEFAULT_PARAMS,
        leech_policy: LeechPolicy = LeechPolicy(),
        mastered_threshold: float = MASTERED_THRESHOLD,
        writer: SnapshotWriter | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            deck: The deck being studied, as loaded at session start.
            queue: A fresh or rehydrated queue for this deck.
            today: Study date used for every scheduling decision.
            mode: Session mode; decides scheduling and resumability.
            params: Scheduling constants.
            leech_policy: Threshold and action for leech handling.
            mastered_threshold: Mastery above which an item counts as mastered.
            writer: Snapshot writer; None disables persistence.
            rng: Shuffles newly unlocked questions.
        """
        self._deck = deck
        self._queue = queue
        self._today = today
        self._mode = mode
        self._params = params
        self._leech_policy = leech_policy
        self._mastered_threshold = mastered_threshold
        self._writer = writer if mode.resumable else None
        self._rng = rng or random.Random()
        self._graph = build_unlock_graph(deck)

        self._updated: dict[str, ReviewableItem] = {}
        self._review_log: list[ReviewLogEntry] = []
        self._warnings: list[SessionWarning] = []

        # Transient per-entry UI state
        self._flipped = False
        self._selected_answer: str | None = None

        if self._writer is not None:
            self._writer.add_error_handler(self._on_write_error)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def key(self) -> SessionKey:
        return SessionKey(self._deck.id, self._mode)

    @property
    def mode(self) -> SessionMode:
        return self._mode

    @property
    def state(self) -> SessionState:
        if self._queue.is_complete:
            return SessionState.COMPLETED
        return SessionState.AWAITING_ACTION

    @property
    def is_completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def queue(self) -> SessionQueue:
        return self._queue

    @property
    def current(self) -> QueueEntry | None:
        return self._queue.current

    @property
    def displayed(self) -> QueueEntry | None:
        return self._queue.displayed

    @property
    def is_flipped(self) -> bool:
        return self._flipped

    @property
    def selected_answer(self) -> str | None:
        return self._selected_answer

    @property
    def progress(self) -> tuple[int, int]:
        """(items completed, total items) for progress display."""
        return self._queue.items_completed, self._queue.total_items

    @property
    def review_log(self) -> list[ReviewLogEntry]:
        return list(self._review_log)

    @property
    def deck(self) -> Deck:
        """The deck with every item updated during this session merged in."""
        return self._deck.merge_items(list(self._updated.values()))

    def updated_items(self) -> list[ReviewableItem]:
        """Latest state of every item this session changed, for the storage collaborator."""
        return list(self._updated.values())

    def drain_warnings(self) -> list[SessionWarning]:
        warnings, self._warnings = self._warnings, []
        return warnings

    # ------------------------------------------------------------------
    # Terminal actions
    # ------------------------------------------------------------------

    def review(self, rating: Rating | int | str) -> TransitionResult:
        """
        Rate the current item and advance.

        In cram mode the queue advances without scheduling.

        Raises:
            InvalidInputError: for a rating outside Again..Easy.
            InvalidTransitionError: if the cursor entry is not displayed or
                is an info card, or the session is complete.
        """
        rating = Rating.parse(rating)
        entry = self._require_reviewable()

        if not self._mode.schedules:
            result = TransitionResult(entry=entry)
            self._advance(result)
            return result

        scheduled = next_state(entry, rating, self._today, self._params)
        verdict = check_leech(entry, scheduled, self._leech_policy)
        updated = verdict.item

        result = TransitionResult(
            entry=updated,
            leech=verdict.is_leech,
            mastered=(
                effective_mastery(entry, self._today, self._params) <= self._mastered_threshold
                < updated.mastery_level
            ),
        )
        if verdict.warn:
            result.warnings.append(
                SessionWarning(
                    code="leech",
                    message=f"Item {updated.id} has lapsed {updated.lapses} times",
                    entry_id=updated.id,
                )
            )

        self._record(entry, updated, rating)
        self._advance(result)
        return result

    def suspend(self) -> TransitionResult:
        """Suspend the current item without scheduling it, then advance."""
        entry = self._require_reviewable()
        if not self._mode.schedules:
            raise InvalidTransitionError(f"Cannot suspend items in a {self._mode.value} session")

        updated = replace(entry, suspended=True)
        self._record(entry, updated, None)
        result = TransitionResult(entry=updated)
        self._advance(result)
        return result

    def read_info_card(self) -> TransitionResult:
        """
        Mark the current info card as read and advance.

        Questions it unlocks that are not already waiting later in the queue
        are shuffled and inserted directly after the cursor, so they come next.
        """
        entry = self._require_actionable()
        match entry.kind:
            case ReviewableKind.INFO_CARD:
                card: InfoCard = entry
            case ReviewableKind.FLASHCARD | ReviewableKind.QUESTION:
                raise InvalidTransitionError(f"Entry {entry.id} is not an info card")

        self._queue.read_info_card_ids.add(card.id)
        self._queue.unlocked_question_ids.update(self._graph.unlocked_by(card.id))

        # Eligibility is judged on the state this session left each question in
        unlocked = unlockable_entries(
            self.deck, self._graph, card, self._queue, self._mode, self._today
        )
        self._rng.shuffle(unlocked)
        self._queue.insert_after_current(unlocked)

        result = TransitionResult(entry=card, inserted_ids=[item.id for item in unlocked])
        self._advance(result)
        return result

    # ------------------------------------------------------------------
    # Non-terminal actions
    # ------------------------------------------------------------------

    def select_answer(self, option_id: str) -> bool | None:
        """
        Record the learner's answer for the current question.

        Returns:
            Whether the answer is correct, or None if the question does not
            declare a correct option.
        """
        entry = self._require_actionable()
        if entry.kind is not ReviewableKind.QUESTION:
            raise InvalidTransitionError(f"Entry {entry.id} is not a question")
        if self._selected_answer is not None:
            raise InvalidTransitionError(f"An answer was already recorded for {entry.id}")
        if entry.options and option_id not in entry.options:
            raise InvalidInputError(f"Unknown option {option_id!r} for question {entry.id}")

        self._selected_answer = option_id
        if entry.correct_option is None:
            return None
        return option_id == entry.correct_option

    def flip(self) -> bool:
        """Toggle the current flashcard between front and back."""
        entry = self._require_actionable()
        if entry.kind is not ReviewableKind.FLASHCARD:
            raise InvalidTransitionError(f"Entry {entry.id} is not a flashcard")
        self._flipped = not self._flipped
        return self._flipped

    def navigate_previous(self) -> QueueEntry | None:
        if self._queue.display_index > 0:
            self._queue.display_index -= 1
        return self._queue.displayed

    def navigate_next(self) -> QueueEntry | None:
        if self._queue.display_index < self._queue.current_index:
            self._queue.display_index += 1
        return self._queue.displayed

    def return_to_current(self) -> QueueEntry | None:
        self._queue.display_index = self._queue.current_index
        return self._queue.displayed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_actionable(self) -> QueueEntry:
        if self._queue.is_complete:
            raise InvalidTransitionError("Session is already complete")
        if self._queue.is_historical:
            raise InvalidTransitionError(
                f"Entry at position {self._queue.display_index} is history; "
                f"return to position {self._queue.current_index} to act"
            )
        return self._queue.current

    def _require_reviewable(self) -> ReviewableItem:
        entry = self._require_actionable()
        match entry.kind:
            case ReviewableKind.FLASHCARD | ReviewableKind.QUESTION:
                return entry
            case ReviewableKind.INFO_CARD:
                raise InvalidTransitionError(f"Info card {entry.id} cannot be reviewed")

    def _record(self, old: ReviewableItem, new: ReviewableItem, rating: Rating | None) -> None:
        self._queue.replace_current(new)
        self._updated[new.id] = new
        self._review_log.append(
            ReviewLogEntry(
                id=str(ULID()),
                deck_id=self._deck.id,
                reviewed_on=self._today,
                rating=rating,
                old_item=old,
                new_item=new,
            )
        )

    def _advance(self, result: TransitionResult) -> None:
        self._flipped = False
        self._selected_answer = None

        queue = self._queue
        queue.items_completed += 1
        queue.current_index += 1
        queue.display_index = queue.current_index

        result.completed = queue.is_complete
        if result.completed:
            logger.info(
                f"Session {self.key} completed: {queue.items_completed} items, "
                f"{len(self._review_log)} scheduled"
            )
            self.close()
        else:
            self.persist()

    def persist(self) -> None:
        """Request a snapshot write of the current state (resumable modes only)."""
        if self._writer is None:
            return
        self._writer.request_save(self.key, self._queue.to_snapshot(self._deck.id, self._mode))

    def close(self) -> None:
        """Delete the stored snapshot and stop listening for write errors."""
        if self._writer is None:
            return
        self._writer.request_delete(self.key)
        self._writer.remove_error_handler(self._on_write_error)

    def _on_write_error(self, error: SnapshotWriteError) -> None:
        if error.key == self.key:
            self._warnings.append(SessionWarning(code="snapshot_write", message=str(error)))


async def start_session(
    deck: Deck,
    mode: SessionMode,
    today: date,
    writer: SnapshotWriter | None = None,
    *,
    config: EngineConfig | None = None,
    rng: random.Random | None = None,
) -> StudySession:
    """
    Resume the stored session for (deck, mode) or build a fresh one.

    Special modes never resume. A stored snapshot with no entries is discarded.
    A snapshot that cannot be loaded is logged and a fresh queue is built.
    """
    config = config or EngineConfig()
    key = SessionKey(deck.id, mode)
    queue: SessionQueue | None = None

    if mode.resumable and writer is not None:
        try:
            snapshot = await writer.load(key)
        except Exception as e:
            logger.warning(f"Could not load snapshot for {key}, starting fresh: {e}")
            snapshot = None

        if snapshot is not None and snapshot.entry_ids:
            queue = build_from_snapshot(deck, snapshot)
            logger.info(f"Resumed session {key} at {queue.current_index}/{len(queue)}")
        elif snapshot is not None:
            logger.info(f"Discarding empty snapshot for {key}")
            writer.request_delete(key)

    resumed = queue is not None
    if queue is None:
        shuffle_rng = (rng or random.Random()) if config.shuffle else None
        queue = build_queue(deck, mode, today, rng=shuffle_rng)

    session = StudySession(
        deck,
        queue,
        today,
        mode,
        params=config.scheduler_params(),
        leech_policy=config.leech_policy(),
        mastered_threshold=config.mastered_threshold,
        writer=writer,
        rng=rng,
    )

    if session.is_completed:
        if resumed:
            session.close()
    elif not resumed:
        session.persist()
    return session
