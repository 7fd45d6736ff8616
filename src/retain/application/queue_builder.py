"""
Queue builder for study sessions.

Builds the ordered working set of one sitting by:
1. Selecting eligible items (due, or everything for special modes)
2. Holding back questions gated behind unread info cards
3. Keeping the deck's authored order, optionally shuffled for flat decks

Also rehydrates a queue from a persisted snapshot.
"""

import logging
import random
from datetime import date

from retain.application.graph_resolver import build_unlock_graph, resolve_unlocked_questions
from retain.domain.graph import UnlockGraph
from retain.domain.models import (
    Deck,
    InfoCard,
    QueueEntry,
    ReviewableItem,
    ReviewableKind,
    SessionMode,
)
from retain.domain.session.models import SessionQueue, SessionSnapshot

logger = logging.getLogger(__name__)


def is_eligible(item: ReviewableItem, mode: SessionMode, as_of: date) -> bool:
    """Whether an item may enter a queue of the given mode."""
    if item.suspended:
        return False
    if mode.due_only:
        return item.due_date <= as_of
    return True


def build_queue(
    deck: Deck,
    mode: SessionMode,
    as_of: date,
    rng: random.Random | None = None,
    graph: UnlockGraph | None = None,
) -> SessionQueue:
    """
    Build a fresh session queue.

    Args:
        deck: The deck to study.
        mode: normal selects due items only; cram and flip take every
            non-suspended item.
        as_of: The study date; items due on or before it are due.
        rng: When given, flashcard and quiz queues are shuffled with it.
            Learning decks always keep their authored order.
        graph: Precomputed unlock graph; built from the deck if omitted.

    Returns:
        SessionQueue positioned at its first entry.
    """
    if deck.is_learning:
        graph = graph or build_unlock_graph(deck)
        entries: list[QueueEntry] = []
        for entry in deck.entries_in_authored_order():
            match entry.kind:
                case ReviewableKind.INFO_CARD:
                    entries.append(entry)
                case ReviewableKind.QUESTION | ReviewableKind.FLASHCARD:
                    if not graph.is_gated(entry.id) and is_eligible(entry, mode, as_of):
                        entries.append(entry)
        return SessionQueue(entries=entries, total_items=learning_total(deck))

    items: list[QueueEntry] = [item for item in deck.items if is_eligible(item, mode, as_of)]
    if rng is not None:
        rng.shuffle(items)
    return SessionQueue(entries=items, total_items=len(items))


def build_from_snapshot(deck: Deck, snapshot: SessionSnapshot) -> SessionQueue:
    """
    Rebuild a session queue from a snapshot against the deck's current contents.

    Entries are re-resolved by id, so they carry the deck's latest metadata.
    Ids that no longer exist in the deck are dropped; the cursor shifts back
    by the number of dropped entries that preceded it. Newly due items are
    never added to a resumed session.
    """
    index = deck.entry_index()
    entries: list[QueueEntry] = []
    dropped: list[str] = []
    current_index = snapshot.current_index

    for position, entry_id in enumerate(snapshot.entry_ids):
        entry = index.get(entry_id)
        if entry is None:
            dropped.append(entry_id)
            if position < snapshot.current_index:
                current_index -= 1
            continue
        entries.append(entry)

    if dropped:
        logger.warning(
            f"Corrupted entry dropped: snapshot for deck {deck.id} references "
            f"{len(dropped)} missing entr{'y' if len(dropped) == 1 else 'ies'}: {dropped}"
        )

    current_index = min(max(current_index, 0), len(entries))
    total = learning_total(deck) if deck.is_learning else len(entries)

    return SessionQueue(
        entries=entries,
        total_items=total,
        current_index=current_index,
        display_index=current_index,
        items_completed=snapshot.items_completed,
        read_info_card_ids=set(snapshot.read_info_card_ids),
        unlocked_question_ids=set(snapshot.unlocked_question_ids),
        dropped_entry_ids=dropped,
    )


def learning_total(deck: Deck) -> int:
    """Progress denominator for learning decks: info cards plus every question."""
    return len(deck.info_cards) + len(deck.items)


def unlockable_entries(
    deck: Deck,
    graph: UnlockGraph,
    card: InfoCard,
    queue: SessionQueue,
    mode: SessionMode,
    as_of: date,
) -> list[ReviewableItem]:
    """
    Questions that reading `card` should insert into the queue.

    Skips questions already waiting later in the queue and questions that
    are not eligible for this mode. `deck` must hold the latest state of each
    question, including changes made earlier in the same session.
    """
    return [
        item
        for item in resolve_unlocked_questions(deck, graph, card.id)
        if is_eligible(item, mode, as_of) and not queue.contains_after_current(item.id)
    ]
