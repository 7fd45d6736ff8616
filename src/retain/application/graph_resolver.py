"""
Graph resolver for learning-deck prerequisites.

Builds the unlock graph from a deck's info cards and answers the questions the
queue builder and session need: which questions are gated, and what a given
info card unlocks.
"""

import logging

from retain.domain.graph import UnlockGraph
from retain.domain.models import Deck, ReviewableItem

logger = logging.getLogger(__name__)


def build_unlock_graph(deck: Deck) -> UnlockGraph:
    """
    Build the unlock graph of a deck.

    References to questions that are not in the deck are recorded as
    unresolved rather than raising. Non-learning decks yield a graph with no
    edges.
    """
    graph = UnlockGraph()

    for item in deck.items:
        graph.add_question(item.id)

    for card in deck.info_cards:
        graph.add_info_card(card.id)
        for question_id in card.unlocks_question_ids:
            if question_id in graph.question_ids:
                graph.add_unlock(card.id, question_id)
            else:
                graph.add_unresolved(card.id, question_id)

    if graph.unresolved_refs:
        missing = sum(len(refs) for refs in graph.unresolved_refs.values())
        logger.warning(f"Deck {deck.id}: {missing} unlock reference(s) point at missing questions")

    return graph


def resolve_unlocked_questions(
    deck: Deck,
    graph: UnlockGraph,
    card_id: str,
) -> list[ReviewableItem]:
    """Questions unlocked by reading `card_id`, in the card's authored order."""
    questions: list[ReviewableItem] = []
    for question_id in graph.unlocked_by(card_id):
        item = deck.get_item(question_id)
        if item is not None:
            questions.append(item)
    return questions


def find_orphan_info_cards(graph: UnlockGraph) -> list[str]:
    """Info cards that unlock nothing."""
    return sorted(cid for cid in graph.info_card_ids if not graph.unlocks.get(cid))
