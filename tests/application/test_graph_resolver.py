"""Tests for the unlock graph and its resolver."""

import logging

from factories import make_question
from retain.application.graph_resolver import (
    build_unlock_graph,
    find_orphan_info_cards,
    resolve_unlocked_questions,
)
from retain.domain.graph import UnlockGraph
from retain.domain.models import Deck, DeckType, InfoCard


class TestUnlockGraph:
    def test_add_unlock(self):
        graph = UnlockGraph()
        graph.add_info_card("ic")
        graph.add_question("q")
        graph.add_unlock("ic", "q")

        assert graph.unlocked_by("ic") == ["q"]
        assert graph.gates_for("q") == ["ic"]
        assert graph.is_gated("q")
        assert graph.edge_count == 1

    def test_duplicate_edges_collapse(self):
        graph = UnlockGraph()
        graph.add_unlock("ic", "q")
        graph.add_unlock("ic", "q")
        assert graph.edge_count == 1

    def test_question_gated_by_two_cards(self):
        graph = UnlockGraph()
        graph.add_unlock("ic1", "q")
        graph.add_unlock("ic2", "q")
        assert graph.gates_for("q") == ["ic1", "ic2"]
        assert graph.gated_question_ids == {"q"}


class TestBuildUnlockGraph:
    def test_from_learning_deck(self, learning_deck):
        graph = build_unlock_graph(learning_deck)

        assert graph.gated_question_ids == {"q1", "q2", "q4"}
        assert not graph.is_gated("q3")
        assert graph.unlocked_by("ic1") == ["q1", "q2"]

    def test_unresolved_references_are_recorded(self, caplog):
        deck = Deck(
            id="d",
            name="D",
            deck_type=DeckType.LEARNING,
            items=(make_question("q1"),),
            info_cards=(InfoCard(id="ic", unlocks_question_ids=("q1", "ghost")),),
        )
        with caplog.at_level(logging.WARNING):
            graph = build_unlock_graph(deck)

        assert graph.unlocked_by("ic") == ["q1"]
        assert graph.unresolved_refs == {"ic": ["ghost"]}
        assert "missing questions" in caplog.text

    def test_flashcard_deck_has_no_edges(self, flashcard_deck):
        graph = build_unlock_graph(flashcard_deck)
        assert graph.edge_count == 0
        assert len(graph.question_ids) == 5


def test_resolve_unlocked_questions(learning_deck):
    graph = build_unlock_graph(learning_deck)
    items = resolve_unlocked_questions(learning_deck, graph, "ic1")
    assert [item.id for item in items] == ["q1", "q2"]
    assert resolve_unlocked_questions(learning_deck, graph, "unknown") == []


def test_find_orphan_info_cards():
    deck = Deck(
        id="d",
        name="D",
        deck_type=DeckType.LEARNING,
        items=(make_question("q1"),),
        info_cards=(InfoCard(id="ic1", unlocks_question_ids=("q1",)), InfoCard(id="lonely")),
    )
    assert find_orphan_info_cards(build_unlock_graph(deck)) == ["lonely"]
