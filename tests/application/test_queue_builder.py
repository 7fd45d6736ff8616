"""Tests for building and rehydrating session queues."""

import logging
import random
from datetime import timedelta

import pytest

from factories import TODAY, make_card, make_question
from retain.application.queue_builder import (
    build_from_snapshot,
    build_queue,
    is_eligible,
    learning_total,
)
from retain.domain.models import Deck, DeckType, InfoCard, SessionMode
from retain.domain.session.models import SessionSnapshot


class TestEligibility:
    def test_due_only_in_normal_mode(self):
        future = make_card("a", due_date=TODAY + timedelta(days=2))
        assert not is_eligible(future, SessionMode.NORMAL, TODAY)
        assert is_eligible(future, SessionMode.CRAM, TODAY)
        assert is_eligible(future, SessionMode.FLIP, TODAY)

    @pytest.mark.parametrize("mode", list(SessionMode))
    def test_suspended_never_eligible(self, mode):
        assert not is_eligible(make_card("a", suspended=True), mode, TODAY)


class TestBuildQueue:
    def test_flashcard_deck_normal(self, flashcard_deck):
        queue = build_queue(flashcard_deck, SessionMode.NORMAL, TODAY)

        assert queue.ids() == ["c1", "c2", "c3"]
        assert queue.total_items == 3
        assert queue.current_index == 0
        assert queue.display_index == 0
        assert queue.items_completed == 0
        assert queue.read_info_card_ids == set()

    def test_flashcard_deck_cram_takes_everything_active(self, flashcard_deck):
        queue = build_queue(flashcard_deck, SessionMode.CRAM, TODAY)
        assert queue.ids() == ["c1", "c2", "c3", "c5"]

    def test_shuffle_with_rng(self):
        deck = Deck(
            id="d",
            name="D",
            deck_type=DeckType.FLASHCARD,
            items=tuple(make_card(f"c{i}") for i in range(30)),
        )
        plain = build_queue(deck, SessionMode.NORMAL, TODAY)
        shuffled = build_queue(deck, SessionMode.NORMAL, TODAY, rng=random.Random(3))

        assert plain.ids() == [f"c{i}" for i in range(30)]
        assert sorted(shuffled.ids()) == sorted(plain.ids())
        assert shuffled.ids() != plain.ids()

    def test_learning_deck_holds_back_gated_questions(self, learning_deck):
        queue = build_queue(learning_deck, SessionMode.NORMAL, TODAY)

        assert queue.ids() == ["ic1", "q3", "ic2"]
        assert queue.total_items == 6

    @pytest.mark.parametrize("mode", list(SessionMode))
    def test_gating_applies_in_every_mode(self, learning_deck, mode):
        queue = build_queue(learning_deck, mode, TODAY, rng=random.Random(0))
        assert not {"q1", "q2", "q4"} & set(queue.ids())

    def test_learning_deck_skips_undue_free_questions(self):
        deck = Deck(
            id="d",
            name="D",
            deck_type=DeckType.LEARNING,
            items=(make_question("q1", due_date=TODAY + timedelta(days=5)), make_question("q2")),
            info_cards=(InfoCard(id="ic"),),
            authored_order=("q1", "ic", "q2"),
        )
        assert build_queue(deck, SessionMode.NORMAL, TODAY).ids() == ["ic", "q2"]
        assert build_queue(deck, SessionMode.CRAM, TODAY).ids() == ["q1", "ic", "q2"]

    def test_learning_total(self, learning_deck):
        assert learning_total(learning_deck) == 6

    def test_empty_deck(self):
        deck = Deck(id="d", name="D", deck_type=DeckType.QUIZ)
        queue = build_queue(deck, SessionMode.NORMAL, TODAY)
        assert len(queue) == 0
        assert queue.is_complete


class TestBuildFromSnapshot:
    def _deck(self, count):
        return Deck(
            id="d",
            name="D",
            deck_type=DeckType.FLASHCARD,
            items=tuple(make_card(f"c{i}") for i in range(count)),
        )

    def test_completed_snapshot_ignores_new_due_items(self):
        # Snapshot covered 5 entries; the deck has since gained 2 due items
        snapshot = SessionSnapshot(
            deck_id="d",
            entry_ids=[f"c{i}" for i in range(5)],
            current_index=5,
            items_completed=5,
        )
        queue = build_from_snapshot(self._deck(7), snapshot)

        assert len(queue) == 5
        assert queue.is_complete
        assert "c5" not in queue.ids()

    def test_restores_state_verbatim(self, learning_deck):
        snapshot = SessionSnapshot(
            deck_id="learn",
            entry_ids=["ic1", "q2", "q1", "q3", "ic2"],
            current_index=2,
            items_completed=2,
            read_info_card_ids=["ic1"],
            unlocked_question_ids=["q1", "q2"],
        )
        queue = build_from_snapshot(learning_deck, snapshot)

        assert queue.ids() == ["ic1", "q2", "q1", "q3", "ic2"]
        assert queue.current_index == 2
        assert queue.display_index == 2
        assert queue.items_completed == 2
        assert queue.read_info_card_ids == {"ic1"}
        assert queue.unlocked_question_ids == {"q1", "q2"}
        assert queue.total_items == 6

    def test_entries_carry_current_deck_metadata(self):
        deck = Deck(
            id="d",
            name="D",
            deck_type=DeckType.FLASHCARD,
            items=(make_card("c0", interval=9, ease_factor=2.2),),
        )
        snapshot = SessionSnapshot(deck_id="d", entry_ids=["c0"], current_index=0)
        queue = build_from_snapshot(deck, snapshot)
        assert queue.current.interval == 9

    def test_missing_entries_dropped(self, caplog):
        snapshot = SessionSnapshot(
            deck_id="d",
            entry_ids=["c0", "gone", "c1", "also-gone", "c2"],
            current_index=2,
        )
        with caplog.at_level(logging.WARNING):
            queue = build_from_snapshot(self._deck(3), snapshot)

        assert queue.ids() == ["c0", "c1", "c2"]
        assert queue.current.id == "c1"
        assert queue.dropped_entry_ids == ["gone", "also-gone"]
        assert "Corrupted entry dropped" in caplog.text

    def test_index_clamped_to_queue_length(self):
        snapshot = SessionSnapshot(deck_id="d", entry_ids=["c0", "gone"], current_index=2)
        queue = build_from_snapshot(self._deck(1), snapshot)
        assert queue.current_index == 1
        assert queue.is_complete
