from datetime import date

import pytest

from factories import TODAY, make_card, make_question
from retain.domain.models import Deck, DeckType, InfoCard


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config files and snapshots from the real home directory
    monkeypatch.setenv("HOME", str(home))
    for var in ("RETAIN_SHUFFLE", "RETAIN_SNAPSHOT_DIR", "RETAIN_LEECH_ACTION"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def flashcard_deck():
    """Three due cards, one suspended, one due next week."""
    return Deck(
        id="fc",
        name="Flashcards",
        deck_type=DeckType.FLASHCARD,
        items=(
            make_card("c1", content={"front": "one", "back": "uno"}),
            make_card("c2", content={"front": "two", "back": "dos"}),
            make_card("c3", interval=3, due_date=date(2024, 4, 29)),
            make_card("c4", suspended=True),
            make_card("c5", interval=10, due_date=date(2024, 5, 8)),
        ),
    )


@pytest.fixture
def learning_deck():
    """
    ic1 unlocks q1 and q2; q3 is free; ic2 unlocks q4.

    Authored order: ic1, q3, ic2, q1, q2, q4.
    """
    return Deck(
        id="learn",
        name="Learning",
        deck_type=DeckType.LEARNING,
        items=(
            make_question("q1"),
            make_question("q2"),
            make_question("q3"),
            make_question("q4"),
        ),
        info_cards=(
            InfoCard(id="ic1", unlocks_question_ids=("q1", "q2"), content={"content": "intro"}),
            InfoCard(id="ic2", unlocks_question_ids=("q4",)),
        ),
        authored_order=("ic1", "q3", "ic2", "q1", "q2", "q4"),
    )
