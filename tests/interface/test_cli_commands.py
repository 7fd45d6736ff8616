"""Tests for CLI commands: queries, check, reset, study, session and config."""

import json

import pytest
from typer.testing import CliRunner

from factories import TODAY
from retain.infrastructure.deck_file import load_deck
from retain.interface.cli import app

runner = CliRunner()

FLASHCARD_YAML = """\
id: fc
name: Flashcards
type: flashcard
items:
  - id: c1
    front: one
    back: uno
  - id: c2
    front: two
    back: dos
  - id: c3
    front: three
    back: tres
    interval: 10
    due_date: 2024-05-09
    last_reviewed: 2024-04-29
    mastery_level: 0.53
"""

LEARNING_YAML = """\
id: learn
name: Learning
type: learning
items:
  - id: q1
    question: "2 + 2?"
    options: [{id: a, text: "4"}, {id: b, text: "5"}]
    answer: a
info_cards:
  - id: ic1
    content: "Addition adds numbers."
    unlocks: [q1]
"""


@pytest.fixture
def deck_path(tmp_path, mock_home):
    path = tmp_path / "fc.yaml"
    path.write_text(FLASHCARD_YAML, encoding="utf-8")
    return path


@pytest.fixture
def learning_path(tmp_path, mock_home):
    path = tmp_path / "learn.yaml"
    path.write_text(LEARNING_YAML, encoding="utf-8")
    return path


TODAY_ARGS = ["--today", TODAY.isoformat()]


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition" in result.stdout
    for command in ("due", "mastery", "study", "session", "config"):
        assert command in result.stdout


# --- Read-only queries ---


def test_due(deck_path):
    result = runner.invoke(app, ["due", str(deck_path), *TODAY_ARGS])
    assert result.exit_code == 0
    assert "Flashcards: 2 due of 3" in result.stdout


def test_due_invalid_date(deck_path):
    result = runner.invoke(app, ["due", str(deck_path), "--today", "someday"])
    assert result.exit_code == 2


def test_due_missing_file(tmp_path):
    result = runner.invoke(app, ["due", str(tmp_path / "absent.yaml")])
    assert result.exit_code != 0


def test_due_broken_deck(tmp_path, mock_home):
    path = tmp_path / "bad.yaml"
    path.write_text("- not a deck\n", encoding="utf-8")
    result = runner.invoke(app, ["due", str(path)])
    assert result.exit_code == 1


def test_mastery_json(deck_path):
    result = runner.invoke(app, ["mastery", str(deck_path), *TODAY_ARGS, "--json"])
    assert result.exit_code == 0

    data = json.loads(result.stdout)
    assert data["deck_id"] == "fc"
    assert data["total"] == 3
    assert data["due"] == 2
    assert data["new"] == 2
    assert 0.0 < data["mastery"] < 0.53 / 3


def test_mastery_text(deck_path):
    result = runner.invoke(app, ["mastery", str(deck_path), *TODAY_ARGS])
    assert result.exit_code == 0
    assert "Deck: Flashcards" in result.stdout
    assert "Due:       2" in result.stdout


def test_forecast(deck_path):
    result = runner.invoke(app, ["forecast", str(deck_path), *TODAY_ARGS, "--days", "10"])
    assert result.exit_code == 0

    lines = result.stdout.strip().splitlines()
    assert len(lines) == 10
    assert lines[0].startswith("2024-05-01     2")
    assert lines[8].startswith("2024-05-09     1")


def test_simulate(deck_path):
    result = runner.invoke(
        app,
        ["simulate", str(deck_path), *TODAY_ARGS, "--days", "3", "--new-per-day", "1", "--seed", "7"],
    )
    assert result.exit_code == 0

    lines = result.stdout.strip().splitlines()
    assert len(lines) == 3
    assert "new=1" in lines[0]
    assert "new=0" in lines[2]


def test_check_learning_deck(learning_path):
    result = runner.invoke(app, ["check", str(learning_path), *TODAY_ARGS])
    assert result.exit_code == 0, result.output
    assert "Learning: 1 questions, 1 info cards, 1 unlock edges" in result.stdout
    assert "q1 <- ic1" in result.stdout
    assert "Warning" not in result.output


def test_check_reports_unused_and_dangling_info_cards(tmp_path, mock_home):
    path = tmp_path / "broken.yaml"
    path.write_text(
        LEARNING_YAML
        + "  - id: ic2\n    content: Nothing to unlock.\n"
        + "  - id: ic3\n    content: Points nowhere.\n    unlocks: [q1, q9]\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["check", str(path), *TODAY_ARGS])

    assert result.exit_code == 1
    assert "2 unlock edges" in result.output
    assert "q1 <- ic1, ic3" in result.output
    assert "info card ic2 unlocks no questions" in result.output
    assert "info card ic3 unlocks missing q9" in result.output


# --- Reset ---


def test_reset_force(deck_path):
    result = runner.invoke(app, ["reset", str(deck_path), *TODAY_ARGS, "--force"])
    assert result.exit_code == 0

    deck = load_deck(deck_path, TODAY)
    c3 = deck.get_item("c3")
    assert c3.is_new
    assert c3.due_date == TODAY
    assert c3.mastery_level == 0.0
    assert c3.content["front"] == "three"


def test_reset_declined(deck_path):
    result = runner.invoke(app, ["reset", str(deck_path), *TODAY_ARGS], input="n\n")
    assert result.exit_code == 1
    assert load_deck(deck_path, TODAY).get_item("c3").interval == 10


# --- Study ---


def test_study_full_session(deck_path, mock_home):
    # Reveal and rate both due cards: Good, then Easy
    result = runner.invoke(app, ["study", str(deck_path), *TODAY_ARGS], input="\n3\n\n4\n")
    assert result.exit_code == 0, result.output
    assert "Q: one" in result.output
    assert "A: uno" in result.output
    assert "Session complete!" in result.output

    deck = load_deck(deck_path, TODAY)
    assert deck.get_item("c1").interval == 3
    assert deck.get_item("c2").interval == 5
    assert deck.get_item("c3").interval == 10

    sessions = mock_home / ".config/retain/sessions"
    assert not list(sessions.glob("*.json"))


def test_study_pause_and_resume(deck_path, mock_home):
    first = runner.invoke(app, ["study", str(deck_path), *TODAY_ARGS], input="\n1\nq\n")
    assert first.exit_code == 0, first.output
    assert "Session paused" in first.output

    shown = runner.invoke(app, ["session", "show", "fc"])
    assert shown.exit_code == 0
    snapshot = json.loads(shown.stdout)
    assert snapshot["entry_ids"] == ["c1", "c2"]
    assert snapshot["current_index"] == 1

    listed = runner.invoke(app, ["session", "list"])
    assert "session_deck_fc__normal" in listed.stdout

    # The resumed session keeps its queue and picks up at c2
    second = runner.invoke(app, ["study", str(deck_path), *TODAY_ARGS], input="\n3\n")
    assert second.exit_code == 0, second.output
    assert "Q: two" in second.output
    assert "Session complete!" in second.output
    assert "Due tomorrow:           0 items" in second.output
    assert "Due in the next 7 days: 1 items" in second.output


def test_study_abandoned_keeps_reviews(deck_path, mock_home):
    # Input runs out at the prompt for c2, which aborts the command
    first = runner.invoke(app, ["study", str(deck_path), *TODAY_ARGS], input="\n1\n")
    assert first.exit_code == 1

    c1 = load_deck(deck_path, TODAY).get_item("c1")
    assert c1.lapses == 1
    assert c1.interval == 1
    assert c1.last_reviewed == TODAY

    snapshot = json.loads(runner.invoke(app, ["session", "show", "fc"]).stdout)
    assert snapshot["current_index"] == 1

    second = runner.invoke(app, ["study", str(deck_path), *TODAY_ARGS], input="\n3\n")
    assert second.exit_code == 0, second.output
    assert "Q: two" in second.output
    assert load_deck(deck_path, TODAY).get_item("c1").last_reviewed == TODAY


def test_study_learning_deck(learning_path):
    result = runner.invoke(
        app, ["study", str(learning_path), *TODAY_ARGS], input="\na\n3\n"
    )
    assert result.exit_code == 0, result.output
    assert "Addition adds numbers." in result.output
    assert "Unlocked 1 question(s)." in result.output
    assert "Correct!" in result.output

    assert load_deck(learning_path, TODAY).get_item("q1").interval == 3


def test_study_cram_leaves_deck_untouched(deck_path):
    before = deck_path.read_text(encoding="utf-8")
    result = runner.invoke(
        app,
        ["study", str(deck_path), *TODAY_ARGS, "--mode", "cram"],
        input="\n1\n\n1\n\n1\n",
    )
    assert result.exit_code == 0, result.output
    assert "Session complete!" in result.output
    assert deck_path.read_text(encoding="utf-8") == before


def test_study_nothing_due(tmp_path, mock_home):
    path = tmp_path / "later.yaml"
    path.write_text("id: later\nitems:\n  - {id: a, interval: 4, due_date: 2030-01-01}\n")
    result = runner.invoke(app, ["study", str(path), *TODAY_ARGS])
    assert result.exit_code == 0
    assert "All caught up!" in result.output


def test_study_rejects_bad_rating(deck_path):
    result = runner.invoke(app, ["study", str(deck_path), *TODAY_ARGS], input="\n7\n3\nq\n")
    assert result.exit_code == 0, result.output
    assert "Invalid rating" in result.output
    assert load_deck(deck_path, TODAY).get_item("c1").interval == 3


# --- Session / config ---


def test_session_show_missing(mock_home):
    result = runner.invoke(app, ["session", "show", "nothing"])
    assert result.exit_code == 1
    assert "No saved session" in result.output


def test_session_clear(deck_path, mock_home):
    runner.invoke(app, ["study", str(deck_path), *TODAY_ARGS], input="q\n")
    assert runner.invoke(app, ["session", "show", "fc"]).exit_code == 0

    result = runner.invoke(app, ["session", "clear", "fc"])
    assert result.exit_code == 0
    assert runner.invoke(app, ["session", "show", "fc"]).exit_code == 1


def test_config_show(mock_home):
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0

    data = json.loads(result.stdout)
    assert data["leech_threshold"] == 8
    assert data["hard_multiplier"] == 0.8
    assert data["snapshot_dir"].endswith("sessions")


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "retain 0.3.0"
