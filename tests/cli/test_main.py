# Standard library imports
import re
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch
from uuid import uuid4

# Third-party imports
import pytest
from typer.testing import CliRunner

# Local application imports
from sm2deck.cli import main as cli_main
from sm2deck.cli.main import app
from sm2deck.config import settings
from sm2deck.db.database import CardDatabase
from sm2deck.exceptions import DatabaseConnectionError


runner = CliRunner()


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


def normalize_output(text: str) -> str:
    """Strip ANSI codes and collapse all whitespace into single spaces."""
    text = strip_ansi(text)
    return re.sub(r"\s+", " ", text).strip()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # Keep rich tables from wrapping cell contents across lines.
    monkeypatch.setattr(cli_main.console, "width", 200)


@pytest.fixture
def db_file(tmp_path) -> Path:
    return tmp_path / "cli.db"


@pytest.fixture
def seeded_db(db_file, base_time):
    with CardDatabase(db_file) as db:
        first = db.add_card("Bonjour", "Hello", now=base_time)
        second = db.add_card("Merci", "Thank you", now=base_time + timedelta(hours=1))
    return db_file, first, second


# --- add ---


def test_add_card(db_file):
    result = runner.invoke(app, ["add", "Bonjour", "Hello", "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    assert "Added card" in result.output

    with CardDatabase(db_file) as db:
        cards = db.get_all_cards()
    assert len(cards) == 1
    assert cards[0].front == "Bonjour"
    assert cards[0].back == "Hello"
    assert str(cards[0].uuid) in normalize_output(result.output)


def test_add_card_uses_env_var(db_file):
    result = runner.invoke(
        app, ["add", "Bonjour", "Hello"], env={"SM2DECK_DB": str(db_file)}
    )
    assert result.exit_code == 0, result.output
    with CardDatabase(db_file) as db:
        assert len(db.get_all_cards()) == 1


def test_add_card_rejects_empty_front(db_file):
    result = runner.invoke(app, ["add", "", "Hello", "--db", str(db_file)])
    assert result.exit_code == 1
    assert "Invalid card" in result.output


def test_add_card_database_error(db_file):
    with patch.object(
        CardDatabase, "add_card", side_effect=DatabaseConnectionError("disk gone")
    ):
        result = runner.invoke(app, ["add", "Q", "A", "--db", str(db_file)])
    assert result.exit_code == 1
    assert "Database Error" in result.output
    assert "disk gone" in result.output


# --- delete ---


def test_delete_card(seeded_db):
    db_file, first, second = seeded_db
    result = runner.invoke(app, ["delete", str(first.uuid), "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    assert "Deleted card" in result.output
    with CardDatabase(db_file) as db:
        assert [c.uuid for c in db.get_all_cards()] == [second.uuid]


def test_delete_missing_card(seeded_db):
    db_file, _, _ = seeded_db
    missing = uuid4()
    result = runner.invoke(app, ["delete", str(missing), "--db", str(db_file)])

    assert result.exit_code == 1
    assert f"Error: card {missing} not found." in normalize_output(result.output)
    with CardDatabase(db_file) as db:
        assert len(db.get_all_cards()) == 2


def test_delete_rejects_malformed_id(db_file):
    result = runner.invoke(app, ["delete", "not-a-uuid", "--db", str(db_file)])
    assert result.exit_code != 0


# --- list ---


def test_list_empty(db_file):
    result = runner.invoke(app, ["list", "--db", str(db_file)])
    assert result.exit_code == 0
    assert "No cards found in the database." in result.output


def test_list_cards_in_insertion_order(seeded_db):
    db_file, first, second = seeded_db
    result = runner.invoke(app, ["list", "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    output = normalize_output(result.output)
    assert "Cards" in output
    assert output.index("Bonjour") < output.index("Merci")
    assert str(first.uuid) in output
    assert "2.50" in output
    assert "due now" in output


# --- next ---


def test_next_shows_earliest_due_card(seeded_db):
    db_file, first, _ = seeded_db
    result = runner.invoke(app, ["next", "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    output = normalize_output(result.output)
    assert "Bonjour" in output
    assert "Merci" not in output
    assert str(first.uuid) in output


def test_next_with_nothing_due(db_file, base_time):
    with CardDatabase(db_file) as db:
        db.add_card("Future", "-", now=base_time + timedelta(days=365 * 100))
    result = runner.invoke(app, ["next", "--db", str(db_file)])

    assert result.exit_code == 0
    assert "No cards are due for review." in result.output


# --- stats ---


def test_stats_empty(db_file):
    result = runner.invoke(app, ["stats", "--db", str(db_file)])
    assert result.exit_code == 0, result.output
    output = normalize_output(result.output)
    assert re.search(r"Total Cards\W+0", output)
    assert "No cards found in the database." in output


def test_stats(seeded_db):
    db_file, _, _ = seeded_db
    result = runner.invoke(app, ["stats", "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    output = normalize_output(result.output)
    assert "Overall Database Stats" in output
    assert re.search(r"Total Cards\W+2", output)
    assert re.search(r"Total Reviews\W+0", output)
    assert re.search(r"Due Now\W+2", output)
    assert "Repetition Streaks" in output
    assert "Average ease factor: 2.50" in output


# --- review ---


def test_review_passes_options_to_logic(db_file):
    with patch("sm2deck.cli.main.review_logic") as mock_logic:
        result = runner.invoke(app, ["review", "--db", str(db_file), "--limit", "3"])

    assert result.exit_code == 0, result.output
    mock_logic.assert_called_once_with(
        db_path=db_file, limit=3, max_grade=settings.max_grade
    )


def test_review_uses_configured_limit(db_file, monkeypatch):
    monkeypatch.setattr(settings, "review_limit", 7)
    with patch("sm2deck.cli.main.review_logic") as mock_logic:
        result = runner.invoke(app, ["review", "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    assert mock_logic.call_args.kwargs["limit"] == 7


def test_review_database_error(db_file):
    with patch(
        "sm2deck.cli.main.review_logic",
        side_effect=DatabaseConnectionError("locked"),
    ):
        result = runner.invoke(app, ["review", "--db", str(db_file)])
    assert result.exit_code == 1
    assert "A database error occurred: locked" in result.output


def test_review_session_end_to_end(seeded_db):
    db_file, first, second = seeded_db
    # Enter to reveal, then a grade, for each of the two due cards.
    with patch("rich.console.Console.input", side_effect=["", "5", "", "1"]):
        result = runner.invoke(app, ["review", "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    output = normalize_output(result.output)
    assert "Card 1 of 2" in output
    assert "Next due in 1 day" in output
    assert "Review session finished. Well done! 1 passed, 1 failed." in output

    with CardDatabase(db_file) as db:
        reviewed_first = db.get_card_by_uuid(first.uuid)
        reviewed_second = db.get_card_by_uuid(second.uuid)
        assert (reviewed_first.interval, reviewed_first.repetition) == (1, 1)
        assert reviewed_first.ease_factor == pytest.approx(2.6)
        assert (reviewed_second.interval, reviewed_second.repetition) == (1, 0)
        assert reviewed_second.ease_factor == pytest.approx(1.96)
        assert len(db.get_reviews_for_card(first.uuid)) == 1


def test_review_with_no_due_cards(db_file):
    result = runner.invoke(app, ["review", "--db", str(db_file)])
    assert result.exit_code == 0, result.output
    assert "No cards are due for review." in result.output


def test_review_rejects_non_positive_limit(db_file):
    with patch("sm2deck.cli.main.review_logic") as mock_logic:
        result = runner.invoke(app, ["review", "--db", str(db_file), "--limit", "-1"])
    assert result.exit_code == 2
    mock_logic.assert_not_called()
