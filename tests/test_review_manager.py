"""
Unit and integration tests for ReviewSessionManager in sm2deck.review_manager.
"""

import pytest
import uuid
from datetime import timedelta
from unittest.mock import MagicMock

from sm2deck.db.database import CardDatabase
from sm2deck.exceptions import InvalidArgumentError
from sm2deck.models import Card
from sm2deck.review_manager import ReviewSessionManager
from sm2deck.scheduler import SM2Scheduler

# --- Fixtures ---


@pytest.fixture
def mock_db() -> MagicMock:
    db = MagicMock(spec=CardDatabase)
    db.get_due_cards.return_value = []
    return db


@pytest.fixture
def populated_db(initialized_db_manager, sample_card1, sample_card2, sample_card3):
    initialized_db_manager.upsert_cards_batch(
        [sample_card1, sample_card2, sample_card3]
    )
    return initialized_db_manager


# --- Unit tests with a mocked store ---


def test_initialize_session_queries_due_cards(mock_db, base_time):
    manager = ReviewSessionManager(db_manager=mock_db, scheduler=SM2Scheduler())
    manager.initialize_session(limit=5, now=base_time)

    mock_db.get_due_cards.assert_called_once_with(on=base_time, limit=5)
    assert manager.get_next_card() is None
    assert manager.get_session_stats() == {
        "total_cards": 0,
        "reviewed_cards": 0,
        "passed": 0,
        "failed": 0,
    }


def test_submit_review_for_card_outside_session(mock_db):
    manager = ReviewSessionManager(db_manager=mock_db, scheduler=SM2Scheduler())
    manager.initialize_session()
    with pytest.raises(ValueError, match="not found in the current review session"):
        manager.submit_review(uuid.uuid4(), 4)
    mock_db.add_review_and_update_card.assert_not_called()


def test_skip_card_removes_without_grading(mock_db):
    first = Card(front="Q1", back="A1")
    second = Card(front="Q2", back="A2")
    mock_db.get_due_cards.return_value = [first, second]
    manager = ReviewSessionManager(db_manager=mock_db, scheduler=SM2Scheduler())
    manager.initialize_session()

    manager.skip_card(first.uuid)

    assert manager.get_next_card() is second
    mock_db.add_review_and_update_card.assert_not_called()
    assert manager.get_session_stats() == {
        "total_cards": 2,
        "reviewed_cards": 0,
        "passed": 0,
        "failed": 0,
    }


# --- Integration tests with a real store ---


def test_session_walks_due_cards_in_order(populated_db, base_time, sample_card1, sample_card2):
    manager = ReviewSessionManager(db_manager=populated_db, scheduler=SM2Scheduler())
    manager.initialize_session(now=base_time + timedelta(hours=2))

    assert [c.uuid for c in manager.review_queue] == [
        sample_card1.uuid,
        sample_card2.uuid,
    ]

    first = manager.get_next_card()
    assert first.uuid == sample_card1.uuid
    updated_first = manager.submit_review(
        first.uuid, 5, reviewed_at=base_time + timedelta(hours=2)
    )
    assert (updated_first.interval, updated_first.repetition) == (1, 1)

    second = manager.get_next_card()
    assert second.uuid == sample_card2.uuid
    updated_second = manager.submit_review(
        second.uuid, 1, reviewed_at=base_time + timedelta(hours=2)
    )
    assert (updated_second.interval, updated_second.repetition) == (1, 0)
    assert updated_second.ease_factor == pytest.approx(2.7 - 0.54)

    assert manager.get_next_card() is None
    assert manager.get_session_stats() == {
        "total_cards": 2,
        "reviewed_cards": 2,
        "passed": 1,
        "failed": 1,
    }
    # Both cards are now due tomorrow, nothing left for today.
    assert populated_db.get_due_cards(on=base_time + timedelta(hours=3)) == []


def test_session_limit(populated_db, base_time):
    manager = ReviewSessionManager(db_manager=populated_db, scheduler=SM2Scheduler())
    manager.initialize_session(limit=1, now=base_time + timedelta(days=30))
    assert len(manager.review_queue) == 1


def test_invalid_grade_keeps_card_in_queue(populated_db, base_time, sample_card1):
    manager = ReviewSessionManager(db_manager=populated_db, scheduler=SM2Scheduler())
    manager.initialize_session(now=base_time)

    with pytest.raises(InvalidArgumentError):
        manager.submit_review(sample_card1.uuid, -1)

    assert manager.get_next_card().uuid == sample_card1.uuid
    assert manager.get_session_stats()["reviewed_cards"] == 0
