import logging
import pytest
from pathlib import Path
from typing import Generator
from datetime import datetime, timedelta, timezone

from sm2deck.models import Card
from sm2deck.db import CardDatabase


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(request):
    """
    Run each test with the working directory set to its tmpdir, so a stray
    .env file or relative database path never leaks between tests.
    """
    tmpdir = request.getfixturevalue("tmpdir")
    with tmpdir.as_cwd():
        yield


@pytest.fixture
def base_time() -> datetime:
    return datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


# --- Database Fixtures ---
@pytest.fixture
def db_path_memory() -> str:
    return ":memory:"


@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    return tmp_path / "test_cards.db"


@pytest.fixture(params=["memory", "file"])
def db_manager(
    request, db_path_memory: str, db_path_file: Path
) -> Generator[CardDatabase, None, None]:
    """
    Provide a CardDatabase, in-memory or file-backed, closed on teardown.
    """
    if request.param == "memory":
        db_man = CardDatabase(db_path_memory)
    else:
        db_man = CardDatabase(db_path_file)
    try:
        yield db_man
    finally:
        db_man.close_connection()
        if request.param == "file" and db_path_file.exists():
            try:
                db_path_file.unlink()
            except OSError as e:
                logging.warning(
                    f"Error removing temporary DB file in test fixture teardown: {e}"
                )


@pytest.fixture
def initialized_db_manager(db_manager: CardDatabase) -> CardDatabase:
    db_manager.initialize_schema()
    return db_manager


@pytest.fixture
def sample_card1(base_time: datetime) -> Card:
    """A new card, due at base_time."""
    return Card(
        uuid="11111111-1111-1111-1111-111111111111",
        front="Capital of France?",
        back="Paris",
        added_at=base_time,
        modified_at=base_time,
        due_at=base_time,
    )


@pytest.fixture
def sample_card2(base_time: datetime) -> Card:
    """A card mid-way through its streak, due one hour after base_time."""
    return Card(
        uuid="22222222-2222-2222-2222-222222222222",
        front="Capital of Italy?",
        back="Rome",
        added_at=base_time,
        modified_at=base_time,
        due_at=base_time + timedelta(hours=1),
        interval=6,
        repetition=2,
        ease_factor=2.7,
    )


@pytest.fixture
def sample_card3(base_time: datetime) -> Card:
    """A card not due until a week after base_time."""
    return Card(
        uuid="33333333-3333-3333-3333-333333333333",
        front="Capital of Spain?",
        back="Madrid",
        added_at=base_time,
        modified_at=base_time,
        due_at=base_time + timedelta(days=7),
        interval=7,
        repetition=3,
        ease_factor=1.3,
    )
