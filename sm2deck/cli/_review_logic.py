from pathlib import Path
from typing import Optional

from sm2deck.cli.review_ui import start_review_flow
from sm2deck.db.database import CardDatabase
from sm2deck.review_manager import ReviewSessionManager
from sm2deck.scheduler import SM2Scheduler


def review_logic(db_path: Path, limit: Optional[int], max_grade: int):
    """
    Set up and start a review session over every due card.

    Parameters:
        db_path (Path): Path to the card database file.
        limit (Optional[int]): Maximum number of cards in the session.
        max_grade (int): Highest grade offered at the prompt.
    """
    with CardDatabase(db_path=db_path) as db_manager:
        db_manager.initialize_schema()

        manager = ReviewSessionManager(
            db_manager=db_manager,
            scheduler=SM2Scheduler(),
        )

        start_review_flow(manager, limit=limit, max_grade=max_grade)
