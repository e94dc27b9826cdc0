"""
Shared review processing logic for sm2deck.

One review is one cycle: read the card's state snapshot, call the scheduler
once, and write the single resulting snapshot back through the item store.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from .db.database import CardDatabase
from .models import Card, Review
from .scheduler import BaseScheduler, SchedulerOutput

logger = logging.getLogger(__name__)


class ReviewProcessor:
    """
    Processes review submissions with consistent logic across all review
    workflows (the CLI session and direct library calls).
    """

    def __init__(self, db_manager: CardDatabase, scheduler: BaseScheduler):
        """
        Args:
            db_manager: Item store used for persistence.
            scheduler: Scheduler used to compute the next state.
        """
        self.db_manager = db_manager
        self.scheduler = scheduler

    def process_review(
        self,
        card: Card,
        grade: int,
        reviewed_at: Optional[datetime] = None,
    ) -> Card:
        """
        Grade a card and persist the outcome.

        Args:
            card: The card being reviewed, as last read from the store.
            grade: Recall quality, 0-10.
            reviewed_at: Review timestamp (defaults to current time).

        Returns:
            The updated Card as stored.

        Raises:
            InvalidArgumentError: If the grade is outside 0-10.
            ReviewOperationError: If the database write fails.
        """
        ts = reviewed_at or datetime.now(timezone.utc)

        logger.debug(f"Processing review for card {card.uuid} with grade {grade}")

        try:
            output: SchedulerOutput = self.scheduler.compute_next_state(
                card=card, grade=grade, review_ts=ts
            )

            new_review = Review(
                card_uuid=card.uuid,
                ts=ts,
                grade=grade,
                interval_before=card.interval,
                repetition_before=card.repetition,
                ease_factor_before=card.ease_factor,
                interval=output.state.interval,
                repetition=output.state.repetition,
                ease_factor=output.state.ease_factor,
                next_due=output.next_due,
                review_type=output.review_type,
            )

            updated_card = self.db_manager.add_review_and_update_card(new_review)
        except Exception:
            logger.exception(f"Failed to process review for card {card.uuid}")
            raise

        logger.debug(
            f"Review processed for card {card.uuid}. "
            f"Next due: {updated_card.due_at}, interval: {updated_card.interval}"
        )
        return updated_card

    def process_review_by_uuid(
        self,
        card_uuid: UUID,
        grade: int,
        reviewed_at: Optional[datetime] = None,
    ) -> Card:
        """
        Fetch a card by UUID and process a review for it.

        Raises:
            ValueError: If the card does not exist.
        """
        card = self.db_manager.get_card_by_uuid(card_uuid)
        if not card:
            raise ValueError(f"Card {card_uuid} not found in database")

        return self.process_review(
            card=card, grade=grade, reviewed_at=reviewed_at
        )
