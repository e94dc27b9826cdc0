"""
This module defines the ReviewSessionManager class, which drives a single
review session: it loads the due cards, hands them out one at a time, and
routes each grade through the shared ReviewProcessor.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from .constants import PASSING_GRADE
from .db.database import CardDatabase
from .models import Card
from .review_processor import ReviewProcessor
from .scheduler import BaseScheduler

logger = logging.getLogger(__name__)


class ReviewSessionManager:
    """
    Manages a review session for cards.

    This class is responsible for:
    - Initializing a review session with the cards that are due.
    - Providing cards one by one for review.
    - Processing grades and updating card states.
    """

    def __init__(self, db_manager: CardDatabase, scheduler: BaseScheduler):
        self.db = db_manager
        self.scheduler = scheduler
        self.review_queue: List[Card] = []
        self.total_cards = 0
        self.passed = 0
        self.failed = 0
        self.review_processor = ReviewProcessor(db_manager, scheduler)

    def initialize_session(
        self, limit: Optional[int] = 20, now: Optional[datetime] = None
    ) -> None:
        """
        Load up to `limit` cards due at `now` into the session queue, earliest
        due first, ties in insertion order.
        """
        now = now or datetime.now(timezone.utc)
        self.review_queue = self.db.get_due_cards(on=now, limit=limit)
        self.total_cards = len(self.review_queue)
        self.passed = 0
        self.failed = 0
        logger.info(f"Initialized session with {self.total_cards} cards.")

    def get_next_card(self) -> Optional[Card]:
        """
        Retrieves the next card to be reviewed, or None if the queue is empty.
        """
        if not self.review_queue:
            logger.info("Review queue is empty. Session may be complete.")
            return None
        return self.review_queue[0]

    def _get_card_from_queue(self, card_uuid: UUID) -> Optional[Card]:
        for card in self.review_queue:
            if card.uuid == card_uuid:
                return card
        return None

    def _remove_card_from_queue(self, card_uuid: UUID) -> None:
        self.review_queue = [
            card for card in self.review_queue if card.uuid != card_uuid
        ]

    def skip_card(self, card_uuid: UUID) -> None:
        """Drop a card from this session without grading it."""
        self._remove_card_from_queue(card_uuid)

    def submit_review(
        self,
        card_uuid: UUID,
        grade: int,
        reviewed_at: Optional[datetime] = None,
    ) -> Card:
        """
        Submit a grade for a card in the current session.

        Returns:
            Card: The updated card.

        Raises:
            ValueError: If the card is not part of the current session.
        """
        card = self._get_card_from_queue(card_uuid)
        if not card:
            raise ValueError(
                f"Card {card_uuid} not found in the current review session."
            )

        updated_card = self.review_processor.process_review(
            card=card, grade=grade, reviewed_at=reviewed_at
        )

        if grade >= PASSING_GRADE:
            self.passed += 1
        else:
            self.failed += 1
        self._remove_card_from_queue(card_uuid)
        return updated_card

    def get_session_stats(self) -> Dict[str, int]:
        """
        Returns:
            dict: total_cards, reviewed_cards, passed and failed counts.
        """
        return {
            "total_cards": self.total_cards,
            "reviewed_cards": self.passed + self.failed,
            "passed": self.passed,
            "failed": self.failed,
        }
