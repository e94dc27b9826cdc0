"""
Review selection: decides which due card is presented next.

Cards are ordered by due date; cards sharing a due date keep the order in
which they were supplied (insertion order when fed from the store).
"""

import heapq
from datetime import datetime
from typing import Iterable, List, Optional

from .models import Card


def due_queue(cards: Iterable[Card], now: datetime) -> List[Card]:
    """Return every card due at `now`, earliest due date first (stable)."""
    return sorted(
        (card for card in cards if card.is_due(now)),
        key=lambda card: card.due_at,
    )


def select_next_due(cards: Iterable[Card], now: datetime) -> Optional[Card]:
    """
    Pick the card to review next, or None when nothing is due.

    Uses a min-heap keyed by (due_at, position) so ties resolve to the card
    that came first.
    """
    heap = [
        (card.due_at, position, card)
        for position, card in enumerate(cards)
        if card.is_due(now)
    ]
    if not heap:
        return None
    heapq.heapify(heap)
    return heap[0][2]
