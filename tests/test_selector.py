from datetime import datetime, timedelta, timezone

from sm2deck.models import Card
from sm2deck.selector import due_queue, select_next_due

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _card(front: str, due_in: timedelta) -> Card:
    return Card(front=front, back="-", due_at=NOW + due_in)


def test_no_cards():
    assert select_next_due([], NOW) is None
    assert due_queue([], NOW) == []


def test_nothing_due():
    cards = [_card("a", timedelta(minutes=1)), _card("b", timedelta(days=2))]
    assert select_next_due(cards, NOW) is None
    assert due_queue(cards, NOW) == []


def test_earliest_due_wins():
    late = _card("late", -timedelta(hours=1))
    early = _card("early", -timedelta(days=3))
    future = _card("future", timedelta(days=1))
    assert select_next_due([late, future, early], NOW) is early
    assert due_queue([late, future, early], NOW) == [early, late]


def test_due_exactly_now_counts():
    card = _card("now", timedelta(0))
    assert select_next_due([card], NOW) is card


def test_ties_keep_insertion_order():
    first = _card("first", -timedelta(hours=2))
    second = _card("second", -timedelta(hours=2))
    third = _card("third", -timedelta(hours=2))
    assert select_next_due([first, second, third], NOW) is first
    assert select_next_due([second, first, third], NOW) is second
    assert due_queue([third, first, second], NOW) == [third, first, second]


def test_selection_agrees_with_queue_head():
    cards = [
        _card(str(i), -timedelta(minutes=(i * 7) % 5))
        for i in range(10)
    ]
    assert select_next_due(cards, NOW) is due_queue(cards, NOW)[0]


def test_naive_now_treated_as_utc():
    card = _card("a", -timedelta(minutes=1))
    assert select_next_due([card], NOW.replace(tzinfo=None)) is card
