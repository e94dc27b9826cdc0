"""
Utility functions for data marshalling between Pydantic models and database formats.  # noqa: E501
This module helps decouple the core database logic from the specifics of data conversion.  # noqa: E501
"""

from typing import Any, Dict, List, Sequence, Tuple

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import Card, Review


def transform_db_row_for_card(row_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Prepare a cards row for constructing a Card model.

    Drops the storage-only `position` column and maps `interval_days` back to
    the model's `interval` field.
    """
    data = row_dict.copy()
    data.pop("position", None)
    if "interval_days" in data:
        data["interval"] = data.pop("interval_days")
    return data


def card_to_db_params_list(cards: Sequence[Card]) -> List[Tuple]:
    """
    Convert cards into parameter tuples for bulk insertion, in the order:
    (uuid, front, back, added_at, modified_at, due_at, interval_days,
    repetition, ease_factor, last_review_id).
    """
    return [
        (
            card.uuid,
            card.front,
            card.back,
            card.added_at,
            card.modified_at,
            card.due_at,
            card.interval,
            card.repetition,
            card.ease_factor,
            card.last_review_id,
        )
        for card in cards
    ]


def db_row_to_card(row_dict: Dict[str, Any]) -> Card:
    """
    Create a Card model from a database row dictionary.

    Raises:
        MarshallingError: If the row cannot be validated into a Card.
    """
    data = transform_db_row_for_card(row_dict)
    try:
        return Card(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse card from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def review_to_db_params_tuple(review: Review) -> Tuple:
    """
    Convert a Review model into a tuple suitable for database insertion.

    Returns:
        tuple: (card_uuid, ts, grade, interval_days_before, repetition_before,
                ease_factor_before, interval_days, repetition, ease_factor,
                next_due, review_type)
    """
    return (
        review.card_uuid,
        review.ts,
        review.grade,
        review.interval_before,
        review.repetition_before,
        review.ease_factor_before,
        review.interval,
        review.repetition,
        review.ease_factor,
        review.next_due,
        review.review_type,
    )


def db_row_to_review(row_dict: Dict[str, Any]) -> Review:
    """Converts a database row dictionary to a Review Pydantic model."""
    data = row_dict.copy()
    data["interval"] = data.pop("interval_days")
    data["interval_before"] = data.pop("interval_days_before")
    try:
        return Review(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Data validation failed for review: {e}", original_exception=e
        ) from e
