"""
Pydantic models for cards, their spaced-repetition state, and review events.
"""

from __future__ import annotations

import uuid
from uuid import UUID
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DEFAULT_EASE_FACTOR,
    MAX_GRADE,
    MIN_EASE_FACTOR,
    MIN_GRADE,
)


def _to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SpacedRepetitionState(BaseModel):
    """
    The memory-strength snapshot the SM-2 scheduler reads and produces.

    Instances are immutable: every review yields a new snapshot.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval: int = Field(
        default=0,
        ge=0,
        description="Days until the item is next due.",
    )
    repetition: int = Field(
        default=0,
        ge=0,
        description="Consecutive passing reviews since the last lapse.",
    )
    ease_factor: float = Field(
        default=DEFAULT_EASE_FACTOR,
        ge=MIN_EASE_FACTOR,
        allow_inf_nan=False,
        description="Interval growth multiplier; lower means harder.",
    )

    @classmethod
    def initial(cls) -> "SpacedRepetitionState":
        """State assigned to a freshly created card."""
        return cls(interval=0, repetition=0, ease_factor=DEFAULT_EASE_FACTOR)


class Card(BaseModel):
    """
    A learning item: its content, due date, and cached scheduler state.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    uuid: UUID = Field(
        default_factory=uuid.uuid4,
        description="Unique UUIDv4 for the card. Auto-generated.",
    )
    front: str = Field(
        ...,
        min_length=1,
        max_length=1024,
        description="Prompt shown first during review.",
    )
    back: str = Field(
        ...,
        max_length=1024,
        description="Answer revealed after the prompt.",
    )
    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when card was first added (persists).",
    )
    modified_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of last modification.",
    )
    due_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp from which the card is due for review.",
    )
    interval: int = Field(default=0, ge=0)
    repetition: int = Field(default=0, ge=0)
    ease_factor: float = Field(
        default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR, allow_inf_nan=False
    )
    last_review_id: Optional[int] = Field(
        default=None,
        description="ID of the last review record for this card.",
    )

    @field_validator("added_at", "modified_at", "due_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return _to_utc(value)

    @property
    def srs_state(self) -> SpacedRepetitionState:
        """The card's scheduler state as an immutable snapshot."""
        return SpacedRepetitionState(
            interval=self.interval,
            repetition=self.repetition,
            ease_factor=self.ease_factor,
        )

    def is_due(self, now: datetime) -> bool:
        """A card is due once its due timestamp has been reached."""
        return self.due_at <= _to_utc(now)


class Review(BaseModel):
    """
    Represents a single grading event for a card, with the scheduler state
    before and after it.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    review_id: Optional[int] = Field(
        default=None,
        description="Auto-incrementing PK from reviews table (None if new).",
    )
    card_uuid: UUID = Field(
        ...,
        description="UUID of reviewed card (links to Card.uuid).",
    )
    ts: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="The UTC timestamp when the review occurred.",
    )
    grade: int = Field(
        ...,
        ge=MIN_GRADE,
        le=MAX_GRADE,
        description="Recall quality, 0 (blackout) to 10 (perfect).",
    )
    interval_before: int = Field(default=0, ge=0)
    repetition_before: int = Field(default=0, ge=0)
    ease_factor_before: float = Field(
        default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR, allow_inf_nan=False
    )
    interval: int = Field(
        ...,
        ge=1,
        description="Interval in days produced by the scheduler.",
    )
    repetition: int = Field(..., ge=0)
    ease_factor: float = Field(..., ge=MIN_EASE_FACTOR, allow_inf_nan=False)
    next_due: datetime = Field(
        ...,
        description="Timestamp the card becomes due again.",
    )
    review_type: Optional[str] = Field(
        default="review",
        description="Review type (learn/review/relearn).",
    )

    @field_validator("ts", "next_due")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return _to_utc(value)

    @field_validator("review_type")
    @classmethod
    def check_review_type_is_allowed(cls, v: str | None) -> str | None:
        """Ensures review_type is allowed or None."""
        ALLOWED_REVIEW_TYPES = {"learn", "review", "relearn"}
        if v is not None and v not in ALLOWED_REVIEW_TYPES:
            raise ValueError(
                f"Invalid review_type: '{v}'. "
                f"Allowed: {ALLOWED_REVIEW_TYPES} or None."
            )
        return v

    @property
    def passed(self) -> bool:
        return self.repetition > 0
