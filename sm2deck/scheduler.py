# sm2deck/scheduler.py

"""
Implements the SM-2 scheduling rules as a pure function, plus the BaseScheduler
abstraction used by the review workflow to turn a card and a grade into the
card's next state and due date.
"""

import datetime
import logging
import math
import numbers
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .constants import (
    FIRST_INTERVAL,
    LAPSE_INTERVAL,
    MAX_GRADE,
    MIN_EASE_FACTOR,
    MIN_GRADE,
    PASSING_GRADE,
    SECOND_INTERVAL,
)
from .exceptions import InvalidArgumentError
from .models import Card, SpacedRepetitionState

logger = logging.getLogger(__name__)


def _round_half_away_from_zero(value: float) -> int:
    # Decimal(float) is exact, so x.5 products are never misclassified.
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _validate_grade(grade: int) -> int:
    if isinstance(grade, bool) or not isinstance(grade, numbers.Integral):
        raise InvalidArgumentError(
            f"Invalid grade: {grade!r}. Must be an integer {MIN_GRADE}-{MAX_GRADE}."
        )
    if not (MIN_GRADE <= grade <= MAX_GRADE):
        raise InvalidArgumentError(
            f"Invalid grade: {grade}. Must be {MIN_GRADE}-{MAX_GRADE}."
        )
    return int(grade)


def _validate_state(state: SpacedRepetitionState) -> None:
    # States built with model_construct() skip pydantic's field constraints.
    if state.interval < 0:
        raise InvalidArgumentError(
            f"Invalid interval: {state.interval}. Must be >= 0."
        )
    if state.repetition < 0:
        raise InvalidArgumentError(
            f"Invalid repetition: {state.repetition}. Must be >= 0."
        )
    ease_factor = state.ease_factor
    if not math.isfinite(ease_factor) or not ease_factor >= MIN_EASE_FACTOR:
        raise InvalidArgumentError(
            f"Invalid ease factor: {state.ease_factor}. "
            f"Must be >= {MIN_EASE_FACTOR}."
        )


def next_ease_factor(ease_factor: float, grade: int) -> float:
    """
    Applies the SM-2 ease update for a grade and clamps it to the 1.3 floor.
    """
    next_ef = ease_factor + (
        0.1 - (5 - grade) * (0.08 + (5 - grade) * 0.02)
    )
    if next_ef < MIN_EASE_FACTOR:
        next_ef = MIN_EASE_FACTOR
    return next_ef


def schedule(state: SpacedRepetitionState, grade: int) -> SpacedRepetitionState:
    """
    Computes the next spaced-repetition state for a single review.

    Args:
        state: The card's current state, exactly as last persisted.
        grade: Recall quality on the 0-10 scale; 3 or more counts as a pass.

    Returns:
        A new SpacedRepetitionState. The input is never modified.

    Raises:
        InvalidArgumentError: If the grade is not an integer in 0-10, or the
            state has a negative interval/repetition, an ease factor below 1.3
            or not finite, or an interval growth that overflows.
    """
    grade = _validate_grade(grade)
    _validate_state(state)

    if grade >= PASSING_GRADE:
        if state.repetition == 0:
            next_interval = FIRST_INTERVAL
            next_repetition = 1
        elif state.repetition == 1:
            next_interval = SECOND_INTERVAL
            next_repetition = 2
        else:
            product = state.interval * state.ease_factor
            if not math.isfinite(product):
                raise InvalidArgumentError(
                    f"Interval {state.interval} x ease factor "
                    f"{state.ease_factor} overflows."
                )
            next_interval = max(1, _round_half_away_from_zero(product))
            next_repetition = state.repetition + 1
    else:
        next_interval = LAPSE_INTERVAL
        next_repetition = 0

    return SpacedRepetitionState(
        interval=next_interval,
        repetition=next_repetition,
        ease_factor=next_ease_factor(state.ease_factor, grade),
    )


@dataclass(frozen=True)
class SchedulerOutput:
    state: SpacedRepetitionState
    next_due: datetime.datetime
    review_type: str


class BaseScheduler(ABC):
    """
    Abstract base class for all schedulers in sm2deck.
    """

    @abstractmethod
    def compute_next_state(
        self, card: Card, grade: int, review_ts: datetime.datetime
    ) -> SchedulerOutput:
        """
        Computes the next state of a card based on its cached state and a new grade.

        Args:
            card: The Card object containing the cached scheduler state.
            grade: The grade given for the current review (0-10).
            review_ts: The UTC timestamp of the current review.

        Returns:
            A SchedulerOutput object containing the new state and due date.

        Raises:
            InvalidArgumentError: If the grade or the card's state is invalid.
        """
        pass


class SM2Scheduler(BaseScheduler):
    """
    SM-2 scheduler: delegates to schedule() and places the card's next due
    date `interval` days after the review.
    """

    def _ensure_utc(self, ts: datetime.datetime) -> datetime.datetime:
        """Ensures the given datetime is UTC. Assumes UTC if naive."""
        if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
            return ts.replace(tzinfo=datetime.timezone.utc)
        if ts.tzinfo != datetime.timezone.utc:
            return ts.astimezone(datetime.timezone.utc)
        return ts

    def _review_type(self, card: Card, grade: int) -> str:
        if card.repetition == 0:
            return "learn"
        if grade < PASSING_GRADE:
            return "relearn"
        return "review"

    def compute_next_state(
        self, card: Card, grade: int, review_ts: datetime.datetime
    ) -> SchedulerOutput:
        new_state = schedule(card.srs_state, grade)
        utc_review_ts = self._ensure_utc(review_ts)
        try:
            next_due = utc_review_ts + datetime.timedelta(days=new_state.interval)
        except OverflowError as e:
            raise InvalidArgumentError(
                f"Interval of {new_state.interval} days puts the due date "
                "out of range."
            ) from e

        logger.debug(
            f"Card {card.uuid}: grade {grade}, "
            f"{card.srs_state} -> {new_state}, due {next_due.isoformat()}"
        )

        return SchedulerOutput(
            state=new_state,
            next_due=next_due,
            review_type=self._review_type(card, grade),
        )
