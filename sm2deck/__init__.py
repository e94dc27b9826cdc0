"""sm2deck - A lightweight SM-2 spaced repetition flashcard library."""

from .models import Card, Review, SpacedRepetitionState
from .constants import DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR, PASSING_GRADE
from .exceptions import InvalidArgumentError
from .scheduler import BaseScheduler, SM2Scheduler, SchedulerOutput, schedule
from .selector import due_queue, select_next_due
from .db import CardDatabase

__all__ = [
    "Card",
    "Review",
    "SpacedRepetitionState",
    "DEFAULT_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "PASSING_GRADE",
    "InvalidArgumentError",
    "BaseScheduler",
    "SM2Scheduler",
    "SchedulerOutput",
    "schedule",
    "due_queue",
    "select_next_due",
    "CardDatabase",
]
