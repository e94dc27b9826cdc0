"""Database package for sm2deck.

This package provides the item store that persists cards, their scheduler
state, and their review history. Only CardDatabase is exported as the public
API.
"""

from .database import CardDatabase

__all__ = ["CardDatabase"]
