"""
DuckDB-backed item store for sm2deck.
Implements the CardDatabase class, which persists cards, their SM-2 state and
their review history.
"""

import duckdb
import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union, cast

from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager
from ..exceptions import (
    CardOperationError,
    DatabaseConnectionError,
    DatabaseError,
    MarshallingError,
    ReviewOperationError,
)
from ..models import Card, Review

# --- Logging Setup ---
logger = logging.getLogger(__name__)

# --- Helper Functions ---


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CardDatabase:
    """
    Acts as a Facade for the database subsystem, providing a simple, high-level
    interface for all card data operations.

    It coordinates the ConnectionHandler, SchemaManager, and data marshalling
    utilities. Intended for use as a context manager.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Args:
            db_path: Path to the database file. Use ':memory:' for an
                in-memory database.
            read_only: If True, open the database in read-only mode; every
                write operation then raises DatabaseConnectionError.
        """
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)
        logger.info(
            f"CardDatabase initialized for DB at: {self._handler.db_path_resolved}"  # noqa: E501
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "CardDatabase":
        """
        Open the database connection and initialize the schema if a new
        writable database was created.
        """
        self.get_connection()
        if self._handler.is_new_db and not self._handler.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Ensures the connection is closed on exiting the context."""
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Ensure the database schema exists; optionally drop and recreate it.
        """
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    def _ensure_writable(self, operation: str) -> None:
        if self.read_only:
            raise DatabaseConnectionError(
                f"Cannot {operation} in read-only mode."
            )

    def _rollback(self, conn: duckdb.DuckDBPyConnection, context: str) -> None:
        """Roll back after a failed write; a rollback failure is only logged."""
        try:
            conn.rollback()
            logger.info(f"Transaction rolled back due to error in {context}.")
        except duckdb.Error as rb_err:
            logger.error(
                f"Failed to rollback transaction during {context}: {rb_err}"
            )

    # --- Card Operations ---
    # fmt: off
    # noqa: E501
    _UPSERT_CARDS_SQL = """
        INSERT INTO cards (uuid, front, back, added_at, modified_at, due_at,
                           interval_days, repetition, ease_factor, last_review_id)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
        ON CONFLICT (uuid) DO UPDATE SET
            front = EXCLUDED.front,
            back = EXCLUDED.back,
            modified_at = EXCLUDED.modified_at,
            due_at = EXCLUDED.due_at,
            interval_days = EXCLUDED.interval_days,
            repetition = EXCLUDED.repetition,
            ease_factor = EXCLUDED.ease_factor,
            last_review_id = EXCLUDED.last_review_id;
        """
    # fmt: on

    def add_card(
        self, front: str, back: str, now: Optional[datetime] = None
    ) -> Card:
        """
        Create a card with the initial scheduler state, due immediately.

        Parameters:
            front: Prompt text.
            back: Answer text.
            now: Creation timestamp; defaults to the current UTC time.

        Returns:
            Card: The stored card.

        Raises:
            DatabaseConnectionError: If the database is read-only.
            CardOperationError: If the insert fails.
        """
        created_at = now or _utc_now()
        card = Card(
            front=front,
            back=back,
            added_at=created_at,
            modified_at=created_at,
            due_at=created_at,
        )
        self.upsert_cards_batch([card])
        logger.info(f"Added card {card.uuid}")
        return card

    def upsert_cards_batch(self, cards: Sequence[Card]) -> int:
        """
        Upserts a sequence of cards into the database in a single transactional batch.

        Returns:
            int: Number of distinct cards written; an empty sequence is a
                no-op. A card listed twice is counted once, its last entry
                winning.

        Raises:
            CardOperationError: If the database operation cannot be completed.
        """
        if not cards:
            return 0
        self._ensure_writable("upsert cards")

        latest = list({card.uuid: card for card in cards}.values())
        card_params_list = db_utils.card_to_db_params_list(latest)
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.executemany(self._UPSERT_CARDS_SQL, card_params_list)
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error during batch card upsert: {e}")
            self._rollback(conn, "batch card upsert")
            raise CardOperationError(
                f"Batch card upsert failed: {e}", original_exception=e
            ) from e
        logger.info(f"Successfully upserted {len(latest)} cards.")
        return len(latest)

    def _fetch_cards(
        self, sql: str, params: Sequence[Any], context: str
    ) -> List[Card]:
        conn = self.get_connection()
        try:
            cursor = conn.execute(sql, params)
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching {context}: {e}")
            raise CardOperationError(
                f"Failed to fetch {context}: {e}", original_exception=e
            ) from e
        try:
            return [
                db_utils.db_row_to_card(cast(Dict[str, Any], row))
                for row in rows
            ]
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse {context} from database.",
                original_exception=e,
            ) from e

    def get_card_by_uuid(self, card_uuid: uuid.UUID) -> Optional[Card]:
        """
        Fetches a card by its UUID, or None if no matching card exists.

        Raises:
            CardOperationError: If a database error occurs or the row cannot
                be parsed into a Card.
        """
        cards = self._fetch_cards(
            "SELECT * FROM cards WHERE uuid = $1;",
            (card_uuid,),
            f"card {card_uuid}",
        )
        return cards[0] if cards else None

    def get_all_cards(self) -> List[Card]:
        """Retrieve all cards in insertion order."""
        return self._fetch_cards(
            "SELECT * FROM cards ORDER BY position;", [], "all cards"
        )

    def get_due_cards(
        self, on: Optional[datetime] = None, limit: Optional[int] = None
    ) -> List[Card]:
        """
        Retrieve cards whose due date is at or before `on`.

        Results are ordered by due date, ties broken by insertion order.

        Parameters:
            on: Cutoff timestamp; defaults to now.
            limit: Maximum number of cards; None means no limit and 0 returns
                an empty list.

        Raises:
            ValueError: If `limit` is negative.
        """
        if limit is not None and limit < 0:
            raise ValueError(f"Invalid limit: {limit}. Must be >= 0.")
        if limit == 0:
            return []
        sql = "SELECT * FROM cards WHERE due_at <= $1 ORDER BY due_at ASC, position ASC"  # noqa: E501
        params: List[Any] = [on or _utc_now()]
        if limit is not None:
            sql += " LIMIT $2"
            params.append(limit)
        return self._fetch_cards(sql, params, "due cards")

    def get_due_card_count(self, on: Optional[datetime] = None) -> int:
        """Count cards whose due date is at or before `on` (default: now)."""
        conn = self.get_connection()
        sql = "SELECT COUNT(*) FROM cards WHERE due_at <= $1;"
        try:
            count_result = conn.execute(sql, (on or _utc_now(),)).fetchone()
            return count_result[0] if count_result else 0
        except duckdb.Error as e:
            logger.error(f"Error counting due cards: {e}")
            raise CardOperationError(
                f"Failed to count due cards: {e}", original_exception=e
            ) from e

    def delete_card(self, card_uuid: uuid.UUID) -> bool:
        """
        Delete a card and its review history.

        Returns:
            bool: True if the card existed and was deleted.
        """
        return self.delete_cards_by_uuids_batch([card_uuid]) == 1

    def delete_cards_by_uuids_batch(
        self, card_uuids: Sequence[uuid.UUID]
    ) -> int:
        """
        Delete cards, and the reviews that belong to them, in one transaction.

        Returns:
            int: Number of cards deleted.

        Raises:
            CardOperationError: If the deletion fails.
        """
        if not card_uuids:
            return 0
        self._ensure_writable("delete cards")

        conn = self.get_connection()
        deleted = 0
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                for card_uuid in card_uuids:
                    cursor.execute(
                        "DELETE FROM reviews WHERE card_uuid = $1;",
                        (card_uuid,),
                    )
                    cursor.execute(
                        "DELETE FROM cards WHERE uuid = $1 RETURNING uuid;",
                        (card_uuid,),
                    )
                    deleted += len(cursor.fetchall())
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error deleting cards: {e}")
            self._rollback(conn, "batch card delete")
            raise CardOperationError(
                f"Failed to delete cards: {e}", original_exception=e
            ) from e
        logger.info(f"Deleted {deleted} of {len(card_uuids)} requested cards.")
        return deleted

    def get_database_stats(self, on: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Retrieve aggregate statistics about the card collection.

        Returns:
            dict: A dictionary with the following keys:
                - total_cards (int)
                - total_reviews (int)
                - due_cards (int): cards due at `on` (default: now).
                - average_ease_factor (float | None): None for an empty store.
                - repetition_buckets (collections.Counter): card counts keyed
                  by "0", "1" and "2+" consecutive passes.
        """
        conn = self.get_connection()
        sql = """
        SELECT
            (SELECT COUNT(*) FROM cards) AS total_cards,
            (SELECT COUNT(*) FROM reviews) AS total_reviews,
            (SELECT COUNT(*) FROM cards WHERE due_at <= $1) AS due_cards,
            (SELECT AVG(ease_factor) FROM cards) AS average_ease_factor,
            (SELECT COUNT(*) FROM cards WHERE repetition = 0) AS rep_0,
            (SELECT COUNT(*) FROM cards WHERE repetition = 1) AS rep_1,
            (SELECT COUNT(*) FROM cards WHERE repetition >= 2) AS rep_2_plus;
        """
        try:
            result = conn.execute(sql, (on or _utc_now(),)).fetchone()
        except duckdb.Error as e:
            logger.error(
                f"Could not retrieve database stats due to an error: {e}"
            )
            raise CardOperationError(
                "Could not retrieve database stats.", original_exception=e
            ) from e

        if not result:
            result = (0, 0, 0, None, 0, 0, 0)
        total_cards, total_reviews, due_cards, avg_ef, rep0, rep1, rep2 = result
        buckets: Counter = Counter()
        for label, count in (("0", rep0), ("1", rep1), ("2+", rep2)):
            if count:
                buckets[label] = count
        return {
            "total_cards": total_cards or 0,
            "total_reviews": total_reviews or 0,
            "due_cards": due_cards or 0,
            "average_ease_factor": avg_ef,
            "repetition_buckets": buckets,
        }

    # --- Review Operations ---
    def _insert_review_and_get_id(self, cursor, review: Review) -> int:
        sql = """
        INSERT INTO reviews (card_uuid, ts, grade, interval_days_before, repetition_before,
                             ease_factor_before, interval_days, repetition, ease_factor,
                             next_due, review_type)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        RETURNING review_id;
        """  # noqa: E501
        cursor.execute(sql, db_utils.review_to_db_params_tuple(review))
        result = cursor.fetchone()
        if not result:
            raise ReviewOperationError(
                "Failed to retrieve review_id after insertion."
            )
        return result[0]

    def _update_card_after_review(
        self, cursor, review: Review, new_review_id: int
    ) -> None:
        """Write the review's resulting state and due date onto its card."""
        sql = """
        UPDATE cards
        SET interval_days = $1, repetition = $2, ease_factor = $3, due_at = $4,
            last_review_id = $5, modified_at = $6
        WHERE uuid = $7
        RETURNING uuid;
        """
        params: Tuple = (
            review.interval,
            review.repetition,
            review.ease_factor,
            review.next_due,
            new_review_id,
            _utc_now(),
            review.card_uuid,
        )
        cursor.execute(sql, params)
        if cursor.fetchone() is None:
            raise ReviewOperationError(
                f"Card {review.card_uuid} does not exist; review not recorded."
            )

    def add_review_and_update_card(self, review: Review) -> Card:
        """
        Record a review and write its resulting state onto the card, atomically.

        Parameters:
            review (Review): The review to insert; must reference an existing
                card via review.card_uuid.

        Returns:
            Card: The card record after the update.

        Raises:
            DatabaseConnectionError: If the database is opened in read-only mode.
            ReviewOperationError: If the transaction fails or the card does
                not exist.
        """
        self._ensure_writable("add review")

        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                new_review_id = self._insert_review_and_get_id(cursor, review)
                self._update_card_after_review(cursor, review, new_review_id)
                cursor.commit()
        except Exception as e:
            logger.error(
                f"Error during review and card update transaction: {e}"
            )
            self._rollback(conn, "review/update")
            if isinstance(e, DatabaseError):
                raise
            raise ReviewOperationError(
                f"Failed to add review and update card: {e}",
                original_exception=e,
            ) from e

        updated_card = self.get_card_by_uuid(review.card_uuid)
        if updated_card is None:
            raise ReviewOperationError(
                f"Failed to retrieve card '{review.card_uuid}' after a successful review update."  # noqa: E501
            )
        return updated_card

    def get_reviews_for_card(
        self, card_uuid: uuid.UUID, order_by_ts_desc: bool = True
    ) -> List[Review]:
        """
        Retrieve a card's reviews, most recent first unless
        `order_by_ts_desc` is False.
        """
        conn = self.get_connection()
        direction = "DESC" if order_by_ts_desc else "ASC"
        sql = f"SELECT * FROM reviews WHERE card_uuid = $1 ORDER BY ts {direction}, review_id {direction};"  # noqa: E501
        try:
            cursor = conn.execute(sql, (card_uuid,))
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching reviews for card {card_uuid}: {e}")
            raise ReviewOperationError(
                f"Failed to get reviews for card {card_uuid}: {e}",
                original_exception=e,
            ) from e
        try:
            return [db_utils.db_row_to_review(row) for row in rows]
        except MarshallingError as e:
            raise ReviewOperationError(
                f"Failed to parse reviews for card {card_uuid}.",
                original_exception=e,
            ) from e
