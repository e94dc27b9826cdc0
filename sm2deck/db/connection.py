import duckdb
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class ConnectionHandler:
    """Owns the single DuckDB connection behind a CardDatabase."""

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Parameters:
            db_path: Card database file, or ":memory:" (any case) for a
                throwaway in-memory store.
            read_only: Open without write access. The file must then exist.
        """
        if isinstance(db_path, str) and db_path.lower() == MEMORY_DB:
            self.db_path_resolved = Path(MEMORY_DB)
        else:
            self.db_path_resolved = Path(db_path).resolve()
        self.read_only: bool = read_only
        self.is_new_db: bool = False
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        logger.debug(
            f"Card store at {self.db_path_resolved} (read_only={read_only})"
        )

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == MEMORY_DB

    def _open(self) -> duckdb.DuckDBPyConnection:
        if self.is_memory:
            self.is_new_db = True
        else:
            self.is_new_db = not self.db_path_resolved.exists()
            # A read-only open of a missing file must fail, not create dirs.
            if self.is_new_db and not self.read_only:
                self.db_path_resolved.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = duckdb.connect(
                database=str(self.db_path_resolved), read_only=self.read_only
            )
        except duckdb.Error as e:
            raise DatabaseConnectionError(
                f"Could not open card store {self.db_path_resolved}: {e}",
                original_exception=e,
            ) from e
        logger.info(
            f"Opened {'new' if self.is_new_db else 'existing'} card store "
            f"{self.db_path_resolved}"
        )
        return conn

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, opening it on first use.

        After the first call `is_new_db` tells whether the store had to be
        created, i.e. whether its schema is still missing.

        Raises:
            DatabaseConnectionError: If DuckDB cannot open the store.
        """
        if self._connection is None:
            self._connection = self._open()
        return self._connection

    def close_connection(self) -> None:
        """Close the connection; the next get_connection() reopens it."""
        if self._connection is None:
            return
        try:
            self._connection.close()
            logger.info(f"Closed card store {self.db_path_resolved}")
        except duckdb.Error as e:
            logger.error(f"Error closing card store {self.db_path_resolved}: {e}")
        finally:
            self._connection = None
