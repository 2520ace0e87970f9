"""
Abstract interfaces for the raw table loader.

This module defines the contracts between the loader core and its
collaborators: the database executor it issues statements through, the
optional data adapter applied to record payloads, and the SQL operations
surface exposed to destination connectors.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Sequence

from .models import StreamRecord


class Database(ABC):
    """Abstract interface for the database executor."""

    @abstractmethod
    def execute(self, sql: str) -> None:
        """
        Execute one SQL text (possibly several statements) and wait for completion.

        Args:
            sql: SQL text to execute

        Raises:
            Exception: The driver's database error when execution fails
        """
        pass

    @abstractmethod
    def query(self, sql: str, *params: Any) -> List[tuple]:
        """
        Execute a parameterized query and return all result rows.

        Args:
            sql: Query text using qmark (``?``) placeholders
            params: Positional parameter values

        Returns:
            List of result rows as tuples
        """
        pass

    def run_with_cursor(self, work: Callable[[Any], Any]) -> Any:
        """
        Run ``work(cursor)`` on one connection inside a single transaction.

        Only needed by loaders that bind parameters row by row. Executors that
        cannot hand out a DB-API cursor keep this default.

        Raises:
            NotImplementedError: If the executor does not expose cursors
        """
        raise NotImplementedError(f"{type(self).__name__} does not support cursor-level execution")


class DataAdapter(ABC):
    """Capability that rewrites a record payload before it is staged."""

    @abstractmethod
    def adapt(self, data: Any) -> None:
        """
        Modify a deserialized JSON payload in place.

        Args:
            data: Deserialized payload (usually a dict)
        """
        pass


class SqlOperationsInterface(ABC):
    """Abstract interface for destination table lifecycle and record loading."""

    @abstractmethod
    def create_schema_if_not_exists(self, database: Database, schema_name: str) -> None:
        """Create the schema unless it is known to exist."""
        pass

    @abstractmethod
    def create_table_if_not_exists(self, database: Database, schema_name: str, table_name: str) -> None:
        """Create the raw table and run its post-creation statements."""
        pass

    @abstractmethod
    def create_table_query(self, database: Database, schema_name: str, table_name: str) -> str:
        """Return the CREATE TABLE statement for the configured table version."""
        pass

    @abstractmethod
    def drop_table_if_exists(self, database: Database, schema_name: str, table_name: str) -> None:
        """Drop the table if it exists."""
        pass

    @abstractmethod
    def truncate_table_query(self, database: Database, schema_name: str, table_name: str) -> str:
        """Return the statement that empties the table."""
        pass

    @abstractmethod
    def insert_table_query(self, database: Database, schema_name: str,
                           src_table_name: str, dst_table_name: str) -> str:
        """Return the statement that copies every row of one table into another."""
        pass

    @abstractmethod
    def execute_transaction(self, database: Database, queries: Sequence[str]) -> None:
        """Execute the statements atomically, in order."""
        pass

    @abstractmethod
    def insert_records(self, database: Database, records: List[StreamRecord],
                       schema_name: str, table_name: str) -> None:
        """Write a batch of records into the raw table."""
        pass

    @abstractmethod
    def is_schema_required(self) -> bool:
        """Whether the destination needs a schema to be created before tables."""
        pass

    @abstractmethod
    def is_valid_data(self, data: Any) -> bool:
        """Whether a payload can be written to the destination."""
        pass
