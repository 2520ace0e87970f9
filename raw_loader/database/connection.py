"""
pyodbc-backed database executor.

Opens one short-lived connection per call. Connections run in autocommit mode so
that transactions are controlled by the SQL text itself (BEGIN; ... COMMIT;),
which is how SqlOperations.execute_transaction delivers atomicity.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, List, Optional

import pyodbc

from ..config.config_manager import get_config_manager
from ..exceptions import DatabaseConnectionError
from ..interfaces import Database

# Substrings of pyodbc errors raised while connecting, as opposed to statement errors
_CONNECTION_ERROR_MARKERS = (
    'could not connect', 'connection refused', 'unable to connect', 'network', 'timeout expired',
    'data source name not found',
)


class PyodbcDatabase(Database):
    """Database executor over an ODBC connection string."""

    def __init__(self, connection_string: Optional[str] = None, connection_timeout: Optional[int] = None):
        """
        Initialize the executor.

        Args:
            connection_string: ODBC connection string. If None, uses centralized config.
            connection_timeout: Login timeout in seconds. If None, uses centralized config.
        """
        self.logger = logging.getLogger(__name__)
        if connection_string is None or connection_timeout is None:
            database_config = get_config_manager().database_config
            connection_string = connection_string or database_config.connection_string
            connection_timeout = connection_timeout or database_config.connection_timeout
        self.connection_string = connection_string
        self.connection_timeout = connection_timeout

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections with automatic cleanup.

        Yields:
            pyodbc.Connection: Active autocommit connection

        Raises:
            DatabaseConnectionError: If the connection cannot be established
        """
        try:
            connection = pyodbc.connect(
                self.connection_string,
                autocommit=True,
                timeout=self.connection_timeout
            )
        except pyodbc.Error as e:
            error_str = str(e).lower()
            if any(marker in error_str for marker in _CONNECTION_ERROR_MARKERS):
                self.logger.error(f"Database connection failed: {e}")
                raise DatabaseConnectionError(f"Failed to connect to database: {e}", original_exception=e) from e
            # Authentication and catalog errors are left for the error classifier
            raise

        try:
            connection.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            connection.setdecoding(pyodbc.SQL_WCHAR, encoding='utf-8')
            connection.setencoding(encoding='utf-8')
            yield connection
        finally:
            try:
                connection.close()
            except pyodbc.Error as e:
                self.logger.debug(f"Ignoring error while closing connection: {e}")

    def execute(self, sql: str) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"SQL: {sql}")
        with self.get_connection() as connection:
            cursor = connection.cursor()
            try:
                cursor.execute(sql)
            finally:
                cursor.close()

    def query(self, sql: str, *params: Any) -> List[tuple]:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"SQL: {sql} params={params}")
        with self.get_connection() as connection:
            cursor = connection.cursor()
            try:
                cursor.execute(sql, *params)
                return [tuple(row) for row in cursor.fetchall()]
            finally:
                cursor.close()

    def run_with_cursor(self, work: Callable[[Any], Any]) -> Any:
        """
        Run ``work(cursor)`` inside one explicit transaction on a single connection.

        Commits when ``work`` returns and rolls back when it raises, so a batch
        written through several cursor calls lands atomically.
        """
        with self.get_connection() as connection:
            connection.autocommit = False
            cursor = connection.cursor()
            try:
                result = work(cursor)
                connection.commit()
                return result
            except Exception as e:
                try:
                    connection.rollback()
                    self.logger.error(f"Transaction rolled back due to error: {str(e)[:200]}")
                except pyodbc.Error as rollback_error:
                    self.logger.critical(f"ROLLBACK FAILED - Database may be in inconsistent state: {rollback_error}")
                raise
            finally:
                cursor.close()

