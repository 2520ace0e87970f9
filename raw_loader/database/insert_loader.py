"""
Parameterized Insert Loader - Dialect-Neutral Raw Table Loading

SqlOperations implementation that loads staged rows with qmark-parameterized
INSERT statements through ``cursor.executemany``. It needs nothing beyond what
every ODBC driver supports, so it serves as the default loader for destinations
without a native bulk path (COPY, LOAD DATA, ...).

Two-tier insertion strategy:
1. Fast path: executemany per batch (optionally with pyodbc fast_executemany)
2. Fallback path: individual executes when the driver rejects parameter types.
   Each executemany runs inside a savepoint that is rolled back before the
   fallback, so rows written before the failure are not inserted twice.

All batches of one call run in a single transaction: a failure rolls back every
row of the call.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import pyodbc

from ..config.config_manager import get_config_manager
from ..interfaces import DataAdapter, Database
from ..models import StreamRecord, TableSchemaVersion
from .error_classifier import ErrorClassifier
from .sql_operations import SqlOperations

# Driver messages meaning "this parameter could not be bound as sent"
_TYPE_ERROR_MARKERS = ('cast specification', 'converting', 'optional feature not implemented')


class ParameterizedInsertOperations(SqlOperations):
    """Raw table loader based on parameterized multi-row INSERT."""

    # Dialects without SQL-standard savepoints override these (e.g. SAVE TRANSACTION)
    SAVEPOINT_SQL = "SAVEPOINT raw_loader_batch"
    ROLLBACK_TO_SAVEPOINT_SQL = "ROLLBACK TO SAVEPOINT raw_loader_batch"
    RELEASE_SAVEPOINT_SQL = "RELEASE SAVEPOINT raw_loader_batch"

    def __init__(self, schema_version: Optional[TableSchemaVersion] = None,
                 data_adapter: Optional[DataAdapter] = None,
                 error_classifier: Optional[ErrorClassifier] = None,
                 batch_size: Optional[int] = None,
                 use_fast_executemany: bool = False):
        """
        Initialize the loader.

        Args:
            schema_version: Raw table layout. If None, resolved from centralized config.
            data_adapter: Optional adapter applied to every record payload
            error_classifier: Classifier for database errors
            batch_size: Rows per executemany call. If None, uses centralized config.
            use_fast_executemany: Enable pyodbc's array binding (SQL Server drivers)
        """
        super().__init__(schema_version, data_adapter, error_classifier)
        self.batch_size = batch_size or get_config_manager().loader_params.batch_size
        self.use_fast_executemany = use_fast_executemany

    def insert_records_internal(self, database: Database, records: List[StreamRecord],
                                schema_name: str, table_name: str) -> None:
        self._insert(database, records, schema_name, table_name)

    def insert_records_internal_v2(self, database: Database, records: List[StreamRecord],
                                   schema_name: str, table_name: str) -> None:
        self._insert(database, records, schema_name, table_name)

    def insert_query(self, schema_name: str, table_name: str) -> str:
        """INSERT statement binding every raw table column positionally."""
        columns = self.schema_version.columns
        column_list = ', '.join(columns)
        placeholders = ', '.join('?' * len(columns))
        return f"INSERT INTO {schema_name}.{table_name} ({column_list}) VALUES ({placeholders})"

    def _insert(self, database: Database, records: List[StreamRecord],
                schema_name: str, table_name: str) -> int:
        if not records:
            self.logger.debug(f"No records to insert into {schema_name}.{table_name}")
            return 0

        sql = self.insert_query(schema_name, table_name)
        rows = list(self.stager.rows(records))

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"SQL: {sql}")

        def _work(cursor) -> int:
            cursor.fast_executemany = self.use_fast_executemany
            inserted_count = 0
            for batch_start in range(0, len(rows), self.batch_size):
                batch = rows[batch_start:batch_start + self.batch_size]
                batch_inserted, used_fast_path = self._try_fast_insert(cursor, sql, batch)
                if not used_fast_path:
                    batch_inserted = self._fallback_individual_insert(cursor, sql, batch)
                inserted_count += batch_inserted
            return inserted_count

        inserted_count = database.run_with_cursor(_work)
        self.logger.info(f"Successfully inserted {inserted_count} records into {schema_name}.{table_name}")
        return inserted_count

    def _try_fast_insert(self, cursor, sql: str, batch: Sequence[Tuple]) -> Tuple[int, bool]:
        """
        Attempt the batch with executemany inside a savepoint.

        A driver may have written part of the batch before failing, and some
        databases refuse further statements after an error. Rolling back to the
        savepoint undoes both before the fallback runs.

        Returns:
            (batch_inserted, success) where success=False means the fallback is needed
        """
        if len(batch) <= 1:
            return 0, False
        cursor.execute(self.SAVEPOINT_SQL)
        try:
            cursor.executemany(sql, batch)
        except pyodbc.Error as e:
            error_str = str(e).lower()
            if any(marker in error_str for marker in _TYPE_ERROR_MARKERS):
                self.logger.warning(f"executemany failed with type error, using individual inserts: {e}")
                cursor.execute(self.ROLLBACK_TO_SAVEPOINT_SQL)
                return 0, False
            raise
        cursor.execute(self.RELEASE_SAVEPOINT_SQL)
        return len(batch), True

    def _fallback_individual_insert(self, cursor, sql: str, batch: Sequence[Tuple]) -> int:
        batch_inserted = 0
        for row in batch:
            cursor.execute(sql, row)
            batch_inserted += 1
        return batch_inserted
