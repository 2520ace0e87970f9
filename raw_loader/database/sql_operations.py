"""
SQL Operations - Raw Table Lifecycle and Record Loading

Shared base for destination connectors that land record batches in raw tables.
Dialects subclass SqlOperations and implement the two physical loaders; the base
owns everything that must behave the same on every destination.

KEY FEATURES:
- Idempotent schema creation: in-process cache of known schemas + CREATE SCHEMA IF NOT EXISTS
- Version-aware raw tables: V1 (legacy raw layout) or V2 (typing and deduping layout),
  selected once per instance
- Atomic multi-statement execution: BEGIN; ... COMMIT; sent as a single database call
- Error classification: user misconfiguration surfaces as ConfigurationError, everything
  else propagates unchanged
- Sealed entry point: insert_records applies the data adapter and dispatches on the
  table version identically for every dialect
"""

import logging
from abc import abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from ..config.config_manager import get_config_manager
from ..constants import (
    COLUMN_NAME_AB_EXTRACTED_AT,
    COLUMN_NAME_AB_ID,
    COLUMN_NAME_AB_LOADED_AT,
    COLUMN_NAME_AB_META,
    COLUMN_NAME_AB_RAW_ID,
    COLUMN_NAME_DATA,
    COLUMN_NAME_EMITTED_AT,
)
from ..exceptions import StagingError
from ..interfaces import DataAdapter, Database, SqlOperationsInterface
from ..models import StreamRecord, TableSchemaVersion
from ..staging.batch_stager import BatchStager
from ..utils import JsonUtils
from .error_classifier import ErrorClassifier


class SqlOperations(SqlOperationsInterface):
    """
    Base SQL operations for raw destination tables.

    Table lifecycle per (schema, table):
        Unknown -> Ensured    create_table_if_not_exists
        Ensured -> Unknown    drop_table_if_exists
        Ensured -> Ensured    truncate (rows removed, table kept)

    SCHEMA CACHE:
        ``schema_set`` remembers schemas created or observed by this instance so
        repeated calls issue no DDL. It is best-effort: two threads racing on the
        same unseen schema may both send CREATE SCHEMA IF NOT EXISTS, which the
        database resolves. set.add and membership tests are atomic, so no lock is
        taken.

    Subclass hooks:
        - insert_records_internal / insert_records_internal_v2 (required): physical load
        - post_create_table_queries: extra statements after CREATE TABLE (e.g. indexes)
        - create_table_query_v1 / create_table_query_v2: dialect column types
        - is_schema_exists: dialect schema catalog lookup
        - error classifier passed at construction: known configuration-error signatures
    """

    def __init__(self, schema_version: Optional[TableSchemaVersion] = None,
                 data_adapter: Optional[DataAdapter] = None,
                 error_classifier: Optional[ErrorClassifier] = None):
        """
        Initialize SQL operations.

        Args:
            schema_version: Raw table layout. If None, resolved from centralized config.
            data_adapter: Optional adapter applied to every record payload before loading
            error_classifier: Classifier for database errors. Defaults to one that never reclassifies.
        """
        self.logger = logging.getLogger(type(self).__module__)
        if schema_version is None:
            schema_version = get_config_manager().get_schema_version()
        self.schema_version = schema_version
        self.data_adapter = data_adapter
        self.error_classifier = error_classifier or ErrorClassifier()
        self.schema_set = set()
        # Payloads are adapted in insert_records, so staging keeps them verbatim
        self.stager = BatchStager(schema_version)

        self.logger.debug(
            f"{type(self).__name__} initialized: schema_version={schema_version.value}, "
            f"data_adapter={type(data_adapter).__name__ if data_adapter else None}"
        )

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if 'insert_records' in cls.__dict__:
            raise TypeError(
                f"{cls.__name__} must not override insert_records; "
                "implement insert_records_internal and insert_records_internal_v2 instead"
            )

    @property
    def is_destination_v2(self) -> bool:
        return self.schema_version is TableSchemaVersion.V2

    # ------------------------------------------------------------------
    # Error classification
    # ------------------------------------------------------------------

    def check_for_known_config_exceptions(self, error: BaseException):
        """
        Recognize errors caused by the user's configuration.

        When the error is a known permission or configuration problem, a
        ConfigurationError with actionable feedback is returned so it is kept out
        of on-call reporting.

        Args:
            error: The exception to check

        Returns:
            ConfigurationError, or None when the error is not recognized
        """
        return self.error_classifier.classify(error)

    @contextmanager
    def _classified_errors(self, operation: str):
        """Re-raise recognized configuration errors as ConfigurationError; let others through."""
        try:
            yield
        except Exception as e:
            config_error = self.check_for_known_config_exceptions(e)
            if config_error is None:
                raise
            self.logger.error(f"Configuration error during {operation}: {e}")
            raise config_error from e

    # ------------------------------------------------------------------
    # Schemas
    # ------------------------------------------------------------------

    def create_schema_if_not_exists(self, database: Database, schema_name: str) -> None:
        if schema_name in self.schema_set:
            return
        with self._classified_errors(f"create schema {schema_name}"):
            if not self.is_schema_exists(database, schema_name):
                database.execute(f"CREATE SCHEMA IF NOT EXISTS {schema_name};")
                self.logger.info(f"Created schema {schema_name}")
            self.schema_set.add(schema_name)

    def is_schema_exists(self, database: Database, schema_name: str) -> bool:
        """Look the schema up in the database catalog."""
        rows = database.query(
            "SELECT 1 FROM information_schema.schemata WHERE schema_name = ?",
            schema_name,
        )
        return len(rows) > 0

    def is_schema_required(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def create_table_if_not_exists(self, database: Database, schema_name: str, table_name: str) -> None:
        with self._classified_errors(f"create table {schema_name}.{table_name}"):
            database.execute(self.create_table_query(database, schema_name, table_name))
            for post_create_sql in self.post_create_table_queries(schema_name, table_name):
                database.execute(post_create_sql)
        self.logger.info(f"Ensured {self.schema_version.value} raw table {schema_name}.{table_name}")

    def create_table_query(self, database: Database, schema_name: str, table_name: str) -> str:
        if self.is_destination_v2:
            return self.create_table_query_v2(schema_name, table_name)
        return self.create_table_query_v1(schema_name, table_name)

    def post_create_table_queries(self, schema_name: str, table_name: str) -> List[str]:
        """
        Statements to run after the raw table is created.

        Some destinations cannot declare indexes inside CREATE TABLE and add them
        here instead (e.g. CREATE INDEX IF NOT EXISTS ...).
        """
        return []

    def create_table_query_v1(self, schema_name: str, table_name: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {schema_name}.{table_name} (\n"
            f"  {COLUMN_NAME_AB_ID} VARCHAR PRIMARY KEY,\n"
            f"  {COLUMN_NAME_DATA} JSONB,\n"
            f"  {COLUMN_NAME_EMITTED_AT} TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP\n"
            f");\n"
        )

    def create_table_query_v2(self, schema_name: str, table_name: str) -> str:
        # meta is the last column: tables created before it existed had it added with ALTER TABLE
        return (
            f"CREATE TABLE IF NOT EXISTS {schema_name}.{table_name} (\n"
            f"  {COLUMN_NAME_AB_RAW_ID} VARCHAR PRIMARY KEY,\n"
            f"  {COLUMN_NAME_DATA} JSONB,\n"
            f"  {COLUMN_NAME_AB_EXTRACTED_AT} TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,\n"
            f"  {COLUMN_NAME_AB_LOADED_AT} TIMESTAMP WITH TIME ZONE DEFAULT NULL,\n"
            f"  {COLUMN_NAME_AB_META} JSONB\n"
            f");\n"
        )

    def drop_table_if_exists(self, database: Database, schema_name: str, table_name: str) -> None:
        with self._classified_errors(f"drop table {schema_name}.{table_name}"):
            database.execute(self.drop_table_if_exists_query(schema_name, table_name))
        self.logger.info(f"Dropped table {schema_name}.{table_name} if it existed")

    def drop_table_if_exists_query(self, schema_name: str, table_name: str) -> str:
        return f"DROP TABLE IF EXISTS {schema_name}.{table_name};\n"

    def truncate_table_query(self, database: Database, schema_name: str, table_name: str) -> str:
        return f"TRUNCATE TABLE {schema_name}.{table_name};\n"

    def truncate_table(self, database: Database, schema_name: str, table_name: str) -> None:
        with self._classified_errors(f"truncate table {schema_name}.{table_name}"):
            database.execute(self.truncate_table_query(database, schema_name, table_name))

    def insert_table_query(self, database: Database, schema_name: str,
                           src_table_name: str, dst_table_name: str) -> str:
        return f"INSERT INTO {schema_name}.{dst_table_name} SELECT * FROM {schema_name}.{src_table_name};\n"

    def insert_select_all(self, database: Database, schema_name: str,
                          src_table_name: str, dst_table_name: str) -> None:
        with self._classified_errors(f"copy {schema_name}.{src_table_name} into {schema_name}.{dst_table_name}"):
            database.execute(self.insert_table_query(database, schema_name, src_table_name, dst_table_name))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def execute_transaction(self, database: Database, queries: Sequence[str]) -> None:
        """
        Execute statements atomically in a single database call.

        Statements are appended verbatim and in order between BEGIN; and COMMIT;
        so each must carry its own terminator. Atomicity comes from the database:
        a failing statement aborts the whole transaction.
        """
        appended_queries = ["BEGIN;\n"]
        appended_queries.extend(queries)
        appended_queries.append("COMMIT;")
        with self._classified_errors(f"transaction of {len(queries)} statements"):
            database.execute(''.join(appended_queries))

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def is_valid_data(self, data: Any) -> bool:
        return True

    def write_batch_to_file(self, path: Union[str, Path], records: List[StreamRecord]) -> int:
        """Stage records into a CSV file for file-based bulk loaders (e.g. COPY)."""
        return self.stager.write_batch_to_file(path, records)

    def insert_records(self, database: Database, records: List[StreamRecord],
                       schema_name: str, table_name: str) -> None:
        """
        Write a batch of records into the raw table.

        Applies the data adapter (if any) to every payload, then hands the batch to
        the loader for the configured table version. Subclasses cannot override this.
        """
        if self.data_adapter is not None:
            self._adapt_records(records)
        with self._classified_errors(f"insert into {schema_name}.{table_name}"):
            if self.is_destination_v2:
                self.insert_records_internal_v2(database, records, schema_name, table_name)
            else:
                self.insert_records_internal(database, records, schema_name, table_name)
        self.logger.debug(f"Inserted {len(records)} records into {schema_name}.{table_name}")

    def _adapt_records(self, records: List[StreamRecord]) -> None:
        for index, record in enumerate(records):
            try:
                data = JsonUtils.deserialize(record.serialized)
            except ValueError as e:
                raise StagingError(f"Record {index} payload is not valid JSON: {e}",
                                   record_index=index, original_exception=e) from e
            self.data_adapter.adapt(data)
            record.serialized = JsonUtils.serialize(data)

    @abstractmethod
    def insert_records_internal(self, database: Database, records: List[StreamRecord],
                                schema_name: str, table_name: str) -> None:
        """Physically load a batch into a V1 raw table."""
        pass

    @abstractmethod
    def insert_records_internal_v2(self, database: Database, records: List[StreamRecord],
                                   schema_name: str, table_name: str) -> None:
        """Physically load a batch into a V2 raw table."""
        pass
