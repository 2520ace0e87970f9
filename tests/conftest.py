"""Shared fixtures: an in-memory recording database and a recording SqlOperations dialect."""

import os

import pytest

from raw_loader.config.config_manager import reset_config_manager
from raw_loader.database.sql_operations import SqlOperations
from raw_loader.interfaces import Database
from raw_loader.models import StreamRecord


class RecordingDatabase(Database):
    """Database that records statements instead of running them."""

    def __init__(self, existing_schemas=None, error=None):
        self.executed = []
        self.queries = []
        self.existing_schemas = set(existing_schemas or [])
        self.error = error
        self.cursor = _FakeCursor()

    def execute(self, sql):
        if self.error is not None:
            raise self.error
        self.executed.append(sql)

    def query(self, sql, *params):
        if self.error is not None:
            raise self.error
        self.queries.append((sql, params))
        if params and params[0] in self.existing_schemas:
            return [(1,)]
        return []

    def run_with_cursor(self, work):
        if self.error is not None:
            raise self.error
        return work(self.cursor)


class _FakeCursor:
    def __init__(self):
        self.fast_executemany = False
        self.executemany_calls = []
        self.execute_calls = []

    def executemany(self, sql, rows):
        self.executemany_calls.append((sql, list(rows)))

    def execute(self, sql, params=None):
        self.execute_calls.append((sql, params))


class RecordingSqlOperations(SqlOperations):
    """Dialect whose loaders only remember what they were asked to load."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.loaded = []

    def insert_records_internal(self, database, records, schema_name, table_name):
        self.loaded.append(('v1', [record.serialized for record in records], schema_name, table_name))

    def insert_records_internal_v2(self, database, records, schema_name, table_name):
        self.loaded.append(('v2', [record.serialized for record in records], schema_name, table_name))


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Isolate every test from RAW_LOADER_* settings of the host environment."""
    for name in list(os.environ):
        if name.startswith('RAW_LOADER_') and name != 'RAW_LOADER_TEST_CONNECTION_STRING':
            monkeypatch.delenv(name, raising=False)
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture
def database():
    return RecordingDatabase()


@pytest.fixture
def sample_records():
    return [
        StreamRecord(serialized='{"id":1,"name":"alpha"}', emitted_at=1000, meta={"changes": []}),
        StreamRecord(serialized='{"id":2,"name":"beta"}', emitted_at=2000, meta={"changes": []}),
        StreamRecord(serialized='{"id":3,"name":"gamma"}', emitted_at=3000, meta=None),
    ]


@pytest.fixture
def make_database():
    """Factory for RecordingDatabase with pre-existing schemas or a failure to raise."""
    return RecordingDatabase


@pytest.fixture
def make_operations():
    """Factory for RecordingSqlOperations."""
    return RecordingSqlOperations
