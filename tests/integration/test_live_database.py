"""
Live database tests for the raw table lifecycle.

Run only when RAW_LOADER_TEST_CONNECTION_STRING points at a PostgreSQL-compatible
database the test user may create schemas in. Each test works in its own schema,
dropped afterwards.
"""

import os
import uuid

import pytest

pyodbc = pytest.importorskip("pyodbc")

from raw_loader.database.connection import PyodbcDatabase
from raw_loader.database.error_classifier import SqlStateErrorClassifier
from raw_loader.database.insert_loader import ParameterizedInsertOperations
from raw_loader.models import TableSchemaVersion

TEST_CONNECTION_STRING = os.environ.get('RAW_LOADER_TEST_CONNECTION_STRING')

pytestmark = pytest.mark.skipif(
    not TEST_CONNECTION_STRING,
    reason="RAW_LOADER_TEST_CONNECTION_STRING not set"
)


@pytest.fixture
def live_database():
    return PyodbcDatabase(TEST_CONNECTION_STRING, connection_timeout=10)


@pytest.fixture
def schema_name(live_database):
    name = f"raw_loader_test_{uuid.uuid4().hex[:8]}"
    yield name
    live_database.execute(f"DROP SCHEMA IF EXISTS {name} CASCADE;")


def _operations(version):
    return ParameterizedInsertOperations(version, error_classifier=SqlStateErrorClassifier())


def _count(database, schema_name, table_name):
    return database.query(f"SELECT COUNT(*) FROM {schema_name}.{table_name}")[0][0]


@pytest.mark.parametrize("version", [TableSchemaVersion.V1, TableSchemaVersion.V2])
def test_insert_records_end_to_end(live_database, schema_name, sample_records, version):
    operations = _operations(version)

    operations.create_schema_if_not_exists(live_database, schema_name)
    operations.create_schema_if_not_exists(live_database, schema_name)
    operations.create_table_if_not_exists(live_database, schema_name, 'users')
    operations.create_table_if_not_exists(live_database, schema_name, 'users')
    operations.insert_records(live_database, sample_records, schema_name, 'users')

    time_column = version.columns[2]
    rows = live_database.query(
        f"SELECT {version.columns[1]}::text, EXTRACT(EPOCH FROM {time_column}) "
        f"FROM {schema_name}.users ORDER BY {time_column}"
    )
    assert [float(row[1]) for row in rows] == [1.0, 2.0, 3.0]
    assert '"alpha"' in rows[0][0]


def test_truncate_empties_table(live_database, schema_name, sample_records):
    operations = _operations(TableSchemaVersion.V2)
    operations.create_schema_if_not_exists(live_database, schema_name)
    operations.create_table_if_not_exists(live_database, schema_name, 'users')
    operations.insert_records(live_database, sample_records, schema_name, 'users')
    assert _count(live_database, schema_name, 'users') == 3

    operations.truncate_table(live_database, schema_name, 'users')

    assert _count(live_database, schema_name, 'users') == 0


def test_truncate_inside_transaction(live_database, schema_name, sample_records):
    operations = _operations(TableSchemaVersion.V2)
    operations.create_schema_if_not_exists(live_database, schema_name)
    operations.create_table_if_not_exists(live_database, schema_name, 'users')
    operations.insert_records(live_database, sample_records, schema_name, 'users')

    operations.execute_transaction(
        live_database, [operations.truncate_table_query(live_database, schema_name, 'users')]
    )

    assert _count(live_database, schema_name, 'users') == 0


def test_drop_then_recreate(live_database, schema_name, sample_records):
    operations = _operations(TableSchemaVersion.V2)
    operations.create_schema_if_not_exists(live_database, schema_name)
    operations.create_table_if_not_exists(live_database, schema_name, 'users')
    operations.insert_records(live_database, sample_records, schema_name, 'users')

    operations.drop_table_if_exists(live_database, schema_name, 'users')
    operations.drop_table_if_exists(live_database, schema_name, 'users')
    operations.create_table_if_not_exists(live_database, schema_name, 'users')

    assert _count(live_database, schema_name, 'users') == 0


def test_failed_transaction_leaves_no_effect(live_database, schema_name, sample_records):
    operations = _operations(TableSchemaVersion.V2)
    operations.create_schema_if_not_exists(live_database, schema_name)
    operations.create_table_if_not_exists(live_database, schema_name, 'users')
    operations.insert_records(live_database, sample_records, schema_name, 'users')

    with pytest.raises(pyodbc.Error):
        operations.execute_transaction(live_database, [
            operations.truncate_table_query(live_database, schema_name, 'users'),
            f"INSERT INTO {schema_name}.missing_table SELECT * FROM {schema_name}.users;\n",
        ])

    assert _count(live_database, schema_name, 'users') == 3


def test_copy_between_tables_in_transaction(live_database, schema_name, sample_records):
    operations = _operations(TableSchemaVersion.V1)
    operations.create_schema_if_not_exists(live_database, schema_name)
    operations.create_table_if_not_exists(live_database, schema_name, 'tmp_users')
    operations.create_table_if_not_exists(live_database, schema_name, 'users')
    operations.insert_records(live_database, sample_records, schema_name, 'tmp_users')

    operations.execute_transaction(live_database, [
        operations.insert_table_query(live_database, schema_name, 'tmp_users', 'users'),
        operations.drop_table_if_exists_query(schema_name, 'tmp_users'),
    ])

    assert _count(live_database, schema_name, 'users') == 3
