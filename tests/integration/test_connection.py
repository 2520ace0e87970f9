"""Tests for PyodbcDatabase with pyodbc.connect patched out."""

import pytest

pyodbc = pytest.importorskip("pyodbc")

from unittest.mock import MagicMock, patch

from raw_loader.database.connection import PyodbcDatabase
from raw_loader.exceptions import DatabaseConnectionError


CONNECTION_STRING = "DRIVER={PostgreSQL Unicode};SERVER=db;PORT=5432;DATABASE=raw;"


@pytest.fixture
def mock_connection():
    connection = MagicMock()
    cursor = MagicMock()
    connection.cursor.return_value = cursor
    return connection


@pytest.fixture
def database():
    return PyodbcDatabase(CONNECTION_STRING, connection_timeout=7)


class TestConnection:

    def test_connects_in_autocommit_with_timeout(self, database, mock_connection):
        with patch('raw_loader.database.connection.pyodbc.connect', return_value=mock_connection) as connect:
            database.execute("SELECT 1")

        connect.assert_called_once_with(CONNECTION_STRING, autocommit=True, timeout=7)
        mock_connection.setencoding.assert_called_once_with(encoding='utf-8')
        mock_connection.close.assert_called_once()

    def test_settings_from_configuration(self, monkeypatch):
        monkeypatch.setenv('RAW_LOADER_CONNECTION_STRING', 'DSN=raw')
        monkeypatch.setenv('RAW_LOADER_DB_CONNECTION_TIMEOUT', '12')

        database = PyodbcDatabase()

        assert database.connection_string == 'DSN=raw'
        assert database.connection_timeout == 12

    def test_unreachable_server_raises_connection_error(self, database):
        error = pyodbc.OperationalError('08001', '[08001] could not connect to server: Connection refused')
        with patch('raw_loader.database.connection.pyodbc.connect', side_effect=error):
            with pytest.raises(DatabaseConnectionError) as exc_info:
                database.execute("SELECT 1")

        assert exc_info.value.__cause__ is error

    def test_authentication_error_left_for_classifier(self, database):
        error = pyodbc.Error('28P01', '[28P01] FATAL: password authentication failed for user "loader"')
        with patch('raw_loader.database.connection.pyodbc.connect', side_effect=error):
            with pytest.raises(pyodbc.Error) as exc_info:
                database.execute("SELECT 1")

        assert exc_info.value is error


class TestStatements:

    def test_execute_closes_cursor_and_connection(self, database, mock_connection):
        with patch('raw_loader.database.connection.pyodbc.connect', return_value=mock_connection):
            database.execute("CREATE SCHEMA IF NOT EXISTS s1;")

        cursor = mock_connection.cursor.return_value
        cursor.execute.assert_called_once_with("CREATE SCHEMA IF NOT EXISTS s1;")
        cursor.close.assert_called_once()
        mock_connection.close.assert_called_once()

    def test_execute_error_still_closes_connection(self, database, mock_connection):
        cursor = mock_connection.cursor.return_value
        cursor.execute.side_effect = pyodbc.ProgrammingError('42P01', 'relation does not exist')
        with patch('raw_loader.database.connection.pyodbc.connect', return_value=mock_connection):
            with pytest.raises(pyodbc.ProgrammingError):
                database.execute("TRUNCATE TABLE s1.missing;")

        mock_connection.close.assert_called_once()

    def test_query_returns_tuples(self, database, mock_connection):
        cursor = mock_connection.cursor.return_value
        cursor.fetchall.return_value = [[1], [2]]
        with patch('raw_loader.database.connection.pyodbc.connect', return_value=mock_connection):
            rows = database.query("SELECT 1 FROM information_schema.schemata WHERE schema_name = ?", 's1')

        cursor.execute.assert_called_once_with(
            "SELECT 1 FROM information_schema.schemata WHERE schema_name = ?", 's1'
        )
        assert rows == [(1,), (2,)]


class TestRunWithCursor:

    def test_commits_on_success(self, database, mock_connection):
        with patch('raw_loader.database.connection.pyodbc.connect', return_value=mock_connection):
            result = database.run_with_cursor(lambda cursor: 5)

        assert result == 5
        assert mock_connection.autocommit is False
        mock_connection.commit.assert_called_once()
        mock_connection.rollback.assert_not_called()

    def test_rolls_back_on_error(self, database, mock_connection):
        def _work(cursor):
            raise pyodbc.IntegrityError('23505', 'duplicate key value')

        with patch('raw_loader.database.connection.pyodbc.connect', return_value=mock_connection):
            with pytest.raises(pyodbc.IntegrityError):
                database.run_with_cursor(_work)

        mock_connection.rollback.assert_called_once()
        mock_connection.commit.assert_not_called()
        mock_connection.cursor.return_value.close.assert_called_once()
