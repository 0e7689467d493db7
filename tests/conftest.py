"""Shared test fixtures for the LimeSurvey SQL runner test suite."""

from unittest.mock import MagicMock, patch

import pytest

from config_manager import ConnectionConfig
from tests.helpers import write_config


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's .env or shell settings out of the tests."""
    monkeypatch.delenv("LIMESURVEY_ROOT", raising=False)
    monkeypatch.delenv("ODBC_DRIVER", raising=False)


@pytest.fixture
def limesurvey_root(tmp_path):
    """A LimeSurvey site root holding a realistic config.php."""
    write_config(tmp_path)
    return tmp_path


@pytest.fixture
def db_config():
    return ConnectionConfig(
        dsn="mysql:host=localhost;port=3306;dbname=limesurvey;",
        username="root",
        password="secret",
        table_prefix="lime_",
    )


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_cursor():
    """Mock pyodbc cursor returning the tables of a LimeSurvey database."""
    cursor = MagicMock()
    cursor.description = [("Tables_in_limesurvey", str, None, 64, 64, 0, False)]
    cursor.fetchall.return_value = [("lime_surveys",), ("lime_users",)]
    return cursor


@pytest.fixture
def mock_connection(mock_cursor):
    connection = MagicMock()
    connection.cursor.return_value = mock_cursor
    return connection


@pytest.fixture
def mock_connect(mock_connection):
    """Patch pyodbc.connect to hand out the mock connection."""
    with patch("database_utils.pyodbc.connect", return_value=mock_connection) as m:
        yield m
