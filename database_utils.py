"""
Database utilities for the LimeSurvey SQL runner
Handles the MySQL connection and statement execution using pyodbc
"""

import pyodbc
import logging
import pandas as pd
from typing import List, Optional, Union

from config_manager import ConnectionConfig, get_connection_string, load_config
from defines import FetchMode, TABLE_PREFIX_PLACEHOLDER, CLIENT_CHARSET
from exceptions import ConnectionFailed, NotConnected, StatementFailed

# Configure logging
logger = logging.getLogger(__name__)


def replace_table_prefix(sql: str, prefix: str) -> str:
    """
    Use the correct prefix: every "#_" is replaced by the LimeSurvey table prefix.

    Args:
        sql: SQL statement, i.e. SELECT Count(sid) As Count FROM `#_surveys`
        prefix: Table prefix, i.e. lime_

    Returns:
        The statement with the real table names
    """
    return sql.replace(TABLE_PREFIX_PLACEHOLDER, prefix)


class DatabaseConnection:
    """
    Session on the LimeSurvey database.
    Owns one connection, opened by connect() and released once by disconnect().

    Use it as a context manager so the connection is closed even on errors:

        with DatabaseConnection(config) as db:
            rows = db.execute_statement('SELECT * FROM #_surveys')
    """

    def __init__(self, config: ConnectionConfig):
        """Initialize the session, nothing is opened yet"""
        self.config = config
        self.connection = None

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    def connect(self):
        """
        Establish a connection to the LimeSurvey database.
        The session character set is forced to UTF-8.

        Raises:
            ConfigInvalid: If the DSN isn't a MySQL one
            ConnectionFailed: If the server can't be reached or the credentials are incorrect
        """
        if self.is_connected:
            return

        connection_string = get_connection_string(self.config)
        try:
            # PDO runs in autocommit mode, keep the same behaviour
            connection = pyodbc.connect(connection_string, autocommit=True)
        except pyodbc.Error as e:
            logger.error(f"Failed to connect to {self.config.dsn} as {self.config.username}: {e}")
            raise ConnectionFailed(self.config.dsn, self.config.username, str(e)) from e

        try:
            # Be sure to correctly handle accentuated characters
            connection.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            connection.setdecoding(pyodbc.SQL_WCHAR, encoding='utf-8')
            connection.setencoding(encoding='utf-8')
            connection.execute(f"SET NAMES '{CLIENT_CHARSET}'")
        except pyodbc.Error as e:
            _close(connection, "database connection")
            logger.error(f"Failed to set the {CLIENT_CHARSET} character set: {e}")
            raise ConnectionFailed(self.config.dsn, self.config.username, str(e)) from e

        self.connection = connection
        logger.info(f"Database connection established successfully ({self.config.dsn})")

    def disconnect(self):
        """Close the database connection"""
        if self.connection is None:
            return
        connection, self.connection = self.connection, None
        if _close(connection, "database connection"):
            logger.info("Database connection closed")

    def execute_statement(self, sql: str, fetch_mode: FetchMode = FetchMode.ASSOC
                          ) -> Union[List[dict], List[tuple], pd.DataFrame]:
        """
        Execute a statement against the LimeSurvey database.

        The "#_" prefix used in table names is replaced by the prefix used by
        LimeSurvey. The statement is sent as is, without bound parameters, so
        never build it from user input.

        Args:
            sql: SQL statement, i.e. SELECT Count(sid) As Count FROM `#_surveys`
            fetch_mode: FetchMode.ASSOC (list of dicts), FetchMode.NUM (list of tuples)
                or FetchMode.FRAME (pandas DataFrame)

        Returns:
            All the rows of the result, an empty result for statements without one

        Raises:
            NotConnected: When the database isn't initialized first
            StatementFailed: When the execution of the SQL statement has failed
        """
        if not self.is_connected:
            raise NotConnected()

        sql = replace_table_prefix(sql, self.config.table_prefix)

        cursor = None
        try:
            cursor = self.connection.cursor()
            cursor.execute(sql)
            if cursor.description is None:
                # UPDATE, DELETE, ... nothing to fetch
                columns, rows = [], []
            else:
                columns = [column[0] for column in cursor.description]
                rows = cursor.fetchall()
        except pyodbc.Error as e:
            logger.error(f"Query execution failed: {e}")
            logger.error(f"Query: {sql}")
            raise StatementFailed(sql, str(e)) from e
        finally:
            if cursor is not None:
                _close(cursor, "cursor")

        logger.info(f"Query executed successfully, returned {len(rows)} rows")
        return _shape_rows(columns, rows, fetch_mode)

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.disconnect()


def _close(resource, name: str) -> bool:
    """Close a cursor or connection. A driver error is logged, the resource is given up either way"""
    try:
        resource.close()
    except pyodbc.Error as e:
        logger.error(f"Failed to close the {name}: {e}")
        return False
    return True


def _shape_rows(columns: List[str], rows, fetch_mode: FetchMode):
    if fetch_mode is FetchMode.NUM:
        return [tuple(row) for row in rows]
    if fetch_mode is FetchMode.FRAME:
        return pd.DataFrame.from_records([tuple(row) for row in rows], columns=columns)
    return [dict(zip(columns, row)) for row in rows]


def execute_custom_query(sql: str, fetch_mode: FetchMode = FetchMode.ASSOC,
                         config: Optional[ConnectionConfig] = None):
    """
    Execute one statement on its own connection.
    This provides a modular way to run any query as the script grows.

    Args:
        sql: SQL statement, "#_" is replaced by the table prefix
        fetch_mode: Shape of the returned rows
        config: Database settings (default: loaded from the LimeSurvey configuration)

    Returns:
        The rows of the result, see DatabaseConnection.execute_statement()
    """
    if config is None:
        config = load_config()

    with DatabaseConnection(config) as db:
        return db.execute_statement(sql, fetch_mode)
