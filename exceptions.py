"""
Errors raised while reading the LimeSurvey configuration or talking to its database.
None of them are transient so nothing here is retried.
"""


class DBRunSQLError(Exception):
    """Base class for every error raised by this script"""


class ConfigNotFound(DBRunSQLError):
    """The LimeSurvey config.php file doesn't exist"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File {path} not found")


class ConfigInvalid(DBRunSQLError):
    """The config file exists but can't be used"""

    def __init__(self, message: str, missing=None):
        self.missing = list(missing or [])
        super().__init__(message)


class ConnectionFailed(DBRunSQLError):
    """The database refused the connection. The password is never part of the message."""

    def __init__(self, dsn: str, username: str, reason: str = ''):
        self.dsn = dsn
        self.username = username
        message = f"Invalid credentials provided for {dsn}, login {username}, password ***"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class NotConnected(DBRunSQLError):
    """A statement was fired before the connection was opened"""

    def __init__(self):
        super().__init__("The database should be initialized first, please call connect() first")


class StatementFailed(DBRunSQLError):
    """The database rejected the statement"""

    def __init__(self, sql: str, reason: str = ''):
        self.sql = sql
        message = f"Invalid SQL statement: {sql}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
