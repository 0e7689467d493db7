"""
Configuration Manager for the LimeSurvey SQL runner
Reads the database credentials from the LimeSurvey configuration file
"""

import os
import sys
import logging
from typing import NamedTuple, Optional
from dotenv import load_dotenv

from defines import CONFIG_RELATIVE_PATH, REQUIRED_DB_FIELDS, DEFAULT_ODBC_DRIVER, CLIENT_CHARSET
from exceptions import ConfigNotFound, ConfigInvalid
from php_config import PhpExpression, load_php_config

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables from .env file (LIMESURVEY_ROOT, ODBC_DRIVER)
load_dotenv()

# PDO DSN keys mapped to MySQL Connector/ODBC keywords
DSN_TO_ODBC = {
    'host': 'SERVER',
    'port': 'PORT',
    'dbname': 'DATABASE',
    'unix_socket': 'SOCKET',
}


class ConnectionConfig(NamedTuple):
    """Database settings of the LimeSurvey installation"""
    dsn: str
    username: str
    password: str
    table_prefix: str

    def __repr__(self):
        return (f"ConnectionConfig(dsn={self.dsn!r}, username={self.username!r}, "
                f"password='***', table_prefix={self.table_prefix!r})")


def get_root_dir(script: Optional[str] = None) -> str:
    """
    Get the root folder of the LimeSurvey website, i.e. C:/Sites/LimeSurvey.

    The script is expected to be stored in that folder. The path isn't resolved
    so a symlinked script still points to the site it was linked from. Set
    LIMESURVEY_ROOT (environment or .env) when the script lives elsewhere.

    Args:
        script (str): Path of the running script (default: sys.argv[0])

    Returns:
        str: Absolute path of the root folder
    """
    root = os.getenv('LIMESURVEY_ROOT')
    if root:
        return os.path.abspath(root)

    if script is None:
        script = sys.argv[0]
    return os.path.dirname(os.path.abspath(script))


def get_config_path(root: str) -> str:
    """Path of the configuration file of LimeSurvey (database information's are stored there)"""
    return os.path.join(root, *CONFIG_RELATIVE_PATH)


def extract_db_settings(config: dict) -> ConnectionConfig:
    """
    Isolate the database information's of a parsed LimeSurvey configuration.

    Args:
        config (dict): Array returned by config.php

    Returns:
        ConnectionConfig: The four values of $config['components']['db'], unchanged

    Raises:
        ConfigInvalid: If the db section or one of its required fields is missing or not a literal
    """
    components = config.get('components') if isinstance(config, dict) else None
    db = components.get('db') if isinstance(components, dict) else None
    if not isinstance(db, dict):
        logger.error("Missing database configuration: components.db")
        raise ConfigInvalid("No 'components' => 'db' section in the LimeSurvey configuration",
                            missing=list(REQUIRED_DB_FIELDS))

    # An empty password or table prefix is valid, only presence is checked
    missing_fields = [field for field in REQUIRED_DB_FIELDS if field not in db or db[field] is None]
    if missing_fields:
        logger.error(f"Missing database configuration: {', '.join(missing_fields)}")
        raise ConfigInvalid(f"Missing database configuration: {', '.join(missing_fields)}",
                            missing=missing_fields)

    return ConnectionConfig(
        dsn=_php_string('connectionString', db['connectionString']),
        username=_php_string('username', db['username']),
        password=_php_string('password', db['password']),
        table_prefix=_php_string('tablePrefix', db['tablePrefix']),
    )


def _php_string(field: str, value) -> str:
    """Convert a literal scalar to a string the way PHP does, anything else is refused"""
    if isinstance(value, PhpExpression):
        logger.error(f"Database configuration '{field}' is computed by PHP (line {value.line}): {value}")
        raise ConfigInvalid(f"'{field}' must be a literal value, line {value.line}: {value}")
    if isinstance(value, bool):
        return '1' if value else ''
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigInvalid(f"'{field}' must be a string, got {type(value).__name__}")


def load_config(root: Optional[str] = None) -> ConnectionConfig:
    """
    Load the LimeSurvey configuration file and get the database settings.

    Args:
        root (str): Root folder of the LimeSurvey website (default: get_root_dir())

    Returns:
        ConnectionConfig: Database settings

    Raises:
        ConfigNotFound: If application/config/config.php doesn't exist
        ConfigInvalid: If the file can't be parsed or lacks a required field
    """
    if root is None:
        root = get_root_dir()

    config_path = get_config_path(root)
    if not os.path.isfile(config_path):
        logger.error(f"LimeSurvey configuration not found: {config_path}")
        raise ConfigNotFound(config_path)

    settings = extract_db_settings(load_php_config(config_path))
    logger.info(f"Database configuration loaded from {config_path}")
    return settings


def parse_dsn(dsn: str) -> tuple:
    """
    Split a PDO DSN into its driver and parameters.

    Args:
        dsn (str): i.e. mysql:host=localhost;port=3306;dbname=limesurvey;

    Returns:
        tuple: (driver, dict of parameters), i.e. ('mysql', {'host': 'localhost', ...})

    Raises:
        ConfigInvalid: If the DSN has no driver prefix
    """
    driver, separator, rest = dsn.partition(':')
    if not separator or not driver.strip():
        raise ConfigInvalid(f"Invalid connection string {dsn}, expected driver:key=value;...")

    params = {}
    for item in rest.split(';'):
        key, _, value = item.partition('=')
        if key.strip():
            params[key.strip().lower()] = value.strip()

    return driver.strip().lower(), params


def get_connection_string(config: ConnectionConfig, driver: Optional[str] = None) -> str:
    """
    Build and return the ODBC connection string for the LimeSurvey MySQL database.

    Args:
        config (ConnectionConfig): Database settings
        driver (str): ODBC driver name (default: ODBC_DRIVER or DEFAULT_ODBC_DRIVER)

    Returns:
        Formatted connection string

    Raises:
        ConfigInvalid: If the DSN doesn't point to a MySQL database
    """
    dsn_driver, params = parse_dsn(config.dsn)
    if dsn_driver != 'mysql':
        raise ConfigInvalid(f"Unsupported database driver '{dsn_driver}' in {config.dsn}, only mysql is supported")

    if driver is None:
        driver = os.getenv('ODBC_DRIVER') or DEFAULT_ODBC_DRIVER

    # Braces protect ; and = in the credentials, a closing brace is doubled
    username = config.username.replace("}", "}}")
    password = config.password.replace("}", "}}")
    connection_string = f"DRIVER={{{driver}}};"
    for key, keyword in DSN_TO_ODBC.items():
        if params.get(key):
            connection_string += f"{keyword}={params[key]};"
    connection_string += (
        f"UID={{{username}}};"
        f"PWD={{{password}}};"
        f"CHARSET={CLIENT_CHARSET};"
    )

    return connection_string
