from enum import Enum

# Location of the LimeSurvey configuration file, relative to the site root
CONFIG_RELATIVE_PATH = ('application', 'config', 'config.php')

# Token used in ad hoc queries in place of the LimeSurvey table prefix
# i.e. SELECT * FROM #_surveys  -->  SELECT * FROM lime_surveys
TABLE_PREFIX_PLACEHOLDER = '#_'

# Keys read from $config['components']['db']
REQUIRED_DB_FIELDS = ('connectionString', 'username', 'password', 'tablePrefix')

# MySQL Connector/ODBC, override with ODBC_DRIVER in .env
DEFAULT_ODBC_DRIVER = 'MySQL ODBC 8.0 Unicode Driver'

# Be sure to correctly handle accentuated characters
CLIENT_CHARSET = 'utf8'

# Title of the example report
TABLE_LIST_TITLE = 'List of tables in the LimeSurvey DB'


class FetchMode(Enum):
    """Shape of the rows returned by execute_statement()"""
    ASSOC = 'assoc'   # list of dicts, column name -> value
    NUM = 'num'       # list of tuples, in column order
    FRAME = 'frame'   # pandas DataFrame
