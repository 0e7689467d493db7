"""
LimeSurvey SQL runner
=====================

Description:
    Skeleton that sets up everything required to access the LimeSurvey database.
    Only the "business" part has to be written, i.e. the statements you want to
    run to get data, delete information, update, ... (important note: always use
    the LimeSurvey API when possible).

    - Reads the database credentials from application/config/config.php.
    - Opens one connection, forcing the utf8 character set.
    - Runs the statements of process(). "#_" in table names is replaced by the
      LimeSurvey table prefix (SELECT * FROM #_surveys --> lime_surveys).
    - Closes the connection, even when a statement fails.

    The example in process() prints the list of tables as HTML.

Usage:
    Place this script in the root folder of the LimeSurvey installation and run
    ``python db_run_sql.py``. If the script is stored elsewhere set
    LIMESURVEY_ROOT in the environment or in a .env file. ODBC_DRIVER selects the
    MySQL ODBC driver when the default one isn't installed.
"""
import sys
import logging

from config_manager import load_config
from database_utils import DatabaseConnection
from exceptions import DBRunSQLError
from functions import list_tables, render_table_list

logger = logging.getLogger(__name__)


def process(db: DatabaseConnection) -> str:
    """Do the job. Update this function with your business needs."""

    # -------------------------------------------
    # - Code your action here below             -
    # -------------------------------------------

    # Get the list of tables in the database
    tables = list_tables(db)
    logger.info(f"Found {len(tables)} tables")

    return render_table_list(tables)


def main() -> int:
    # Logs go to stderr, stdout only gets the report
    logging.basicConfig(level=logging.INFO)

    try:
        config = load_config()
        with DatabaseConnection(config) as db:
            output = process(db)
    except DBRunSQLError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
