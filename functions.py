import html

from defines import FetchMode, TABLE_LIST_TITLE


def list_tables(db) -> list:
    """
    Get the list of tables in the LimeSurvey database.

    Args:
        db (DatabaseConnection): Connected session

    Returns:
        list: Table names, in the order returned by the server
    """
    rows = db.execute_statement('SHOW TABLES', FetchMode.NUM)
    return [row[0] for row in rows]


def render_table_list(tables: list, title: str = TABLE_LIST_TITLE) -> str:
    """
    Render table names as an HTML ordered list preceded by a heading.

    Args:
        tables (list): Table names
        title (str): Heading of the list

    Returns:
        str: i.e. <h2>...</h2><ol><li>lime_surveys</li><li>lime_users</li></ol>
    """
    items = ''.join(f'<li>{html.escape(str(table))}</li>' for table in tables)
    return f'<h2>{html.escape(title)}</h2><ol>{items}</ol>'
