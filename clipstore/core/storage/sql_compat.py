"""SQL text fix-ups for drivers without a null expression"""

import re

from .connection import Connection, NULL_LITERAL

# 'NULL' not adjacent to another quote, i.e. not inside a '' escaped string
_QUOTED_NULL = re.compile(r"(?<!')'" + NULL_LITERAL + r"'(?!')")


def unescape_sql(sql: str) -> str:
    """Replace quoted 'NULL' literals in SQL text with the NULL keyword"""
    return _QUOTED_NULL.sub(NULL_LITERAL, sql)


def unescape_nulls(connection: Connection, statement):
    """
    Re-parse a built statement with its 'NULL' literals turned into real NULLs

    Args:
        connection: Open connection whose driver renders and parses SQL
        statement: Statement built with Connection.expr_value

    Returns:
        Statement parsed from the corrected SQL text
    """
    sql = connection.driver.statement_to_sql(statement)
    return connection.driver.parse_sql_string(unescape_sql(sql))
