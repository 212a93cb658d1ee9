"""
SQL generation helpers for table operations.

Statements built here use the dialect's placeholder marker directly
(``?`` for SQLite, ``%s`` for PostgreSQL). Identifiers are always quoted,
so column and table names are passed exactly as the catalog reports them.
"""
import logging
from collections.abc import Sequence

from sqlrow.naming import split_qualified, unquote
from sqlrow.parser import TokenType, tokenize_sql

logger = logging.getLogger(__name__)

__all__ = [
    'quote_identifier',
    'quote_qualified',
    'placeholder',
    'make_placeholders',
    'insert_sql',
    'update_sql',
    'delete_sql',
    'select_by_id_sql',
    'count_by_id_sql',
    'select_column_sql',
    'standardize_placeholders',
]


def quote_identifier(identifier: str, dialect: str = 'postgresql') -> str:
    """Safely quote database identifiers.

    Parameters
        identifier: Table or column name
        dialect: Database dialect

    Returns
        Quoted identifier

    Raises
        ValueError: If dialect is unsupported
    """
    if dialect in {'postgresql', 'sqlite'}:
        return '"' + identifier.replace('"', '""') + '"'

    raise ValueError(f'Unknown dialect: {dialect}')


def quote_qualified(name: str, dialect: str = 'postgresql') -> str:
    """Quote every segment of a dotted name, e.g. ``schema.table``.
    """
    return '.'.join(quote_identifier(unquote(part), dialect) for part in split_qualified(name))


def placeholder(dialect: str) -> str:
    """Return placeholder for dialect."""
    return '?' if dialect == 'sqlite' else '%s'


def make_placeholders(count: int, dialect: str = 'postgresql') -> str:
    """Comma-separated placeholders, e.g. ``?, ?, ?``.
    """
    return ', '.join([placeholder(dialect)] * count)


def _assignment_list(columns: Sequence[str], dialect: str) -> list[str]:
    marker = placeholder(dialect)
    return [f'{quote_identifier(c, dialect)} = {marker}' for c in columns]


def _assignments(columns: Sequence[str], dialect: str, separator: str) -> str:
    return separator.join(_assignment_list(columns, dialect))


def insert_sql(table: str, columns: Sequence[str], dialect: str) -> str:
    """INSERT for the given columns; DEFAULT VALUES when there are none.
    """
    quoted_table = quote_qualified(table, dialect)
    if not columns:
        return f'INSERT INTO {quoted_table} DEFAULT VALUES'
    quoted_columns = ', '.join(quote_identifier(c, dialect) for c in columns)
    return f'INSERT INTO {quoted_table} ({quoted_columns}) VALUES ({make_placeholders(len(columns), dialect)})'


def update_sql(table: str, columns: Sequence[str], where: Sequence[str], dialect: str,
               revision: str | None = None) -> str:
    """UPDATE with SET and WHERE assignments.

    With a revision column the statement increments it and checks the
    current value as the last WHERE condition.

    Raises ValueError without WHERE columns or anything to set.
    """
    if not where:
        raise ValueError(f'UPDATE of {table} needs at least one WHERE column')
    quoted_table = quote_qualified(table, dialect)
    sets = _assignment_list(columns, dialect)
    conditions = _assignment_list(where, dialect)
    if revision:
        quoted_revision = quote_identifier(revision, dialect)
        sets.append(f'{quoted_revision} = {quoted_revision} + 1')
        conditions.append(f'{quoted_revision} = {placeholder(dialect)}')
    if not sets:
        raise ValueError(f'UPDATE of {table} has no columns to set')
    return f'UPDATE {quoted_table} SET {", ".join(sets)} WHERE {" AND ".join(conditions)}'


def delete_sql(table: str, primary_key: str, dialect: str, revision: str | None = None) -> str:
    quoted_table = quote_qualified(table, dialect)
    conditions = [primary_key] + ([revision] if revision else [])
    return f'DELETE FROM {quoted_table} WHERE {_assignments(conditions, dialect, " AND ")}'


def select_by_id_sql(table: str, columns: Sequence[str], primary_key: str, dialect: str) -> str:
    quoted_table = quote_qualified(table, dialect)
    quoted_columns = ', '.join(quote_identifier(c, dialect) for c in columns)
    return f'SELECT {quoted_columns} FROM {quoted_table} WHERE {_assignments([primary_key], dialect, "")}'


def select_column_sql(table: str, column: str, primary_key: str, dialect: str) -> str:
    return select_by_id_sql(table, [column], primary_key, dialect)


def count_by_id_sql(table: str, primary_key: str, dialect: str) -> str:
    quoted_table = quote_qualified(table, dialect)
    return f'SELECT COUNT(*) FROM {quoted_table} WHERE {_assignments([primary_key], dialect, "")}'


def standardize_placeholders(sql: str, dialect: str = 'postgresql') -> str:
    """Convert ``%s`` placeholders to the dialect's marker.

    Placeholders inside string literals, quoted identifiers and comments
    are left alone.

    Parameters
        sql: SQL query string with ``%s`` placeholders
        dialect: Database dialect

    Returns
        SQL with standardized placeholders
    """
    if dialect != 'sqlite' or '%s' not in sql:
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.SQL_TEXT:
            result.append(token.text.replace('%s', '?'))
        else:
            result.append(token.text)
    return ''.join(result)
