"""
Table metadata read from the live schema.

Tables are reflected with the SQLAlchemy Inspector:

    name → resolve schema and table (exact, then case-insensitive)
         → primary key constraint → columns in catalog order
         → converter per column (column override, then SQL type)

Metadata is created once per table name and kept in a TableCache owned by
the Database until explicitly invalidated.
"""
import logging
import threading
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from sqlrow.column import Column
from sqlrow.converters import PASSTHROUGH
from sqlrow.exceptions import AmbiguousTableError, UnknownColumnError
from sqlrow.exceptions import UnknownTableError, UnsupportedTypeError
from sqlrow.naming import split_qualified, unquote
from sqlrow.types import HostKind, column_size, sql_type_for

if TYPE_CHECKING:
    from sqlrow.connection import Database

logger = logging.getLogger(__name__)

_INCREMENTABLE = {HostKind.INTEGER, HostKind.LONG, HostKind.DECIMAL, HostKind.NUMBER}


class TableMetadata:
    """Columns, primary key and revision column of one table.

    Column lookup is synchronized so concurrent readers are safe while
    flags are being applied; schema-mutating calls from several threads on
    one instance are not supported.
    """

    def __init__(self, schema: str | None, name: str, columns: list[Column],
                 primary_key: str | None = None) -> None:
        self.schema = schema
        self.name = name
        self._columns = {c.name: c for c in columns}
        self._lock = threading.RLock()
        if primary_key is not None and primary_key not in self._columns:
            raise UnknownColumnError(f"Primary key '{primary_key}' is not a column of '{self.qualified_name}'")
        self.primary_key = primary_key
        self.revision: Column | None = None

    def __repr__(self) -> str:
        return f'TableMetadata({self.qualified_name!r}, columns={list(self._columns)})'

    def __contains__(self, name: str) -> bool:
        return self.column(name) is not None

    def __iter__(self) -> Iterator[Column]:
        return iter(self.columns)

    @property
    def qualified_name(self) -> str:
        return f'{self.schema}.{self.name}' if self.schema else self.name

    @property
    def sql_name(self) -> str:
        """Qualified name with each part quoted, ready for SQL generation."""
        parts = [self.schema, self.name] if self.schema else [self.name]
        return '.'.join('"' + p.replace('"', '""') + '"' for p in parts)

    @property
    def columns(self) -> list[Column]:
        with self._lock:
            return list(self._columns.values())

    def column(self, name: str) -> Column | None:
        """Look up a column by host name. Never raises."""
        with self._lock:
            return self._columns.get(name)

    def find_column(self, name: str) -> Column | None:
        """Look up a column by host name, then SQL name, then case-insensitively.
        """
        with self._lock:
            if name in self._columns:
                return self._columns[name]
            for column in self._columns.values():
                if column.sql_name == name:
                    return column
            folded = name.casefold()
            for column in self._columns.values():
                if folded in {column.sql_name.casefold(), column.name.casefold()}:
                    return column
        return None

    @property
    def primary_key_column(self) -> Column | None:
        return self.column(self.primary_key) if self.primary_key else None

    def enable_revision_support(self, name: str = 'revision') -> Column:
        """Use an existing integer column for optimistic locking.

        Raises UnknownColumnError if the column is absent.
        """
        column = self.find_column(name)
        if column is None:
            raise UnknownColumnError(f"Table '{self.qualified_name}' has no column '{name}' for revisions")
        if column.host_kind not in _INCREMENTABLE:
            raise UnsupportedTypeError(f"Revision column '{name}' of '{self.qualified_name}' "
                                       f'cannot be incremented ({column.sql_type.value})')
        self.revision = column
        logger.debug(f'Revision support enabled for {self.qualified_name} using {column.name}')
        return column

    def ignore_column(self, name: str, on_update: bool = False) -> Column:
        """Exclude a column from writes and loads, or from updates only.
        """
        with self._lock:
            column = self.find_column(name)
            if column is None:
                raise UnknownColumnError(f"Table '{self.qualified_name}' has no column '{name}'")
            flags = {'ignore_on_update': True} if on_update else {'ignored': True}
            column = column.with_flags(**flags)
            self._columns[column.name] = column
        return column

    def to_dict(self) -> dict[str, Any]:
        """Table description consumed by code generators.
        """
        return {
            'schema': self.schema,
            'name': self.name,
            'primary_key': self.primary_key,
            'revision': self.revision.name if self.revision else None,
            'columns': [c.to_dict() for c in self.columns],
            }


def _match(candidates: list[str], name: str) -> list[str]:
    exact = [c for c in candidates if c == name]
    if exact:
        return exact
    folded = name.casefold()
    return [c for c in candidates if c.casefold() == folded]


def resolve_table(inspector: sa.Inspector, name: str) -> tuple[str | None, str]:
    """Resolve ``[schema.]table`` to the catalog's (schema, table).

    A name without schema is looked up in the default schema first and then
    in every other schema the inspector reports.
    """
    parts = [unquote(p) for p in split_qualified(name)]
    if len(parts) > 2:
        raise UnknownTableError(f"Invalid table name '{name}'")

    if len(parts) == 2:
        schemas = _match(inspector.get_schema_names(), parts[0])
        if not schemas:
            raise UnknownTableError(f"Unknown schema in table name '{name}'")
    else:
        default = inspector.default_schema_name
        others = [s for s in inspector.get_schema_names() if s != default]
        schemas = [default, *others] if default else others

    table_name = parts[-1]
    found: list[tuple[str | None, str]] = []
    for schema in schemas:
        found.extend((schema, t) for t in _match(inspector.get_table_names(schema=schema), table_name))
        if found and len(parts) == 1 and schema == inspector.default_schema_name:
            break

    if not found:
        raise UnknownTableError(f"Table '{name}' not found")
    if len(found) > 1:
        matches = ', '.join(f'{s}.{t}' for s, t in found)
        raise AmbiguousTableError(f"Table name '{name}' is ambiguous: {matches}")
    return found[0]


def load_table(db: 'Database', name: str) -> TableMetadata:
    """Reflect one table from the live schema.

    A name that matches no table is retried in its SQL form under the
    Database's naming convention, so ``personAddress`` finds
    ``person_address``. Raises UnknownTableError or AmbiguousTableError when
    the name does not resolve to exactly one table.
    """
    inspector = sa.inspect(db.sa_connection)
    try:
        schema, table_name = resolve_table(inspector, name)
    except UnknownTableError:
        sql_name = db.naming.host_to_sql(name)
        if sql_name == name:
            raise
        schema, table_name = resolve_table(inspector, sql_name)
    qualified = f'{schema}.{table_name}' if schema else table_name

    pk_columns = inspector.get_pk_constraint(table_name, schema=schema).get('constrained_columns') or []
    if len(pk_columns) > 1:
        logger.warning(f'{qualified} has a composite primary key; using {pk_columns[0]}')

    columns = []
    primary_key = None
    for info in inspector.get_columns(table_name, schema=schema):
        sql_name = info['name']
        sql_type = sql_type_for(info['type'])
        ignored = False
        try:
            converter = db.converters.resolve_column(qualified, sql_name, sql_type)
        except UnsupportedTypeError:
            logger.warning(f'Ignoring column {qualified}.{sql_name}: unsupported type {info["type"]!r}')
            converter, ignored = PASSTHROUGH, True
        column = Column(
            table=qualified,
            name=db.naming.sql_to_host(sql_name),
            sql_name=sql_name,
            sql_type=sql_type,
            converter=converter,
            size=column_size(info['type']),
            nullable=bool(info.get('nullable', True)),
            primary_key=bool(pk_columns) and sql_name == pk_columns[0],
            ignored=ignored,
            )
        if column.primary_key:
            primary_key = column.name
        columns.append(column)

    logger.debug(f'Columns of {qualified}: ' + ', '.join(
        f'{c.name}:{c.sql_type.value}' + ('*' if c.primary_key else '') for c in columns))
    return TableMetadata(schema, table_name, columns, primary_key)


class TableCache:
    """Table metadata by requested name, loaded on first access.

    Entries live until ``invalidate`` is called.
    """

    def __init__(self, loader: Callable[[str], TableMetadata]) -> None:
        self._loader = loader
        self._tables: dict[str, TableMetadata] = {}
        self._lock = threading.RLock()

    def get(self, name: str) -> TableMetadata:
        with self._lock:
            if name not in self._tables:
                self._tables[name] = self._loader(name)
            return self._tables[name]

    def invalidate(self, name: str | None = None) -> None:
        """Drop one table, or every table when no name is given.
        """
        with self._lock:
            if name is None:
                self._tables.clear()
            else:
                self._tables.pop(name, None)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._tables

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)
