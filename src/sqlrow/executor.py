"""
Binding and execution of parsed statements.

    StatementTemplate + parameter Row → bind → BoundStatement
    BoundStatement → execute → affected row count
    BoundStatement → query → QueryResult (lazy QueriedRows over one cursor)

Parameter values pass through their converter at bind time; result values
pass through the converter of their typed result column when read.
"""
import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

import pandas as pd

from sqlrow.converters import HOST_KIND_CONVERTERS, PASSTHROUGH, Converter
from sqlrow.cursor import Cursor
from sqlrow.exceptions import DatabaseAccessException, DriverError
from sqlrow.exceptions import MissingParameterError
from sqlrow.parser import Parameter, ResultColumn, StatementTemplate
from sqlrow.row import QueriedRow, Row, split_source

if TYPE_CHECKING:
    from sqlrow.connection import Database

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class BoundStatement:
    """Template with every placeholder resolved to a converted value."""
    template: StatementTemplate
    sql: str
    params: tuple = field(default_factory=tuple)


def converter_for(parameter: Parameter, converters: Mapping[str, Converter] | None = None) -> Converter:
    """Converter for a parameter: explicit override, declared kind, passthrough.
    """
    if converters and parameter.name in converters:
        return converters[parameter.name]
    if parameter.host_kind is not None:
        return HOST_KIND_CONVERTERS[parameter.host_kind]
    return PASSTHROUGH


def _lookup(params: Mapping[str, Any], parameter: Parameter) -> Any:
    if parameter.name in params:
        return params[parameter.name]
    if parameter.display_name and parameter.display_name in params:
        return params[parameter.display_name]
    return _MISSING


def bind(template: StatementTemplate, params: Mapping[str, Any] | None = None,
         converters: Mapping[str, Converter] | None = None,
         placeholder: str = '?', escape_percent: bool = False) -> BoundStatement:
    """Bind parameter values to a template.

    Values are looked up by parameter name, then by display name. Raises
    MissingParameterError for a placeholder without a value and
    ConversionError for a value its converter rejects.
    """
    params = params or {}
    by_name = {p.name: p for p in template.parameters}
    values = []
    for placeholder_param in template.placeholders:
        parameter = by_name[placeholder_param.name]
        value = _lookup(params, parameter)
        if value is _MISSING:
            raise MissingParameterError(parameter.name)
        values.append(converter_for(parameter, converters).to_sql(value))

    sql = template.render(placeholder, escape_percent=escape_percent and bool(values))
    return BoundStatement(template, sql, tuple(values))


_JOINED_AS = re.compile(r'^\s*(?P<key>\S+)\s+as\s+(?P<name>\S+)\s*$', re.IGNORECASE)


def _joined_spec(spec: str) -> tuple[str, str]:
    """``key as name`` or ``key``, which is attached under ``key + 's'``."""
    match = _JOINED_AS.match(spec)
    if match:
        return match.group('key'), match.group('name')
    key = spec.strip()
    return key, f'{key}s'


class QueryResult:
    """Forward-only sequence of QueriedRows backed by one open cursor.

    The cursor is released when the rows are exhausted, when ``close`` is
    called, when used as a context manager, or when an abandoned result is
    garbage collected.
    """

    def __init__(self, cursor: Cursor, template: StatementTemplate, naming) -> None:
        self._cursor = cursor
        self.template = template
        self.labels = cursor.labels
        self._columns: list[tuple[str, Converter, ResultColumn | None]] = []
        display_names = {}
        sources = {}
        for label in self.labels:
            column = template.result_column(label)
            if column is not None:
                key, converter = column.key, HOST_KIND_CONVERTERS[column.host_kind]
                display_names[key] = column.display_name
                sources[key] = column.source
            else:
                key, converter = label, PASSTHROUGH
                display_names[key] = naming.sql_to_host(label)
            self._columns.append((key, converter, column))
        self._display_names = display_names
        self._sources = sources
        self._rows = self._generate()

    def __iter__(self) -> Iterator[QueriedRow]:
        return self

    def __next__(self) -> QueriedRow:
        return next(self._rows)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        self._cursor.close()

    @property
    def keys(self) -> list[str]:
        return [key for key, _, _ in self._columns]

    @property
    def closed(self) -> bool:
        return self._cursor.closed

    def _generate(self) -> Iterator[QueriedRow]:
        try:
            while True:
                try:
                    raw = self._cursor.fetchone()
                except DriverError as exc:
                    raise DatabaseAccessException(f'Failed to fetch row: {exc}') from exc
                if raw is None:
                    return
                yield QueriedRow(
                    ((key, converter.from_sql(value)) for (key, converter, _), value in zip(self._columns, raw)),
                    self._display_names, self._sources)
        finally:
            self._cursor.close()

    def close(self) -> None:
        self._rows.close()
        self._cursor.close()

    def first(self) -> QueriedRow | None:
        """First row, or None. Closes the result."""
        try:
            return next(self, None)
        finally:
            self.close()

    def to_list(self) -> list[QueriedRow]:
        return list(self)

    def to_dataframe(self) -> pd.DataFrame:
        """Consume the rows into a DataFrame.

        Host kinds of typed result columns are kept in ``df.attrs['column_types']``.
        """
        df = pd.DataFrame.from_records(self.to_list(), columns=self.keys)
        df.attrs['column_types'] = {
            key: column.host_kind.value
            for key, _, column in self._columns if column is not None
            }
        return df

    def tables(self) -> dict[str, str | None]:
        """Table qualifier of each result key; None when unknown."""
        return {key: split_source(self._sources.get(key))[0] for key in self.keys}

    def as_row_tree(self, id_key: str, *joined: str) -> list[Row]:
        """Fold the rows of a joined query into one Row per ``id_key`` value.

        Each ``joined`` entry names the key column of a joined table, as
        ``address_id`` (attached as ``address_ids``) or ``address_id as
        addresses``. The columns of that key's table are moved out of the
        parent into a list of rows under the attached name, one row per
        distinct key value; a NULL key (unmatched outer join) adds nothing.
        Tables are told apart by the qualifier of each typed result column,
        e.g. ``a`` in ``a.city /*:string*/``.
        """
        tables = self.tables()
        if id_key not in tables:
            raise KeyError(f"Result has no column '{id_key}'")
        joins = []
        for spec in joined:
            key, name = _joined_spec(spec)
            if key not in tables:
                raise KeyError(f"Result has no column '{key}'")
            table = tables[key]
            if table is None or table == tables[id_key]:
                raise ValueError(f"Joined key '{key}' must be a typed column of a table "
                                 f"other than the one of '{id_key}'")
            joins.append((key, name, [k for k in self.keys if tables[k] == table]))

        joined_keys = {k for _, _, child_keys in joins for k in child_keys}
        parent_keys = [k for k in self.keys if k not in joined_keys]
        parents: dict[Any, Row] = {}
        seen: dict[tuple[Any, str], set] = {}
        for row in self:
            parent = parents.get(row[id_key])
            if parent is None:
                parent = Row((k, row[k]) for k in parent_keys)
                for _, name, _ in joins:
                    parent[name] = []
                parents[row[id_key]] = parent
            for key, name, child_keys in joins:
                if row[key] is None:
                    continue
                known = seen.setdefault((row[id_key], name), set())
                if row[key] not in known:
                    known.add(row[key])
                    parent[name].append(Row((k, row[k]) for k in child_keys))
        return list(parents.values())


class StatementExecutor:
    """Runs bound statements on the cursors of one Database.
    """

    def __init__(self, database: 'Database') -> None:
        self.database = database

    def bind(self, template: StatementTemplate, params: Mapping[str, Any] | None = None,
             converters: Mapping[str, Converter] | None = None) -> BoundStatement:
        strategy = self.database.strategy
        return bind(template, params, converters,
                    placeholder=strategy.get_placeholder_style(),
                    escape_percent=strategy.escape_percent)

    def execute(self, bound: BoundStatement) -> int:
        """Run a command and return the affected row count.
        """
        with self.database.cursor() as cursor:
            try:
                return cursor.execute(bound.sql, bound.params)
            except DriverError as exc:
                raise DatabaseAccessException(f'Statement failed: {exc}') from exc

    def query(self, bound: BoundStatement) -> QueryResult:
        """Run a query and return its rows lazily.

        The statement is executed before returning so errors surface here.
        """
        cursor = self.database.new_cursor()
        try:
            cursor.execute(bound.sql, bound.params)
        except DriverError as exc:
            cursor.close()
            raise DatabaseAccessException(f'Query failed: {exc}') from exc
        return QueryResult(cursor, bound.template, self.database.naming)
