"""
Connections and the Database context built on them.

    connect(options) → Database (owns one SQLAlchemy connection)
    Database.table(name) → Table, CRUD on reflected metadata
    Database.statement(sql) / sql_file(path) → typed, annotated statements
    Database.execute_raw / query_raw → plain SQL with %s placeholders

Engines are shared per connection URL and never pool: every Database holds
its connection for its whole life.
"""
import atexit
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import replace
from functools import partial
from typing import Any, Self

import cachetools
import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from sqlrow.converters import ConverterRegistry
from sqlrow.cursor import Cursor
from sqlrow.exceptions import DatabaseAccessException, DriverError
from sqlrow.executor import StatementExecutor
from sqlrow.naming import NamingConvention, get_naming
from sqlrow.options import DatabaseOptions
from sqlrow.parser import StatementTemplate, parse
from sqlrow.row import Row
from sqlrow.schema import TableCache, TableMetadata, load_table
from sqlrow.sql import standardize_placeholders
from sqlrow.sqlfile import SqlFile
from sqlrow.statement import Statement
from sqlrow.strategy import get_db_strategy, get_dialect_name, get_strategy
from sqlrow.table import Table

__all__ = [
    'Database',
    'connect',
    'configure_connection',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engines: dict[tuple[str, str], Engine] = {}
_engines_lock = threading.RLock()


def get_engine_for_options(options: DatabaseOptions, **kwargs: Any) -> Engine:
    """Shared NullPool engine for the URL and engine arguments of ``options``.
    """
    strategy = get_strategy(options.drivername)
    url = strategy.build_connection_url(options)
    engine_kwargs: dict[str, Any] = {'poolclass': NullPool, **strategy.get_engine_kwargs(options), **kwargs}
    key = (url.render_as_string(hide_password=False), repr(sorted(engine_kwargs.items(), key=str)))

    with _engines_lock:
        engine = _engines.get(key)
        if engine is None:
            engine = _engines[key] = sa.create_engine(url, **engine_kwargs)
            logger.debug(f'Created engine for {url!r}')
        return engine


@atexit.register
def dispose_all_engines() -> None:
    """Dispose every shared engine. Runs at interpreter exit.
    """
    with _engines_lock:
        while _engines:
            _, engine = _engines.popitem()
            engine.dispose()
    logger.debug('Disposed all engines')


def configure_connection(sa_connection: sa.engine.Connection, autocommit: bool = True) -> None:
    """Install driver adapters and apply the autocommit mode to a new connection.
    """
    strategy = get_db_strategy(sa_connection)
    strategy.register_type_adapters()
    strategy.configure_connection(sa_connection.connection.driver_connection, autocommit)


class Database:
    """One database connection and the metadata cached for it.

    Table metadata is loaded on first access and kept until
    ``reset_tables``; parsed inline statements are kept in an LRU cache.
    Not safe for concurrent use of the connection from several threads.
    """

    def __init__(self, sa_connection: sa.engine.Connection, options: DatabaseOptions | None = None,
                 naming: str | NamingConvention | None = None, owns_connection: bool = True) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.options = options
        self.dialect = get_dialect_name(sa_connection)
        self.strategy = get_db_strategy(sa_connection)
        self.naming = get_naming(naming or (options.naming if options else 'camel'))
        self.converters = ConverterRegistry()
        self.strategy.register_converters(self.converters)
        self.tables = TableCache(partial(load_table, self))
        self.executor = StatementExecutor(self)
        cache_size = options.statement_cache_size if options else 128
        self._statements: cachetools.LRUCache = cachetools.LRUCache(maxsize=cache_size)
        self._statements_lock = threading.Lock()
        self._owns_connection = owns_connection
        self.calls = 0
        self.time = 0

    @classmethod
    def from_connection(cls, sa_connection: sa.engine.Connection,
                        naming: str | NamingConvention = 'camel') -> Self:
        """Wrap an externally managed SQLAlchemy connection.

        The connection's autocommit mode is left alone and ``close`` does
        not close it.
        """
        get_db_strategy(sa_connection).register_type_adapters()
        return cls(sa_connection, naming=naming, owns_connection=False)

    def __repr__(self) -> str:
        return f'Database({self.dialect!r}, tables={len(self.tables)})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def dbapi_connection(self) -> Any:
        return self.sa_connection.connection.driver_connection

    @property
    def closed(self) -> bool:
        return self.sa_connection.closed

    def addcall(self, elapsed: float) -> None:
        """Count one statement and its elapsed time.
        """
        self.time += elapsed
        self.calls += 1

    def new_cursor(self) -> Cursor:
        return Cursor(self.dbapi_connection.cursor(), self)

    @contextmanager
    def cursor(self):
        """Cursor closed when the block exits.
        """
        cursor = self.new_cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    # tables

    def table_metadata(self, name: str) -> TableMetadata:
        return self.tables.get(name)

    def table(self, name: str) -> Table:
        """Data access for a table, ``[schema.]name``.

        Raises UnknownTableError or AmbiguousTableError.
        """
        return Table(self, self.tables.get(name))

    def reset_tables(self) -> None:
        """Forget all table metadata, e.g. after schema changes.
        """
        self.tables.invalidate()

    # statements

    def parse(self, sql: str) -> StatementTemplate:
        """Parse an annotated statement, cached by its text.
        """
        with self._statements_lock:
            template = self._statements.get(sql)
        if template is None:
            template = parse(sql, self.naming)
            with self._statements_lock:
                self._statements[sql] = template
        return template

    def statement(self, sql: str) -> Statement:
        return Statement(self, self.parse(sql))

    def sql_file(self, path: str | os.PathLike) -> SqlFile:
        return SqlFile.from_path(path, self)

    def sql_string(self, text: str, name: str = '<string>') -> SqlFile:
        return SqlFile(text, name, self)

    # plain SQL

    def execute_raw(self, sql: str, *args: Any) -> int:
        """Execute plain SQL with %s placeholders; return affected row count.
        """
        sql = standardize_placeholders(sql, self.dialect)
        with self.cursor() as cursor:
            try:
                return cursor.execute(sql, args)
            except DriverError as exc:
                raise DatabaseAccessException(f'Statement failed: {exc}') from exc

    def query_raw(self, sql: str, *args: Any) -> list[Row]:
        """Run plain SQL with %s placeholders; rows keyed by result label.
        """
        sql = standardize_placeholders(sql, self.dialect)
        with self.cursor() as cursor:
            try:
                cursor.execute(sql, args)
                labels = cursor.labels
                return [Row(zip(labels, raw)) for raw in cursor.fetchall()]
            except DriverError as exc:
                raise DatabaseAccessException(f'Query failed: {exc}') from exc

    # transactions

    def commit(self) -> None:
        """Commit on the driver connection; a no-op in autocommit mode.
        """
        self.dbapi_connection.commit()

    def rollback(self) -> None:
        self.dbapi_connection.rollback()

    def close(self) -> None:
        """Close the connection if this Database opened it.
        """
        if self._owns_connection and not self.sa_connection.closed:
            self.sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')


def connect(options: DatabaseOptions | dict[str, Any] | None = None, **kw: Any) -> Database:
    """Connect to a database.

    Args:
        options: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - None, with options specified as keyword arguments
        **kw: Additional keyword arguments to override options

    Returns
        Database owning a new connection
    """
    if isinstance(options, DatabaseOptions):
        if kw:
            options = replace(options, **kw)
    else:
        options = DatabaseOptions.from_config(options, **kw)

    engine = get_engine_for_options(options)
    sa_connection = engine.connect()
    configure_connection(sa_connection, options.autocommit)

    return Database(sa_connection, options)
