"""
SQLite through the standard ``sqlite3`` driver.

Temporal values are stored as ISO text and parsed back by declared column
type (``PARSE_DECLTYPES``). Autocommit maps to ``isolation_level = None``.
Integer columns hold 64-bit values whatever their declared type.
Generated keys are read through ``lastrowid``.
"""
import datetime
import decimal
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import dateutil.parser
import sqlalchemy as sa

from sqlrow.converters import HOST_KIND_CONVERTERS
from sqlrow.strategy.base import DatabaseStrategy, register_strategy
from sqlrow.types import HostKind, SqlType

if TYPE_CHECKING:
    from sqlrow.converters import ConverterRegistry
    from sqlrow.cursor import Cursor
    from sqlrow.options import DatabaseOptions

logger = logging.getLogger(__name__)

_isoparser = dateutil.parser.isoparser()


def _parse_date(val: bytes) -> datetime.date:
    return dateutil.parser.isoparse(val.decode()).date()


def _parse_datetime(val: bytes) -> datetime.datetime:
    return dateutil.parser.isoparse(val.decode())


def _parse_time(val: bytes) -> datetime.time:
    return _isoparser.parse_isotime(val.decode())


_ADAPTERS = {
    datetime.date: datetime.date.isoformat,
    datetime.datetime: lambda val: val.isoformat(' '),
    datetime.time: datetime.time.isoformat,
    decimal.Decimal: str,
}

# keyed by the first word of the declared column type, case-insensitive
_CONVERTERS = {
    'date': _parse_date,
    'datetime': _parse_datetime,
    'timestamp': _parse_datetime,
    'time': _parse_time,
}


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):

    required_options = ('database',)

    @property
    def dialect_name(self) -> str:
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        connect_args: dict[str, Any] = {'detect_types': sqlite3.PARSE_DECLTYPES}
        if options.timeout:
            connect_args['timeout'] = options.timeout
        return {'connect_args': connect_args}

    def register_type_adapters(self) -> None:
        for host_type, adapter in _ADAPTERS.items():
            sqlite3.register_adapter(host_type, adapter)
        for declared_type, converter in _CONVERTERS.items():
            sqlite3.register_converter(declared_type, converter)

    def register_converters(self, registry: 'ConverterRegistry') -> None:
        # every integer affinity column is stored in up to 8 bytes
        for sql_type in (SqlType.SMALLINT, SqlType.INTEGER):
            registry.register(sql_type, HOST_KIND_CONVERTERS[HostKind.LONG])

    def configure_connection(self, raw_conn: Any, autocommit: bool = True) -> None:
        raw_conn.execute('PRAGMA foreign_keys = ON')
        # None: no implicit BEGIN before DML
        raw_conn.isolation_level = None if autocommit else 'DEFERRED'
        logger.debug(f'sqlite connection isolation_level={raw_conn.isolation_level!r}')

    def fetch_generated_key(self, cursor: 'Cursor', table: str, primary_key: str) -> Any:
        """Map ``lastrowid`` to the key; the probe covers keys that are not the rowid.
        """
        rowid = cursor.lastrowid
        if rowid is None:
            return None
        cursor.execute(f'SELECT {primary_key} FROM {table} WHERE rowid = ?', (rowid,))
        found = cursor.fetchone()
        return found[0] if found else rowid
