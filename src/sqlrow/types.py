"""
SQL type codes and host value kinds.

This module provides:
- SqlType: the SQL type codes assigned to reflected columns
- HostKind: the closed set of host value kinds exposed to callers
- sql_type_for: map a reflected SQLAlchemy column type to a SqlType
- RowValue: the union of values a Row may hold
"""
import datetime
import decimal
import logging
from enum import Enum
from typing import Union

import sqlalchemy as sa

from sqlrow.exceptions import UnsupportedTypeError

logger = logging.getLogger(__name__)

RowValue = Union[None, int, str, bool, decimal.Decimal, float,
                 datetime.date, datetime.time, datetime.datetime, bytes]


class SqlType(Enum):
    """SQL type code of a column or result field.
    """
    SMALLINT = 'smallint'
    INTEGER = 'integer'
    BIGINT = 'bigint'
    DECIMAL = 'decimal'
    FLOAT = 'float'
    BOOLEAN = 'boolean'
    CHAR = 'char'
    VARCHAR = 'varchar'
    TEXT = 'text'
    DATE = 'date'
    TIME = 'time'
    TIMESTAMP = 'timestamp'
    BLOB = 'blob'
    OTHER = 'other'


class HostKind(Enum):
    """Kind of host value a converter produces and accepts.
    """
    INTEGER = 'int'
    LONG = 'long'
    DECIMAL = 'decimal'
    FLOAT = 'float'
    NUMBER = 'number'
    BOOLEAN = 'bool'
    TEXT = 'string'
    DATE = 'date'
    TIME = 'time'
    TIMESTAMP = 'datetime'
    BINARY = 'bytes'

    @property
    def python_type(self) -> type:
        return _PYTHON_TYPES[self]

    @classmethod
    def from_name(cls, name: str) -> 'HostKind':
        """Resolve a type name used in SQL directives, e.g. ``int`` or ``string``.
        """
        try:
            return _KIND_ALIASES[name.strip().lower()]
        except KeyError:
            raise UnsupportedTypeError(f"Unknown host type '{name}'") from None


_PYTHON_TYPES: dict[HostKind, type] = {
    HostKind.INTEGER: int,
    HostKind.LONG: int,
    HostKind.DECIMAL: decimal.Decimal,
    HostKind.FLOAT: float,
    HostKind.NUMBER: decimal.Decimal,
    HostKind.BOOLEAN: bool,
    HostKind.TEXT: str,
    HostKind.DATE: datetime.date,
    HostKind.TIME: datetime.time,
    HostKind.TIMESTAMP: datetime.datetime,
    HostKind.BINARY: bytes,
}

_KIND_ALIASES: dict[str, HostKind] = {kind.value: kind for kind in HostKind}
_KIND_ALIASES.update({
    'integer': HostKind.INTEGER,
    'bigint': HostKind.LONG,
    'numeric': HostKind.DECIMAL,
    'double': HostKind.FLOAT,
    'boolean': HostKind.BOOLEAN,
    'str': HostKind.TEXT,
    'text': HostKind.TEXT,
    'timestamp': HostKind.TIMESTAMP,
    'blob': HostKind.BINARY,
    'binary': HostKind.BINARY,
})

# Most specific SQLAlchemy classes first: Float derives from Numeric,
# Text and CHAR from String, SmallInteger and BigInteger from Integer.
_SA_TYPE_MAP: tuple[tuple[type, SqlType], ...] = (
    (sa.Boolean, SqlType.BOOLEAN),
    (sa.SmallInteger, SqlType.SMALLINT),
    (sa.BigInteger, SqlType.BIGINT),
    (sa.Integer, SqlType.INTEGER),
    (sa.Float, SqlType.FLOAT),
    (sa.Numeric, SqlType.DECIMAL),
    (sa.DateTime, SqlType.TIMESTAMP),
    (sa.Date, SqlType.DATE),
    (sa.Time, SqlType.TIME),
    (sa.Text, SqlType.TEXT),
    (sa.CHAR, SqlType.CHAR),
    (sa.String, SqlType.VARCHAR),
    (sa.LargeBinary, SqlType.BLOB),
)


def sql_type_for(column_type: sa.types.TypeEngine) -> SqlType:
    """Resolve a reflected SQLAlchemy column type to a SqlType.

    Types without a mapping (JSON, arrays, UUID, unreflectable declarations)
    resolve to SqlType.OTHER.
    """
    for sa_type, sql_type in _SA_TYPE_MAP:
        if isinstance(column_type, sa_type):
            return sql_type
    logger.debug(f'No SqlType for reflected type {column_type!r}')
    return SqlType.OTHER


def column_size(column_type: sa.types.TypeEngine) -> int | None:
    """Declared size of a reflected column type (length or precision).
    """
    length = getattr(column_type, 'length', None)
    if length is not None:
        return length
    return getattr(column_type, 'precision', None)
