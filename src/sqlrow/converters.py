"""
Bidirectional value converters and the converter registry.

A Converter maps one host value kind to its SQL representation:
- to_sql(value): normalize and check a host value before binding it
- from_sql(raw): turn a value fetched from the driver into the host kind
- extract(row, name): from_sql applied to one named field of a result

Incoming values are normalized first (NumPy scalars, pandas NA/NaT and
Timestamps become plain Python values) so callers can pass data taken
straight from a DataFrame.

The ConverterRegistry resolves a converter for a SQL type code, an explicit
host kind, or a (table, column) override registered by the caller.
"""
import datetime
import decimal
import logging
import math
import threading
from collections.abc import Mapping
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd

from sqlrow.exceptions import ConversionError, UnsupportedTypeError
from sqlrow.types import HostKind, SqlType

logger = logging.getLogger(__name__)

_isoparser = dateutil.parser.isoparser()


def _convert_numpy_value(val: Any) -> Any:
    """Convert NumPy scalar to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        return pd.Timestamp(val).to_pydatetime()

    if isinstance(val, np.bool_ | np.integer | np.floating):
        return val.item()

    return val


def normalize_value(value: Any) -> Any:
    """Convert a single value to a plain Python value or None.
    """
    if value is None:
        return None

    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None

    if isinstance(value, np.generic):
        return _convert_numpy_value(value)

    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()

    if value is pd.NaT or value is pd.NA:
        return None

    return value


class Converter:
    """Base converter. Subclasses set the accepted host types.
    """

    host_kind: HostKind | None = None
    accepted: tuple[type, ...] = (object,)
    rejected: tuple[type, ...] = ()

    def accepts(self, value: Any) -> bool:
        """Whether a normalized, non-null value can be bound by this converter.
        """
        return isinstance(value, self.accepted) and not isinstance(value, self.rejected)

    def exceeds(self, value: Any, size: int | None) -> bool:
        """Whether a value is too large for a column of the declared size.
        """
        return False

    def describe_value(self, value: Any) -> str:
        """How a refused value is named in error messages.
        """
        return type(value).__name__

    def to_sql(self, value: Any) -> Any:
        value = normalize_value(value)
        if value is None:
            return None
        if not self.accepts(value):
            raise ConversionError(
                f'Cannot convert {self.describe_value(value)} value {value!r} '
                f'to {self.describe()}')
        try:
            return self._to_sql(value)
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise ConversionError(f'Cannot convert {value!r} to {self.describe()}: {exc}') from exc

    def from_sql(self, raw: Any) -> Any:
        if raw is None:
            return None
        try:
            return self._from_sql(raw)
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise ConversionError(f'Cannot read {raw!r} as {self.describe()}: {exc}') from exc

    def extract(self, row: Mapping[str, Any], name: str) -> Any:
        return self.from_sql(row[name])

    def describe(self) -> str:
        return self.host_kind.value if self.host_kind else 'any'

    def _to_sql(self, value: Any) -> Any:
        return value

    def _from_sql(self, raw: Any) -> Any:
        return raw

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'


class PassthroughConverter(Converter):
    """Binds and reads values unchanged. Used for untyped parameters."""


class IntegerConverter(Converter):

    accepted = (int,)
    rejected = (bool,)

    def __init__(self, bits: int = 32, host_kind: HostKind = HostKind.INTEGER) -> None:
        self.bits = bits
        self.host_kind = host_kind
        self.min_value = -(2 ** (bits - 1))
        self.max_value = 2 ** (bits - 1) - 1

    def in_range(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value

    def accepts(self, value: Any) -> bool:
        return super().accepts(value) and self.in_range(value)

    def describe_value(self, value: Any) -> str:
        if super().accepts(value) and not self.in_range(value):
            return f'out-of-range {self.bits}-bit'
        return super().describe_value(value)

    def _to_sql(self, value: int) -> int:
        return int(value)

    def _from_sql(self, raw: Any) -> int:
        return int(raw)

    def __repr__(self) -> str:
        return f'IntegerConverter(bits={self.bits})'


class DecimalConverter(Converter):

    host_kind = HostKind.DECIMAL
    accepted = (int, float, decimal.Decimal)
    rejected = (bool,)

    def _to_sql(self, value: Any) -> decimal.Decimal:
        return _to_decimal(value)

    def _from_sql(self, raw: Any) -> decimal.Decimal:
        return _to_decimal(raw)


class FloatConverter(Converter):

    host_kind = HostKind.FLOAT
    accepted = (int, float, decimal.Decimal)
    rejected = (bool,)

    def _to_sql(self, value: Any) -> float:
        return float(value)

    def _from_sql(self, raw: Any) -> float:
        return float(raw)


class NumberConverter(Converter):
    """Any numeric value, bound as given. Used for numeric literal parameters."""

    host_kind = HostKind.NUMBER
    accepted = (int, float, decimal.Decimal)
    rejected = (bool,)


class BooleanConverter(Converter):

    host_kind = HostKind.BOOLEAN
    accepted = (bool,)

    def _from_sql(self, raw: Any) -> bool:
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in {'t', 'true', 'y', 'yes', '1'}:
                return True
            if lowered in {'f', 'false', 'n', 'no', '0'}:
                return False
            raise ValueError(f'not a boolean literal: {raw!r}')
        return bool(raw)


class StringConverter(Converter):
    """Text values. Length is checked against the declared column size."""

    host_kind = HostKind.TEXT
    accepted = (str,)

    def exceeds(self, value: Any, size: int | None) -> bool:
        return bool(size) and isinstance(value, str) and len(value) > size

    def _from_sql(self, raw: Any) -> str:
        if isinstance(raw, bytes | bytearray | memoryview):
            return bytes(raw).decode()
        return str(raw)


class DateConverter(Converter):

    host_kind = HostKind.DATE
    accepted = (datetime.date,)

    def _to_sql(self, value: datetime.date) -> datetime.date:
        if isinstance(value, datetime.datetime):
            return value.date()
        return value

    def _from_sql(self, raw: Any) -> datetime.date:
        if isinstance(raw, datetime.datetime):
            return raw.date()
        if isinstance(raw, datetime.date):
            return raw
        return dateutil.parser.isoparse(_as_text(raw)).date()


class TimeConverter(Converter):

    host_kind = HostKind.TIME
    accepted = (datetime.time,)

    def _from_sql(self, raw: Any) -> datetime.time:
        if isinstance(raw, datetime.time):
            return raw
        if isinstance(raw, datetime.datetime):
            return raw.time()
        if isinstance(raw, datetime.timedelta):
            return (datetime.datetime.min + raw).time()
        return _isoparser.parse_isotime(_as_text(raw))


class TimestampConverter(Converter):

    host_kind = HostKind.TIMESTAMP
    accepted = (datetime.datetime,)

    def _from_sql(self, raw: Any) -> datetime.datetime:
        if isinstance(raw, datetime.datetime):
            return raw
        if isinstance(raw, datetime.date):
            return datetime.datetime.combine(raw, datetime.time())
        return dateutil.parser.isoparse(_as_text(raw))


class BinaryConverter(Converter):
    """Generic binary fallback for BLOB-like columns."""

    host_kind = HostKind.BINARY
    accepted = (bytes, bytearray, memoryview)

    def _to_sql(self, value: Any) -> bytes:
        return bytes(value)

    def _from_sql(self, raw: Any) -> bytes:
        if isinstance(raw, str):
            return raw.encode()
        return bytes(raw)


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, float):
        return decimal.Decimal(repr(value))
    return decimal.Decimal(value)


def _as_text(raw: Any) -> str:
    if isinstance(raw, bytes | bytearray | memoryview):
        return bytes(raw).decode()
    return str(raw)


PASSTHROUGH = PassthroughConverter()

HOST_KIND_CONVERTERS: dict[HostKind, Converter] = {
    HostKind.INTEGER: IntegerConverter(32),
    HostKind.LONG: IntegerConverter(64, host_kind=HostKind.LONG),
    HostKind.DECIMAL: DecimalConverter(),
    HostKind.FLOAT: FloatConverter(),
    HostKind.NUMBER: NumberConverter(),
    HostKind.BOOLEAN: BooleanConverter(),
    HostKind.TEXT: StringConverter(),
    HostKind.DATE: DateConverter(),
    HostKind.TIME: TimeConverter(),
    HostKind.TIMESTAMP: TimestampConverter(),
    HostKind.BINARY: BinaryConverter(),
}

SQL_TYPE_KINDS: dict[SqlType, HostKind] = {
    SqlType.SMALLINT: HostKind.INTEGER,
    SqlType.INTEGER: HostKind.INTEGER,
    SqlType.BIGINT: HostKind.LONG,
    SqlType.DECIMAL: HostKind.DECIMAL,
    SqlType.FLOAT: HostKind.FLOAT,
    SqlType.BOOLEAN: HostKind.BOOLEAN,
    SqlType.CHAR: HostKind.TEXT,
    SqlType.VARCHAR: HostKind.TEXT,
    SqlType.TEXT: HostKind.TEXT,
    SqlType.DATE: HostKind.DATE,
    SqlType.TIME: HostKind.TIME,
    SqlType.TIMESTAMP: HostKind.TIMESTAMP,
    SqlType.BLOB: HostKind.BINARY,
}


class ConverterRegistry:
    """Lookup of converters by SQL type, host kind and (table, column).

    Column overrides take priority over the SQL type table. Tables may be
    registered with or without their schema prefix.
    """

    def __init__(self) -> None:
        self._by_sql_type: dict[SqlType, Converter] = {
            sql_type: HOST_KIND_CONVERTERS[kind]
            for sql_type, kind in SQL_TYPE_KINDS.items()
        }
        self._by_column: dict[tuple[str, str], Converter] = {}
        self._lock = threading.RLock()

    def register(self, sql_type: SqlType, converter: Converter) -> None:
        """Register the converter used for every column of a SQL type.
        """
        with self._lock:
            self._by_sql_type[sql_type] = converter

    def register_column(self, table: str, column: str, converter: Converter) -> None:
        """Register a converter for one column of one table.
        """
        with self._lock:
            self._by_column[(table, column)] = converter
        logger.debug(f'Registered {converter!r} for {table}.{column}')

    @staticmethod
    def for_kind(host_kind: HostKind) -> Converter:
        return HOST_KIND_CONVERTERS[host_kind]

    def resolve(self, sql_type: SqlType, host_kind: HostKind | None = None) -> Converter:
        """Resolve the converter for a SQL type, honouring an explicit host kind.

        Raises UnsupportedTypeError if neither is registered.
        """
        if host_kind is not None:
            return self.for_kind(host_kind)
        with self._lock:
            converter = self._by_sql_type.get(sql_type)
        if converter is None:
            raise UnsupportedTypeError(f"No converter registered for SQL type '{sql_type.value}'")
        return converter

    def resolve_column(self, table: str, column: str, sql_type: SqlType,
                       host_kind: HostKind | None = None) -> Converter:
        """Resolve a converter for a table column, checking overrides first.

        ``table`` may be schema-qualified; an override registered for the bare
        table name also applies.
        """
        bare_table = table.rsplit('.', 1)[-1]
        with self._lock:
            for key in ((table, column), (bare_table, column)):
                if key in self._by_column:
                    return self._by_column[key]
        return self.resolve(sql_type, host_kind)
