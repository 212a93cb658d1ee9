import datetime
import decimal

import numpy as np
import pandas as pd
import pytest
from sqlrow.converters import HOST_KIND_CONVERTERS, PASSTHROUGH
from sqlrow.converters import ConverterRegistry, StringConverter
from sqlrow.converters import normalize_value
from sqlrow.exceptions import ConversionError, UnsupportedTypeError
from sqlrow.types import HostKind, SqlType


def test_round_trip_every_host_kind(value_dict):
    """Test converting a value to SQL and back yields an equal value"""
    for kind, converter in HOST_KIND_CONVERTERS.items():
        value = value_dict[kind]
        assert converter.from_sql(converter.to_sql(value)) == value, kind


def test_null_round_trips_to_null():
    """Test None passes through every converter"""
    for converter in HOST_KIND_CONVERTERS.values():
        assert converter.to_sql(None) is None
        assert converter.from_sql(None) is None


def test_integer_rejects_bool_and_text():
    """Test integer converter refuses values of other kinds"""
    converter = HOST_KIND_CONVERTERS[HostKind.INTEGER]
    with pytest.raises(ConversionError):
        converter.to_sql(True)
    with pytest.raises(ConversionError):
        converter.to_sql('12')


def test_integer_range():
    """Test 32-bit integers are range checked, 64-bit longs are not limited to 32 bits"""
    with pytest.raises(ConversionError):
        HOST_KIND_CONVERTERS[HostKind.INTEGER].to_sql(2 ** 31)
    assert HOST_KIND_CONVERTERS[HostKind.LONG].to_sql(2 ** 31) == 2 ** 31


def test_integer_range_is_part_of_accepts():
    """Test out-of-range integers are refused by accepts and named in errors"""
    converter = HOST_KIND_CONVERTERS[HostKind.INTEGER]
    assert converter.accepts(2 ** 31 - 1)
    assert not converter.accepts(2 ** 31)
    assert converter.describe_value(2 ** 31) == 'out-of-range 32-bit'
    assert converter.describe_value('12') == 'str'
    with pytest.raises(ConversionError, match='out-of-range 32-bit'):
        converter.to_sql(5_000_000_000)


def test_decimal_from_float_keeps_repr():
    """Test floats become decimals without binary noise"""
    converter = HOST_KIND_CONVERTERS[HostKind.DECIMAL]
    assert converter.to_sql(0.1) == decimal.Decimal('0.1')
    assert converter.from_sql(12.5) == decimal.Decimal('12.50')


def test_boolean_reads_integers_and_literals():
    """Test booleans stored as integers or text are read back"""
    converter = HOST_KIND_CONVERTERS[HostKind.BOOLEAN]
    assert converter.from_sql(1) is True
    assert converter.from_sql(0) is False
    assert converter.from_sql('t') is True
    with pytest.raises(ConversionError):
        converter.from_sql('maybe')


def test_string_length_check():
    """Test strings longer than the declared size are detected"""
    converter = StringConverter()
    assert converter.exceeds('abcdef', 5)
    assert not converter.exceeds('abcde', 5)
    assert not converter.exceeds('abcdef', None)


def test_temporal_parsing_from_text():
    """Test ISO text from the driver is parsed into temporal values"""
    assert HOST_KIND_CONVERTERS[HostKind.DATE].from_sql('2023-05-15') == datetime.date(2023, 5, 15)
    assert HOST_KIND_CONVERTERS[HostKind.TIME].from_sql('14:30:45') == datetime.time(14, 30, 45)
    assert (HOST_KIND_CONVERTERS[HostKind.TIMESTAMP].from_sql(b'2023-05-15 14:30:45')
            == datetime.datetime(2023, 5, 15, 14, 30, 45))


def test_date_converter_truncates_datetime():
    """Test a datetime bound to a date parameter loses its time part"""
    converter = HOST_KIND_CONVERTERS[HostKind.DATE]
    assert converter.to_sql(datetime.datetime(2023, 5, 15, 10, 0)) == datetime.date(2023, 5, 15)


def test_number_accepts_any_numeric():
    """Test the NUMBER kind binds ints, floats and decimals unchanged"""
    converter = HOST_KIND_CONVERTERS[HostKind.NUMBER]
    assert converter.to_sql(3) == 3
    assert converter.to_sql(2.5) == 2.5
    assert converter.to_sql(decimal.Decimal('1.10')) == decimal.Decimal('1.10')
    with pytest.raises(ConversionError):
        converter.to_sql('3')


def test_passthrough_binds_anything():
    """Test untyped parameters are not converted"""
    marker = object()
    assert PASSTHROUGH.to_sql(marker) is marker


def test_normalize_numpy_and_pandas_values():
    """Test NumPy scalars and pandas missing values are normalized"""
    assert normalize_value(np.int64(7)) == 7
    assert type(normalize_value(np.int64(7))) is int
    assert normalize_value(np.float64('nan')) is None
    assert normalize_value(float('nan')) is None
    assert normalize_value(pd.NaT) is None
    assert normalize_value(pd.NA) is None
    assert normalize_value(pd.Timestamp('2023-05-15 14:30')) == datetime.datetime(2023, 5, 15, 14, 30)


def test_numpy_values_bind_through_converters():
    """Test values taken from a DataFrame bind like Python values"""
    assert HOST_KIND_CONVERTERS[HostKind.INTEGER].to_sql(np.int32(5)) == 5
    assert HOST_KIND_CONVERTERS[HostKind.BOOLEAN].to_sql(np.bool_(True)) is True


def test_registry_resolves_sql_types():
    """Test the registry maps SQL type codes to converters"""
    registry = ConverterRegistry()
    assert registry.resolve(SqlType.VARCHAR).host_kind == HostKind.TEXT
    assert registry.resolve(SqlType.BIGINT).host_kind == HostKind.LONG
    assert registry.resolve(SqlType.BLOB).host_kind == HostKind.BINARY


def test_registry_unsupported_type():
    """Test unmapped types fail unless an explicit host kind is given"""
    registry = ConverterRegistry()
    with pytest.raises(UnsupportedTypeError):
        registry.resolve(SqlType.OTHER)
    assert registry.resolve(SqlType.OTHER, HostKind.TEXT).host_kind == HostKind.TEXT


def test_registry_column_override_takes_priority():
    """Test (table, column) overrides win over the SQL type table"""
    registry = ConverterRegistry()
    override = HOST_KIND_CONVERTERS[HostKind.TEXT]
    registry.register_column('person', 'age', override)

    assert registry.resolve_column('main.person', 'age', SqlType.INTEGER) is override
    assert registry.resolve_column('main.person', 'id', SqlType.INTEGER).host_kind == HostKind.INTEGER


def test_registry_register_sql_type():
    """Test replacing the converter for a SQL type"""
    registry = ConverterRegistry()
    registry.register(SqlType.OTHER, PASSTHROUGH)
    assert registry.resolve(SqlType.OTHER) is PASSTHROUGH
