import datetime
import decimal

import numpy as np
import pandas as pd
import pytest
from sqlrow import Row
from sqlrow.types import HostKind, SqlType

pytestmark = pytest.mark.sqlite


@pytest.fixture
def typed_row():
    return Row(
        amount=decimal.Decimal('123.45'),
        ratio=3.25,
        born=datetime.date(2023, 5, 15),
        wake=datetime.time(14, 30, 45),
        seen=datetime.datetime(2023, 5, 15, 14, 30, 45),
        data=b'\x01\x02\x03\x04\x05',
        flag=True,
        note='Lorem ipsum dolor sit amet',
        )


def test_reflected_types(sqlite_db):
    """Test declared column types map to SQL types and host kinds"""
    table = sqlite_db.table('typed')
    kinds = {c.name: (c.sql_type, c.host_kind) for c in table.columns}
    assert kinds == {
        'id': (SqlType.INTEGER, HostKind.LONG),
        'amount': (SqlType.DECIMAL, HostKind.DECIMAL),
        'ratio': (SqlType.FLOAT, HostKind.FLOAT),
        'born': (SqlType.DATE, HostKind.DATE),
        'wake': (SqlType.TIME, HostKind.TIME),
        'seen': (SqlType.TIMESTAMP, HostKind.TIMESTAMP),
        'data': (SqlType.BLOB, HostKind.BINARY),
        'flag': (SqlType.BOOLEAN, HostKind.BOOLEAN),
        'note': (SqlType.TEXT, HostKind.TEXT),
    }


def test_table_round_trip(sqlite_db, typed_row):
    """Test every supported type survives insert and load"""
    table = sqlite_db.table('typed')
    key = table.insert(typed_row)
    loaded = table.load(key)

    for name, value in typed_row.items():
        assert loaded[name] == value, name
        assert type(loaded[name]) is type(value), name


def test_nulls_round_trip(sqlite_db):
    """Test None is stored as NULL and read back as None"""
    table = sqlite_db.table('typed')
    key = table.insert(Row(note=None, born=None))
    loaded = table.load(key)
    assert all(loaded[c] is None for c in loaded if c != 'id')


def test_statement_round_trip(sqlite_db, typed_row):
    """Test typed result columns convert values read by a statement"""
    sqlite_db.table('typed').insert(typed_row)
    row = sqlite_db.statement("""
        SELECT amount /*:decimal*/, born /*:date*/, wake /*:time*/, seen /*:datetime*/,
               flag /*:bool*/, data /*:bytes*/
        FROM typed
        WHERE born = /*:date=*/ '2023-05-15' /**/;
    """).first(born=datetime.date(2023, 5, 15))

    assert row == {key: typed_row[key] for key in ('amount', 'born', 'wake', 'seen', 'flag', 'data')}


def test_numpy_and_pandas_values(sqlite_db):
    """Test values taken from NumPy and pandas bind like Python values"""
    table = sqlite_db.table('typed')
    key = table.insert(Row(ratio=np.float64(1.5), flag=np.bool_(False),
                           seen=pd.Timestamp('2024-01-02 03:04:05'), note=pd.NA))
    loaded = table.load(key)
    assert loaded['ratio'] == 1.5
    assert loaded['flag'] is False
    assert loaded['seen'] == datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert loaded['note'] is None


def test_dataframe_from_statement(sqlite_db, typed_row):
    """Test DataFrame columns hold converted values"""
    sqlite_db.table('typed').insert(typed_row)
    df = sqlite_db.statement('SELECT amount /*:decimal*/, note /*:string*/ FROM typed;').query().to_dataframe()
    assert df['amount'].iloc[0] == decimal.Decimal('123.45')
    assert df['note'].iloc[0] == 'Lorem ipsum dolor sit amet'
