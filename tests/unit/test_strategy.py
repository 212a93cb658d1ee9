"""
Unit tests for dialect strategies.
"""
import sqlite3

import pytest
from sqlrow.converters import ConverterRegistry
from sqlrow.strategy import PostgresStrategy, SQLiteStrategy
from sqlrow.strategy import dialects, get_db_strategy, strategy_class
from sqlrow.strategy import get_strategy
from sqlrow.types import HostKind, SqlType


def test_registry():
    """Test both dialects are registered and instances are cached"""
    assert set(dialects()) == {'postgresql', 'sqlite'}
    assert strategy_class('sqlite') is SQLiteStrategy
    with pytest.raises(ValueError, match='Available'):
        strategy_class('mssql')
    assert get_strategy('sqlite') is get_strategy('sqlite')
    with pytest.raises(ValueError):
        get_strategy('mssql')


def test_strategy_from_connection(mocker):
    """Test the strategy is found through the connection's dialect"""
    conn = mocker.Mock()
    conn.dialect.name = 'PostgreSQL'
    assert isinstance(get_db_strategy(conn), PostgresStrategy)


def test_placeholder_styles():
    """Test placeholder markers and percent escaping per dialect"""
    assert get_strategy('sqlite').get_placeholder_style() == '?'
    assert get_strategy('postgresql').get_placeholder_style() == '%s'
    assert get_strategy('postgresql').escape_percent
    assert not get_strategy('sqlite').escape_percent


def test_postgres_insert_returning():
    """Test PostgreSQL reads the generated key with RETURNING"""
    strategy = PostgresStrategy()
    assert strategy.build_insert_sql('public.person', ['first_name'], returning='id') == (
        'INSERT INTO "public"."person" ("first_name") VALUES (%s) RETURNING "id"')
    assert strategy.build_insert_sql('public.person', ['first_name']) == (
        'INSERT INTO "public"."person" ("first_name") VALUES (%s)')


def test_sqlite_insert_has_no_returning():
    """Test SQLite inserts rely on lastrowid"""
    assert SQLiteStrategy().build_insert_sql('main.person', ['age'], returning='id') == (
        'INSERT INTO "main"."person" ("age") VALUES (?)')


def test_postgres_prepare_params():
    """Test psycopg gets None instead of an empty parameter tuple"""
    strategy = PostgresStrategy()
    assert strategy.prepare_params(()) is None
    assert strategy.prepare_params((1,)) == (1,)
    assert SQLiteStrategy().prepare_params(()) == ()


def test_postgres_configure_autocommit(mocker):
    """Test autocommit is set on the psycopg connection"""
    raw_conn = mocker.Mock()
    PostgresStrategy().configure_connection(raw_conn, autocommit=False)
    assert raw_conn.autocommit is False


def test_sqlite_configure_autocommit():
    """Test SQLite autocommit toggles the isolation level"""
    raw_conn = sqlite3.connect(':memory:')
    try:
        strategy = SQLiteStrategy()
        strategy.configure_connection(raw_conn, autocommit=True)
        assert raw_conn.isolation_level is None
        strategy.configure_connection(raw_conn, autocommit=False)
        assert raw_conn.isolation_level == 'DEFERRED'
    finally:
        raw_conn.close()


def test_postgres_fetch_generated_key(mocker):
    """Test the RETURNING row holds the key"""
    cursor = mocker.Mock()
    cursor.fetchone.return_value = (42,)
    assert PostgresStrategy().fetch_generated_key(cursor, 'public.person', 'id') == 42


def test_validate_options_names_missing_field(mocker):
    """Test the missing required field is named"""
    options = mocker.Mock(hostname='h', username='u', password='p', database='d', port=0)
    with pytest.raises(ValueError, match='port'):
        PostgresStrategy.validate_options(options)


def test_sqlite_integer_columns_are_64_bit():
    """Test SQLite maps integer column types to the 64-bit converter"""
    registry = ConverterRegistry()
    get_strategy('sqlite').register_converters(registry)
    assert registry.resolve(SqlType.INTEGER).host_kind == HostKind.LONG
    assert registry.resolve(SqlType.SMALLINT).host_kind == HostKind.LONG

    registry = ConverterRegistry()
    get_strategy('postgresql').register_converters(registry)
    assert registry.resolve(SqlType.INTEGER).host_kind == HostKind.INTEGER
