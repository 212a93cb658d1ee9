import pytest
import sqlalchemy as sa
import sqlrow
from sqlrow import Database, DatabaseOptions, Row
from sqlrow.exceptions import DatabaseAccessException

pytestmark = pytest.mark.sqlite


def test_execute_raw_and_query_raw(sqlite_db_with_people):
    """Test plain SQL with %s placeholders"""
    db = sqlite_db_with_people
    assert db.execute_raw('UPDATE person SET age = age + 1 WHERE age > %s', 35) == 2
    rows = db.query_raw('SELECT first_name, age FROM person WHERE age > %s ORDER BY age', 35)
    assert rows == [{'first_name': 'Bob', 'age': 41}, {'first_name': 'Charlie', 'age': 51}]
    assert isinstance(rows[0], Row)


def test_percent_in_literal(sqlite_db_with_people):
    """Test %s inside string literals is not a placeholder"""
    db = sqlite_db_with_people
    db.execute_raw("UPDATE person SET first_name = '%s' WHERE id = %s", 1)
    assert db.query_raw("SELECT first_name FROM person WHERE first_name LIKE '%s%'") == [{'first_name': '%s'}]


def test_raw_errors_are_wrapped(sqlite_db):
    """Test driver errors from plain SQL"""
    with pytest.raises(DatabaseAccessException) as exc_info:
        sqlite_db.execute_raw('INSERT INTO nosuch VALUES (%s)', 1)
    assert exc_info.value.__cause__ is not None


def test_call_statistics(sqlite_db):
    """Test executed statements are counted"""
    calls = sqlite_db.calls
    sqlite_db.query_raw('SELECT 1 AS one')
    assert sqlite_db.calls == calls + 1


def test_connect_with_options_object():
    """Test connecting with DatabaseOptions and keyword overrides"""
    options = DatabaseOptions(drivername='sqlite', database=':memory:')
    with sqlrow.connect(options, naming='identity') as db:
        assert db.dialect == 'sqlite'
        assert db.naming.name == 'identity'
        db.execute_raw('CREATE TABLE t (first_name TEXT)')
        assert [c.name for c in db.table('t').columns] == ['first_name']
    assert db.closed


def test_manual_commit_and_rollback():
    """Test statements run in a transaction when autocommit is off"""
    db = sqlrow.connect(drivername='sqlite', database=':memory:', autocommit=False)
    try:
        db.execute_raw('CREATE TABLE ages (id INTEGER PRIMARY KEY, age INTEGER)')
        ages = db.table('ages')
        ages.insert(Row(age=1))
        db.rollback()
        assert db.query_raw('SELECT COUNT(*) AS n FROM ages') == [{'n': 0}]

        ages.insert(Row(age=2))
        db.commit()
        db.rollback()
        assert db.query_raw('SELECT age FROM ages') == [{'age': 2}]
    finally:
        db.close()


def test_persistence_across_connections(sqlite_file_db):
    """Test committed rows are visible to a new connection"""
    db, db_file = sqlite_file_db
    db.table('people').insert(Row(name='Diana', value=40))

    with sqlrow.connect(drivername='sqlite', database=str(db_file)) as other:
        rows = other.query_raw('SELECT name FROM people ORDER BY value')
    assert [r['name'] for r in rows] == ['Alice', 'Bob', 'Charlie', 'Diana']


def test_from_connection_leaves_connection_open():
    """Test wrapping an externally managed SQLAlchemy connection"""
    engine = sa.create_engine('sqlite://')
    try:
        with engine.connect() as conn:
            db = Database.from_connection(conn)
            assert db.query_raw('SELECT 2 AS two') == [{'two': 2}]
            db.close()
            assert not conn.closed
    finally:
        engine.dispose()
