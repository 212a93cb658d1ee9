"""
Fixtures for SQLite-specific integration tests.
"""
import pytest
import sqlrow


@pytest.fixture
def sqlite_file_db(tmp_path):
    """File-based SQLite database for testing persistence across connections."""
    db_file = tmp_path / 'people.db'

    database = sqlrow.connect({
        'drivername': 'sqlite',
        'database': str(db_file)
    })

    database.execute_raw("""
    CREATE TABLE people (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        value INTEGER NOT NULL
    )
    """)
    database.execute_raw("""
    INSERT INTO people (name, value) VALUES
    ('Alice', 10),
    ('Bob', 20),
    ('Charlie', 30)
    """)

    yield database, db_file

    database.close()
