import pytest
from sqlrow.options import DatabaseOptions
from sqlrow.strategy import get_strategy


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.drivername == 'postgresql'
    assert options.naming == 'camel'
    assert options.autocommit is True
    assert options.statement_cache_size == 128


def test_sqlite_requires_only_database():
    """Test SQLite options need just a database path"""
    options = DatabaseOptions(drivername='sqlite', database=':memory:')
    assert options.database == ':memory:'

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='sqlite')


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        DatabaseOptions(
            drivername='invalid',
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
            port=1234,
        )

    with pytest.raises(ValueError):
        DatabaseOptions(
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
        )

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='sqlite', database='x.db', naming='kebab')


def test_from_config():
    """Test options from a mapping with keyword overrides"""
    options = DatabaseOptions.from_config({'drivername': 'sqlite', 'database': 'a.db'},
                                          database='b.db', naming='identity')
    assert options.database == 'b.db'
    assert options.naming == 'identity'

    with pytest.raises(TypeError):
        DatabaseOptions.from_config({'drivername': 'sqlite', 'database': 'a.db', 'bogus': 1})


def test_connection_urls():
    """Test each dialect builds its SQLAlchemy URL"""
    pg = DatabaseOptions(hostname='h', username='u', password='p', database='d', port=5432, timeout=5)
    url = get_strategy('postgresql').build_connection_url(pg)
    assert url.drivername == 'postgresql+psycopg'
    assert url.host == 'h'
    assert url.query['connect_timeout'] == '5'

    sl = DatabaseOptions(drivername='sqlite', database=':memory:')
    assert get_strategy('sqlite').build_connection_url(sl).database == ':memory:'
