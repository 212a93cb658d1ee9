"""
Dialect strategies by SQLAlchemy dialect name.

    strategy = get_strategy('sqlite')
    strategy = get_db_strategy(sa_connection)
"""
from functools import cache

from sqlrow.strategy.base import DatabaseStrategy as DatabaseStrategy
from sqlrow.strategy.base import dialects as dialects
from sqlrow.strategy.base import register_strategy as register_strategy
from sqlrow.strategy.base import strategy_class as strategy_class
from sqlrow.strategy.postgres import PostgresStrategy as PostgresStrategy
from sqlrow.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


@cache
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance. Strategies hold no per-connection state.
    """
    return strategy_class(dialect)()


def get_dialect_name(obj) -> str:
    """Lower-case dialect name of a SQLAlchemy engine or connection.
    """
    dialect = getattr(obj, 'dialect', None)
    if dialect is None:
        dialect = getattr(getattr(obj, 'engine', None), 'dialect', None)
    if dialect is None:
        raise AttributeError(f'Cannot determine dialect of {obj!r}')
    return str(dialect.name).lower()


def get_db_strategy(cn) -> DatabaseStrategy:
    return get_strategy(get_dialect_name(cn))
