"""
What differs between databases, behind one interface.

A strategy knows its SQLAlchemy URL, how to set up a fresh driver
connection, its placeholder marker and how the key generated by an INSERT
is read back. Statement parsing, conversion and table operations never
look at the dialect themselves.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from sqlrow.sql import insert_sql, placeholder, quote_identifier

if TYPE_CHECKING:
    from sqlrow.converters import ConverterRegistry
    from sqlrow.cursor import Cursor
    from sqlrow.options import DatabaseOptions

# Lives here so concrete strategies can register without importing the package
_strategies: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Class decorator adding a strategy under its SQLAlchemy dialect name.
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _strategies[dialect] = cls
        return cls
    return decorator


def dialects() -> list[str]:
    return list(_strategies)


def strategy_class(dialect: str) -> type['DatabaseStrategy']:
    """Registered strategy class; ValueError naming the known dialects otherwise.
    """
    try:
        return _strategies[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {dialects()}') from None


class DatabaseStrategy(ABC):

    #: Literal ``%`` must be doubled when the statement has parameters
    escape_percent: bool = False

    #: Option fields that must be set (non-empty, non-zero) to connect
    required_options: tuple[str, ...] = ()

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        ...

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        ...

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Extra ``create_engine`` arguments.
        """
        return {}

    @abstractmethod
    def configure_connection(self, raw_conn: Any, autocommit: bool = True) -> None:
        """Prepare a new driver connection (not the SQLAlchemy wrapper).
        """

    def register_type_adapters(self) -> None:
        """Install driver-level adapters for host values. Idempotent.
        """

    def register_converters(self, registry: 'ConverterRegistry') -> None:
        """Adjust a new Database's converter registry to the dialect's storage.
        """

    @abstractmethod
    def fetch_generated_key(self, cursor: 'Cursor', table: str, primary_key: str) -> Any:
        """Key generated by the INSERT from ``build_insert_sql`` just run on ``cursor``.

        ``table`` and ``primary_key`` are quoted and ready for SQL.
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        missing = [name for name in cls.required_options if not getattr(options, name)]
        if missing:
            raise ValueError(f'{cls.__name__} requires {", ".join(missing)} (got None or 0)')

    def quote_identifier(self, identifier: str) -> str:
        return quote_identifier(identifier, self.dialect_name)

    def get_placeholder_style(self) -> str:
        return placeholder(self.dialect_name)

    def build_insert_sql(self, table: str, columns: list[str],
                         returning: str | None = None) -> str:
        """INSERT statement; ``returning`` names the key to read back.
        """
        return insert_sql(table, columns, self.dialect_name)

    def prepare_params(self, params: tuple) -> tuple | None:
        """Parameters in the form the driver expects for ``cursor.execute``.
        """
        return params
