"""
PostgreSQL through psycopg 3.

psycopg uses ``%s`` placeholders, so literal ``%`` is doubled whenever a
statement carries parameters. Generated keys come back through
``INSERT ... RETURNING``.
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from sqlrow.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from sqlrow.cursor import Cursor
    from sqlrow.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):

    escape_percent = True
    required_options = ('hostname', 'username', 'password', 'database', 'port')

    @property
    def dialect_name(self) -> str:
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        query = {'connect_timeout': str(options.timeout)} if options.timeout else {}
        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query,
            )

    def configure_connection(self, raw_conn: Any, autocommit: bool = True) -> None:
        raw_conn.autocommit = autocommit
        logger.debug(f'psycopg connection autocommit={autocommit}')

    def build_insert_sql(self, table: str, columns: list[str],
                         returning: str | None = None) -> str:
        sql = super().build_insert_sql(table, columns)
        if returning:
            sql = f'{sql} RETURNING {self.quote_identifier(returning)}'
        return sql

    def fetch_generated_key(self, cursor: 'Cursor', table: str, primary_key: str) -> Any:
        found = cursor.fetchone()
        return found[0] if found else None

    def prepare_params(self, params: tuple) -> tuple | None:
        """psycopg only parses placeholders when parameters are given.
        """
        return params or None
