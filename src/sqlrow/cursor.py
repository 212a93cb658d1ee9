"""
Driver cursor wrapper: SQL logging, error logging and call statistics.
"""
import logging
import time
from collections.abc import Sequence
from functools import wraps
from typing import TYPE_CHECKING, Any, Self

if TYPE_CHECKING:
    from sqlrow.connection import Database

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Log the SQL and its arguments, time the call and count it on the Database.
    """
    @wraps(func)
    def wrapper(self: 'Cursor', sql: str, params: Sequence = (), *args: Any, **kwargs: Any):
        args_text = tuple(params)
        logger.debug(f'SQL:\n{sql}\nargs: {args_text}')
        start = time.perf_counter()
        try:
            return func(self, sql, params, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{sql}\nargs: {args_text}')
            raise
        finally:
            elapsed = time.perf_counter() - start
            self.database.addcall(elapsed)
            logger.debug(f'{self.dbapi_cursor.rowcount} rows in {elapsed:.4f}s')
    return wrapper


class Cursor:
    """One driver cursor used on behalf of a Database.

    Parameters are passed positionally with the dialect's placeholder
    marker. Unknown attributes fall through to the driver cursor.
    """

    def __init__(self, cursor: Any, database: 'Database') -> None:
        self.dbapi_cursor = cursor
        self.database = database
        self.closed = False

    def __getattr__(self, name: str) -> Any:
        return getattr(self.dbapi_cursor, name)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def labels(self) -> list[str]:
        """Result labels of the last query, as reported by the database."""
        return [column[0] for column in self.dbapi_cursor.description or ()]

    @property
    def lastrowid(self) -> Any:
        return getattr(self.dbapi_cursor, 'lastrowid', None)

    @dumpsql
    def execute(self, sql: str, params: Sequence = ()) -> int:
        """Run one statement; return the driver's affected row count."""
        self.dbapi_cursor.execute(sql, self.database.strategy.prepare_params(tuple(params)))
        return self.dbapi_cursor.rowcount

    def fetchone(self) -> tuple | None:
        return self.dbapi_cursor.fetchone()

    def fetchall(self) -> list[tuple]:
        return self.dbapi_cursor.fetchall()

    def close(self) -> None:
        """Close the driver cursor once; later calls do nothing."""
        if self.closed:
            return
        self.closed = True
        self.dbapi_cursor.close()
