"""
Exception classes for typed table and statement access.

Every error raised by this package derives from DatabaseError. Errors that
originate in the database driver are re-raised wrapped in one of these
classes with the driver exception attached as ``__cause__``.
"""
import sqlite3

import psycopg


class DatabaseError(Exception):
    """Base class for all sqlrow errors.
    """


class DatabaseAccessException(DatabaseError):
    """Generic wrapper for database I/O failures not otherwise classified.
    """


class UnsupportedTypeError(DatabaseError):
    """No converter is registered for a SQL type / host type pairing.
    """


class UnknownTableError(DatabaseError):
    """Schema introspection found no table with the requested name.
    """


class AmbiguousTableError(DatabaseError):
    """Schema introspection found more than one table for the requested name.
    """


class UnknownColumnError(DatabaseError):
    """A column reference names a column absent from the table metadata.
    """


class UnknownStatementError(DatabaseError, KeyError):
    """A SQL file has no statement with the requested name.
    """


class MalformedStatementError(DatabaseError):
    """SQL directive syntax is unterminated or the statement has no terminator.
    """

    def __init__(self, message: str, snippet: str = '') -> None:
        self.snippet = snippet
        if snippet:
            message = f'{message}: {snippet!r}'
        super().__init__(message)


class MissingParameterError(DatabaseError):
    """A bind placeholder has no value in the supplied parameters.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No value supplied for parameter '{name}'")


class ConversionError(DatabaseError):
    """A value cannot be converted to or from its SQL representation.
    """


class IllegalStateError(DatabaseError):
    """An operation was attempted on data that lacks required state.
    """


class ValidationError(DatabaseError):
    """A value assigned to a table-linked row failed validation.
    """

    def __init__(self, error) -> None:
        self.error = error
        super().__init__(str(error))


class InsertException(DatabaseAccessException):
    """Insert did not affect exactly one row or failed in the driver.
    """


class UpdateException(DatabaseAccessException):
    """Update did not affect exactly one row, or id/revision did not match.
    """


class DeleteException(DatabaseAccessException):
    """Delete did not affect exactly one row, or id/revision did not match.
    """


DriverError = (
    sqlite3.Error,
    psycopg.Error,
    )


def affected_rows_message(operation: str, rows: int) -> str:
    """Message for a write that did not affect exactly one row.
    """
    return (f'{rows} rows were affected by {operation} operation (expected 1). '
            'Either the ID or the revision (if enabled) is wrong.')
