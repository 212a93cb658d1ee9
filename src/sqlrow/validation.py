"""
Validation results for table rows.

Validation never raises for bad user data. Each problem is reported as one
of these frozen records, keyed by column name, so a caller can show every
field error of a row at once.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """Base validation error for one column of one table."""
    table: str
    column: str

    @property
    def message(self) -> str:
        return f'Invalid value for {self.table}.{self.column}'

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class InvalidKeyError(FieldError):
    """The row holds a key that is not a column of the table."""

    @property
    def message(self) -> str:
        return f"Table '{self.table}' has no column '{self.column}'"


@dataclass(frozen=True)
class InvalidTypeError(FieldError):
    """The value type is not compatible with the column's converter."""
    expected: str = ''
    actual: str = ''

    @property
    def message(self) -> str:
        return (f"Column '{self.table}.{self.column}' expects {self.expected}, "
                f'got {self.actual}')


@dataclass(frozen=True)
class StringTooLongError(FieldError):
    """The string is longer than the declared column size."""
    max_length: int = 0
    actual_length: int = 0

    @property
    def message(self) -> str:
        return (f"Column '{self.table}.{self.column}' allows {self.max_length} "
                f'characters, got {self.actual_length}')
