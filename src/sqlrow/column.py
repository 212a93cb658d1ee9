"""
Column metadata for reflected tables.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Self

from sqlrow.converters import Converter, normalize_value
from sqlrow.types import HostKind, SqlType
from sqlrow.validation import FieldError, InvalidTypeError, StringTooLongError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Column:
    """One column of a table.

    Attributes:
        table: Schema-qualified table name the column belongs to
        name: Host name of the column (key used in rows)
        sql_name: Column name as reported by the database catalog
        sql_type: SQL type code
        size: Declared size (string length or numeric precision)
        nullable: Whether NULL is allowed
        converter: Converter used to bind and read values
        primary_key: Whether the column is the table's primary key
        ignored: Excluded from inserts, updates and loads
        ignore_on_update: Excluded from update SET clauses only
    """
    table: str
    name: str
    sql_name: str
    sql_type: SqlType
    converter: Converter = field(repr=False)
    size: int | None = None
    nullable: bool = True
    primary_key: bool = False
    ignored: bool = False
    ignore_on_update: bool = False

    @property
    def host_kind(self) -> HostKind | None:
        return self.converter.host_kind

    def to_sql(self, value: Any) -> Any:
        return self.converter.to_sql(value)

    def from_sql(self, raw: Any) -> Any:
        return self.converter.from_sql(raw)

    def validate_value(self, value: Any) -> FieldError | None:
        """Check a value against the converter and declared size.

        Returns the validation error, or None if the value is acceptable.
        """
        value = normalize_value(value)
        if value is None:
            return None
        if not self.converter.accepts(value):
            return InvalidTypeError(self.table, self.name,
                                    expected=self.converter.describe(),
                                    actual=self.converter.describe_value(value))
        if self.converter.exceeds(value, self.size):
            return StringTooLongError(self.table, self.name,
                                      max_length=self.size,
                                      actual_length=len(value))
        return None

    def with_flags(self, **flags: bool) -> Self:
        return replace(self, **flags)

    def to_dict(self) -> dict[str, Any]:
        """Column description consumed by code generators.
        """
        return {
            'name': self.name,
            'sql_name': self.sql_name,
            'sql_type': self.sql_type.value,
            'host_kind': self.host_kind.value if self.host_kind else None,
            'size': self.size,
            'nullable': self.nullable,
            'primary_key': self.primary_key,
            }
