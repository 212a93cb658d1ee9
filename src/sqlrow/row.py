"""Row containers exchanged with tables and statements."""
import datetime
import decimal
from collections.abc import Iterable, Mapping
from typing import Any, Self, TypeVar

from sqlrow.types import RowValue

T = TypeVar('T')


class Row(dict[str, RowValue]):
    """Ordered mapping of column or parameter name to value.

    Rows are transient value objects: build one, hand it to a table or
    statement operation, read the values written back (generated keys,
    revisions).
    """

    @classmethod
    def from_key_vals(cls, *key_vals: Any) -> Self:
        """Row.from_key_vals('id', 1, 'name', 'a')
        """
        return cls().add_key_vals(*key_vals)

    def add_key_vals(self, *key_vals: Any) -> Self:
        """Set values from alternating keys and values.

        Raises ValueError on an odd number of arguments, a non-string key or
        a key given twice.
        """
        if len(key_vals) % 2:
            raise ValueError('content must be a list of alternating key value pairs')
        keys = key_vals[0::2]
        for key in keys:
            if not isinstance(key, str):
                raise ValueError(f'argument {key!r} is not a string')
        if len(set(keys)) != len(keys):
            raise ValueError(f'duplicate keys in {keys!r}')
        self.update(zip(keys, key_vals[1::2]))
        return self

    def get_as(self, type_: type[T], key: str) -> T:
        value = self.get(key)
        if not isinstance(value, type_):
            raise TypeError(f'Cannot cast value {value!r} of type '
                            f'{type(value).__name__} to {type_.__name__}')
        return value

    def get_int(self, key: str) -> int:
        return self.get_as(int, key)

    def get_string(self, key: str) -> str:
        return self.get_as(str, key)

    def get_bool(self, key: str) -> bool:
        return self.get_as(bool, key)

    def get_decimal(self, key: str) -> decimal.Decimal:
        return self.get_as(decimal.Decimal, key)

    def get_datetime(self, key: str) -> datetime.datetime:
        return self.get_as(datetime.datetime, key)

    def get_joined_rows(self, key: str) -> list['Row']:
        """Rows attached under ``key`` by ``QueryResult.as_row_tree``."""
        return self.get_as(list, key)

    def project(self, fields: Iterable[str] | Mapping[str, str]) -> 'Row':
        """Copy selected fields into a new Row.

        ``fields`` is either an iterable of names or a mapping of source name
        to target name. Missing source fields are skipped.
        """
        if isinstance(fields, Mapping):
            pairs = fields.items()
        else:
            pairs = ((f, f) for f in fields)
        return Row((target, self[source]) for source, target in pairs if source in self)

    def assign_into(self, target: Mapping[str, Any]) -> 'Row':
        """Copy of ``target`` updated with the fields it shares with this row.
        """
        result = Row(target)
        result.update((k, v) for k, v in self.items() if k in result)
        return result

    def updated_with(self, source: Mapping[str, Any]) -> 'Row':
        """Copy of this row updated with the fields it shares with ``source``.
        """
        result = Row(self)
        result.update((k, v) for k, v in source.items() if k in result)
        return result

    def copy(self) -> 'Row':
        return type(self)(self)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({dict.__repr__(self)})'


class QueriedRow(Row):
    """Row produced by a statement query.

    Keys are the result labels as returned by the database. ``display``
    derives a row keyed by host display names without losing the original.
    ``sources`` maps keys of typed result columns to the column reference
    written in the statement, e.g. ``p.first_name``.
    """

    def __init__(self, data: Iterable = (), display_names: Mapping[str, str] | None = None,
                 sources: Mapping[str, str | None] | None = None) -> None:
        super().__init__(data)
        self.display_names = dict(display_names or {})
        self.sources = dict(sources or {})

    def display(self) -> Row:
        return Row((self.display_names.get(k, k), v) for k, v in self.items())

    def group_by_tables(self) -> dict[str | None, Row]:
        """Values grouped by the table qualifier of their source column.

        Each group is keyed by column name. Values without a qualified
        source are grouped under None by their result key.
        """
        groups: dict[str | None, Row] = {}
        for key, value in self.items():
            table, column = split_source(self.sources.get(key))
            groups.setdefault(table, Row())[column or key] = value
        return groups

    def copy(self) -> 'QueriedRow':
        return QueriedRow(self, self.display_names, self.sources)


def split_source(source: str | None) -> tuple[str | None, str | None]:
    """Split ``schema.table.column`` into its qualifier and column name.
    """
    if not source:
        return None, None
    table, _, column = source.rpartition('.')
    return table or None, column
