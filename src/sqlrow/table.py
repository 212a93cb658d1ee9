"""
Row-level data access for one table.

Every write asserts that exactly one row was affected. With revision
support enabled, updates increment the revision column and check the
caller's revision value in the same statement, so a stale revision
surfaces as an affected-row mismatch.
"""
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlrow.column import Column
from sqlrow.exceptions import DatabaseAccessException, DeleteException
from sqlrow.exceptions import DriverError, IllegalStateError, InsertException
from sqlrow.exceptions import UnknownColumnError, UpdateException
from sqlrow.exceptions import ValidationError, affected_rows_message
from sqlrow.row import Row
from sqlrow.schema import TableMetadata
from sqlrow.sql import count_by_id_sql, delete_sql, select_by_id_sql
from sqlrow.sql import select_column_sql, update_sql
from sqlrow.validation import FieldError, InvalidKeyError

if TYPE_CHECKING:
    from sqlrow.connection import Database

logger = logging.getLogger(__name__)


class Table:
    """CRUD operations on one table of a Database.

    Row keys are column host names. ``insert``, ``update`` and ``save``
    write generated keys and fresh revision values back into the row they
    were given.
    """

    def __init__(self, database: 'Database', metadata: TableMetadata) -> None:
        self.database = database
        self.metadata = metadata

    def __repr__(self) -> str:
        return f'Table({self.metadata.qualified_name!r})'

    @property
    def name(self) -> str:
        return self.metadata.qualified_name

    @property
    def primary_key(self) -> str | None:
        return self.metadata.primary_key

    @property
    def revision_column(self) -> Column | None:
        return self.metadata.revision

    @property
    def columns(self) -> list[Column]:
        return self.metadata.columns

    def column(self, name: str) -> Column | None:
        return self.metadata.column(name)

    def enable_revision_support(self, name: str = 'revision') -> 'Table':
        self.metadata.enable_revision_support(name)
        return self

    def ignore_column(self, name: str, on_update: bool = False) -> 'Table':
        self.metadata.ignore_column(name, on_update=on_update)
        return self

    @property
    def _dialect(self) -> str:
        return self.database.dialect

    def _require_primary_key(self, error: type[Exception] = DatabaseAccessException) -> Column:
        column = self.metadata.primary_key_column
        if column is None:
            raise error(f"Table '{self.name}' has no primary key column")
        return column

    def _known_column(self, key: str) -> Column:
        column = self.metadata.column(key)
        if column is None:
            raise UnknownColumnError(f"Table '{self.name}' has no column '{key}'")
        return column

    # insert

    def insert(self, row: Row) -> Any:
        """Insert a row and return its primary key value.

        A primary key present with a None value is removed so the database
        generates it. The generated key and the initial revision are
        written back into ``row``.
        """
        pk = self.metadata.primary_key_column
        if pk is not None and pk.name in row and row[pk.name] is None:
            del row[pk.name]

        columns = [c for c in (self._known_column(k) for k in row) if not c.ignored]
        values = [c.to_sql(row[c.name]) for c in columns]
        fetch_key = pk is not None and pk.name not in row

        strategy = self.database.strategy
        sql = strategy.build_insert_sql(self.metadata.sql_name, [c.sql_name for c in columns],
                                        returning=pk.sql_name if fetch_key else None)
        with self.database.cursor() as cursor:
            try:
                rows = cursor.execute(sql, values)
                if rows != 1:
                    raise InsertException(affected_rows_message('insert', rows))
                if fetch_key:
                    key = strategy.fetch_generated_key(cursor, self.metadata.sql_name,
                                                       strategy.quote_identifier(pk.sql_name))
                    row[pk.name] = pk.from_sql(key)
            except DriverError as exc:
                raise InsertException(f'Insert into {self.name} failed: {exc}') from exc

        if pk is None:
            return None
        if self.metadata.revision is not None:
            self._refresh_revision(row, row[pk.name])
        return row[pk.name]

    # update

    def update(self, row: Row) -> None:
        """Update the row identified by its primary key value.
        """
        pk = self._require_primary_key(UpdateException)
        if row.get(pk.name) is None:
            raise UpdateException(f"Row has no value for primary key '{pk.name}' of {self.name}")
        self.update_where(row, Row({pk.name: row[pk.name]}))

    def update_where(self, values: Row, where: Mapping[str, Any]) -> None:
        """Update exactly one row matching ``where`` with ``values``.

        Every column in ``values`` is set, key columns included, so the
        statement always runs and its row count is checked. The revision
        column is never taken from the caller's values or conditions; with
        revision support the current revision in ``values`` is checked and
        the new one written back.
        """
        revision = self.metadata.revision
        revision_name = revision.name if revision is not None else None

        set_columns = [c for c in (self._known_column(k) for k in values)
                       if c.name != revision_name and not c.ignored and not c.ignore_on_update]
        where_columns = [self._known_column(k) for k in where if k != revision_name]
        if not where_columns:
            raise UpdateException('Update requires at least one WHERE condition')
        if not set_columns and revision is None:
            raise UpdateException(f'Update of {self.name} has no columns to set')

        params = [c.to_sql(values[c.name]) for c in set_columns]
        params += [c.to_sql(where[c.name]) for c in where_columns]
        if revision is not None:
            if values.get(revision.name) is None:
                raise UpdateException(f"Row has no value for revision column '{revision.name}' of {self.name}")
            params.append(revision.to_sql(values[revision.name]))

        sql = update_sql(self.metadata.sql_name, [c.sql_name for c in set_columns],
                         [c.sql_name for c in where_columns], self._dialect,
                         revision=revision.sql_name if revision is not None else None)
        with self.database.cursor() as cursor:
            try:
                rows = cursor.execute(sql, params)
            except DriverError as exc:
                raise UpdateException(f'Update of {self.name} failed: {exc}') from exc
        if rows != 1:
            raise UpdateException(affected_rows_message('update', rows))

        if revision is not None:
            pk = self.metadata.primary_key
            key = where.get(pk, values.get(pk)) if pk else None
            if key is not None:
                self._refresh_revision(values, key)

    # save

    def save(self, row: Row) -> Any:
        """Insert or update depending on whether the key exists.
        """
        pk = self._require_primary_key()
        if row.get(pk.name) is None:
            return self.insert(row)

        sql = count_by_id_sql(self.metadata.sql_name, pk.sql_name, self._dialect)
        with self.database.cursor() as cursor:
            try:
                cursor.execute(sql, [pk.to_sql(row[pk.name])])
                count = cursor.fetchone()[0]
            except DriverError as exc:
                raise DatabaseAccessException(f'Existence check on {self.name} failed: {exc}') from exc

        if count == 0:
            return self.insert(row)
        self.update(row)
        return row[pk.name]

    # delete

    def delete(self, id_or_row: Any) -> None:
        """Delete by primary key value, or by row when revisions are enabled.
        """
        pk = self._require_primary_key(DeleteException)
        revision = self.metadata.revision

        if isinstance(id_or_row, Mapping):
            key = id_or_row.get(pk.name)
            if key is None:
                raise DeleteException(f"Row has no value for primary key '{pk.name}' of {self.name}")
            params = [pk.to_sql(key)]
            if revision is not None:
                if id_or_row.get(revision.name) is None:
                    raise IllegalStateError(f"Row has no value for revision column '{revision.name}'")
                params.append(revision.to_sql(id_or_row[revision.name]))
        else:
            if revision is not None:
                raise IllegalStateError(f'{self.name} has revision support; delete the row instead of the id')
            params = [pk.to_sql(id_or_row)]

        sql = delete_sql(self.metadata.sql_name, pk.sql_name, self._dialect,
                         revision=revision.sql_name if revision is not None else None)
        with self.database.cursor() as cursor:
            try:
                rows = cursor.execute(sql, params)
            except DriverError as exc:
                raise DeleteException(f'Delete from {self.name} failed: {exc}') from exc
        if rows != 1:
            raise DeleteException(affected_rows_message('delete', rows))

    # load

    def load(self, key: Any) -> 'LinkedRow | None':
        """Row with the given primary key value, or None.
        """
        pk = self._require_primary_key()
        columns = [c for c in self.metadata.columns if not c.ignored]
        sql = select_by_id_sql(self.metadata.sql_name, [c.sql_name for c in columns],
                               pk.sql_name, self._dialect)
        with self.database.cursor() as cursor:
            try:
                cursor.execute(sql, [pk.to_sql(key)])
                raw = cursor.fetchone()
            except DriverError as exc:
                raise DatabaseAccessException(f'Load from {self.name} failed: {exc}') from exc
        if raw is None:
            return None
        return LinkedRow(self, ((c.name, c.from_sql(v)) for c, v in zip(columns, raw)))

    def new_row(self, data: Mapping[str, Any] | None = None) -> 'LinkedRow':
        """Empty table-linked row; assignments are validated.
        """
        row = LinkedRow(self)
        for key, value in (data or {}).items():
            row[key] = value
        return row

    # validation

    def validate_value(self, key: str, value: Any) -> FieldError | None:
        column = self.metadata.column(key)
        if column is None:
            return InvalidKeyError(self.name, key)
        return column.validate_value(value)

    def validate(self, row: Mapping[str, Any]) -> dict[str, FieldError]:
        """Validation errors by column name; empty when the row is valid.

        Never raises for bad data.
        """
        errors = {}
        for key, value in row.items():
            error = self.validate_value(key, value)
            if error is not None:
                errors[key] = error
        return errors

    def _refresh_revision(self, row: Row, key: Any) -> None:
        revision = self.metadata.revision
        pk = self.metadata.primary_key_column
        sql = select_column_sql(self.metadata.sql_name, revision.sql_name, pk.sql_name, self._dialect)
        with self.database.cursor() as cursor:
            try:
                cursor.execute(sql, [pk.to_sql(key)])
                found = cursor.fetchone()
            except DriverError as exc:
                raise DatabaseAccessException(f'Revision query on {self.name} failed: {exc}') from exc
        if found is None:
            raise DatabaseAccessException(f'Row {key!r} of {self.name} vanished while reading its revision')
        row[revision.name] = revision.from_sql(found[0])


class LinkedRow(Row):
    """Row bound to its Table. Assigned values are validated immediately.
    """

    def __init__(self, table: Table, data=()) -> None:
        super().__init__(data)
        self.table = table

    def __setitem__(self, key: str, value: Any) -> None:
        error = self.table.validate_value(key, value)
        if error is not None:
            raise ValidationError(error)
        super().__setitem__(key, value)

    def update(self, *args: Any, **kwargs: Any) -> None:
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def copy(self) -> 'LinkedRow':
        return LinkedRow(self.table, self)

    @property
    def id(self) -> Any:
        return self.get(self.table.primary_key) if self.table.primary_key else None

    @property
    def revision(self) -> Any:
        column = self.table.revision_column
        return self.get(column.name) if column is not None else None

    def save(self) -> Any:
        return self.table.save(self)

    def delete(self) -> None:
        self.table.delete(self)
