"""Named or inline statements bound to a Database."""
import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlrow.converters import Converter
from sqlrow.exceptions import AmbiguousTableError, IllegalStateError
from sqlrow.exceptions import UnknownTableError
from sqlrow.executor import BoundStatement, QueryResult, converter_for
from sqlrow.parser import Parameter, ResultColumn, StatementTemplate
from sqlrow.row import QueriedRow

if TYPE_CHECKING:
    from sqlrow.connection import Database

logger = logging.getLogger(__name__)


class Statement:
    """A parsed statement ready to run on a Database.

    Parameter converters are resolved once, in priority order: converters set
    with ``set_parameter_converter``, then the column of a known table for
    ``table.column`` parameter names, then the declared or inferred type.
    """

    def __init__(self, database: 'Database', template: StatementTemplate,
                 name: str | None = None) -> None:
        self.database = database
        self.template = template
        self.name = name
        self._overrides: dict[str, Converter] = {}
        self._resolved: dict[str, Converter] | None = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        label = self.name or self.template.sql_text.strip()[:40]
        return f'Statement({label!r})'

    @property
    def parameters(self) -> tuple[Parameter, ...]:
        """Ordered unique parameters, as consumed by code generators."""
        return self.template.parameters

    @property
    def result_columns(self) -> tuple[ResultColumn, ...]:
        return self.template.result_columns

    def set_parameter_converter(self, name: str, converter: Converter) -> 'Statement':
        if name not in {p.name for p in self.parameters}:
            raise KeyError(f'Statement has no parameter {name!r}')
        with self._lock:
            self._overrides[name] = converter
            self._resolved = None
        return self

    def _column_converter(self, name: str) -> Converter | None:
        if '.' not in name:
            return None
        table_name, column_name = name.rsplit('.', 1)
        try:
            metadata = self.database.table_metadata(table_name)
        except (UnknownTableError, AmbiguousTableError):
            logger.debug(f'No table metadata for parameter {name}')
            return None
        column = metadata.find_column(column_name)
        return column.converter if column is not None else None

    @property
    def converters(self) -> dict[str, Converter]:
        with self._lock:
            if self._resolved is None:
                resolved = {}
                for parameter in self.parameters:
                    resolved[parameter.name] = (
                        self._overrides.get(parameter.name)
                        or self._column_converter(parameter.name)
                        or converter_for(parameter))
                self._resolved = resolved
            return self._resolved

    def bind(self, params: Mapping[str, Any] | None = None, **kw: Any) -> BoundStatement:
        values = {**(params or {}), **kw}
        return self.database.executor.bind(self.template, values, self.converters)

    def query(self, params: Mapping[str, Any] | None = None, **kw: Any) -> QueryResult:
        """Run the statement and return its rows.

        Raises IllegalStateError for a command that returns no rows, i.e.
        one that neither starts like a query nor has a RETURNING clause.
        """
        if not self.template.is_query:
            raise IllegalStateError(f'{self!r} returns no rows; use execute()')
        return self.database.executor.query(self.bind(params, **kw))

    def first(self, params: Mapping[str, Any] | None = None, **kw: Any) -> QueriedRow | None:
        return self.query(params, **kw).first()

    def execute(self, params: Mapping[str, Any] | None = None, **kw: Any) -> int:
        return self.database.executor.execute(self.bind(params, **kw))
