"""
SQL files with named statements.

A file is a sequence of blocks, each introduced by a comment line holding
only the statement name and ending at the first line that ends in ``;``:

    -- loadPersonById
    SELECT id /*:int*/, first_name /*:string*/
    FROM person
    WHERE id = /*=*/ 1 /**/;

Text before the first header is ignored.
"""
import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from sqlrow.exceptions import IllegalStateError, MalformedStatementError
from sqlrow.exceptions import UnknownStatementError
from sqlrow.naming import NamingConvention
from sqlrow.parser import StatementTemplate, parse
from sqlrow.statement import Statement

if TYPE_CHECKING:
    from sqlrow.connection import Database

logger = logging.getLogger(__name__)

_HEADER = re.compile(r'^--\s*(\w+)\s*$')
_END = re.compile(r';\s*$')


def split_statements(text: str) -> dict[str, str]:
    """Split SQL file text into statement bodies by name.

    Raises MalformedStatementError for a block without a terminating ``;``
    or a name used twice.
    """
    blocks: dict[str, str] = {}
    name, body = None, []

    for line in text.splitlines():
        header = _HEADER.match(line.strip())
        if name is None:
            if header:
                name, body = header.group(1), []
            continue
        if header:
            break
        body.append(line)
        if _END.search(line):
            if name in blocks:
                raise MalformedStatementError(f"Duplicate statement name '{name}'")
            blocks[name] = '\n'.join(body)
            name = None

    if name is not None:
        raise MalformedStatementError(
            f"Could not find the end of the SQL expression '{name}'. Did you add ';'?",
            '\n'.join(body).strip()[:60])
    return blocks


class SqlFile:
    """Parsed statements of one SQL file, by name.
    """

    def __init__(self, text: str, name: str = '<string>', database: 'Database | None' = None,
                 naming: NamingConvention | None = None) -> None:
        self.name = name
        self.database = database
        if naming is None and database is not None:
            naming = database.naming
        self._templates: dict[str, StatementTemplate] = {
            statement_name: parse(body, naming)
            for statement_name, body in split_statements(text).items()
            }
        logger.debug(f'Loaded {len(self._templates)} statements from {name}')

    @classmethod
    def from_path(cls, path: str | os.PathLike, database: 'Database | None' = None,
                  naming: NamingConvention | None = None) -> 'SqlFile':
        path = Path(path)
        return cls(path.read_text(encoding='utf-8'), str(path), database, naming)

    def __repr__(self) -> str:
        return f'SqlFile({self.name!r}, statements={list(self._templates)})'

    def __contains__(self, name: str) -> bool:
        return name in self._templates

    def __iter__(self) -> Iterator[str]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def names(self) -> list[str]:
        return list(self._templates)

    def template(self, name: str) -> StatementTemplate:
        try:
            return self._templates[name]
        except KeyError:
            raise UnknownStatementError(f"No statement '{name}' in {self.name}") from None

    def statement(self, name: str) -> Statement:
        """Statement ready to run on the file's database.
        """
        template = self.template(name)
        if self.database is None:
            raise IllegalStateError(f'{self.name} is not bound to a database')
        return Statement(self.database, template, name)
