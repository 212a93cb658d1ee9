"""
Parser for annotated SQL statements.

SQL text is treated as opaque except for a small directive syntax carried
in block comments:

    person1.id = /*=*/ 1 /**/          bind parameter, name from left operand
    /*age=*/ 18 /**/                   bind parameter with explicit name
    /*age:int=*/ 18 /**/               explicit name and host type
    person1.first_name /*:string*/     result column exposed as a host type

The literal between a parameter directive and its closing ``/**/`` is the
parameter's default and, where unambiguous, its type hint. Directives are
stripped from the executable SQL and parameters become positional
placeholders.

Parsing is a single pass over a tokenizer that knows string literals and
quoted identifiers, so comment-like text inside literals is never taken
for a directive:

    SQL → Tokenize → Walk tokens (collect segments, parameters, result
    columns) → StatementTemplate
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum, auto

from sqlrow.exceptions import MalformedStatementError
from sqlrow.naming import CamelCaseNaming, NamingConvention, is_quoted
from sqlrow.naming import split_qualified, unquote
from sqlrow.types import HostKind

logger = logging.getLogger(__name__)

# =============================================================================
# Data Structures
# =============================================================================


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENT = auto()
    PARAM_OPEN = auto()         # /*=*/, /*name=*/, /*name:type=*/
    PARAM_CLOSE = auto()        # /**/
    TYPE_ANNOTATION = auto()    # /*:type*/
    COMMENT = auto()
    LINE_COMMENT = auto()
    TERMINATOR = auto()
    UNCLOSED = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int
    name: str | None = None
    type_name: str | None = None


@dataclass(frozen=True)
class Parameter:
    """Named bind parameter of a statement."""
    name: str
    host_kind: HostKind | None = None
    default: str = ''
    display_name: str = ''


@dataclass(frozen=True)
class ResultColumn:
    """Result field declared with a type annotation.

    ``key`` is the label the database reports for the field and the key of
    produced rows; ``display_name`` is the host naming variant. ``source``
    keeps the qualified column reference when one was written.
    """
    key: str
    host_kind: HostKind
    display_name: str
    source: str | None = None
    quoted: bool = False

    def matches(self, label: str) -> bool:
        if self.quoted:
            return label == self.key
        return label.casefold() == self.key.casefold()


@dataclass(frozen=True)
class StatementTemplate:
    """Parsed statement: literal SQL segments around ordered placeholders.

    ``segments`` always has one more entry than ``placeholders``.
    """
    sql_text: str
    segments: tuple[str, ...]
    placeholders: tuple[Parameter, ...]
    result_columns: tuple[ResultColumn, ...] = ()
    is_query: bool = False
    parameter_kinds: dict[str, HostKind | None] = field(default_factory=dict, compare=False, repr=False)

    @property
    def parameters(self) -> tuple[Parameter, ...]:
        """Unique parameters in order of first appearance, with merged types.
        """
        seen: dict[str, Parameter] = {}
        for param in self.placeholders:
            if param.name not in seen:
                kind = self.parameter_kinds.get(param.name, param.host_kind)
                seen[param.name] = Parameter(param.name, kind, param.default, param.display_name)
        return tuple(seen.values())

    def render(self, placeholder: str = '?', escape_percent: bool = False) -> str:
        """Executable SQL with the dialect's placeholder marker.
        """
        parts = [s.replace('%', '%%') for s in self.segments] if escape_percent else list(self.segments)
        out = [parts[0]]
        for part in parts[1:]:
            out.append(placeholder)
            out.append(part)
        return ''.join(out)

    def result_column(self, label: str) -> ResultColumn | None:
        for column in self.result_columns:
            if column.matches(label):
                return column
        return None


# =============================================================================
# Regex Patterns
# =============================================================================

_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*')
    |(?P<ident>"(?:[^"]|"")*")
    |(?P<param_close>/\*\*/)
    |(?P<param_open>/\*\s*(?P<pname>[\w$.]*)\s*(?::\s*(?P<ptype>\w+)\s*)?=\s*\*/)
    |(?P<annotation>/\*\s*:\s*(?P<atype>\w+)\s*\*/)
    |(?P<comment>/\*.*?\*/)
    |(?P<line_comment>--[^\n]*)
    |(?P<unclosed>/\*|'|")
    |(?P<terminator>;)
""", re.VERBOSE | re.DOTALL)

_IDENT = r'(?:"(?:[^"]|"")*"|[\w$]+)'

_QUALIFIED = rf'{_IDENT}(?:\s*\.\s*(?:{_IDENT}|\*))*'

# Left operand of the comparison or assignment preceding a parameter
_LEFT_OPERAND = re.compile(
    rf'(?P<name>{_QUALIFIED})\s*'
    r'(?:=|<>|!=|<=|>=|<|>|\bNOT\s+LIKE\b|\bI?LIKE\b|\bNOT\s+IN\b|\bIN\b|\bIS(?:\s+NOT)?\b)'
    r'\s*\(?\s*$',
    re.IGNORECASE)

_ALIAS = re.compile(rf'\bAS\s+(?P<alias>{_IDENT})\s*$', re.IGNORECASE)

_COLUMN_REF = re.compile(rf'(?P<source>{_QUALIFIED})\s*$')

_NUMERIC_LITERAL = re.compile(r'^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$')

_STRING_LITERAL = re.compile(r"^'(?:[^']|'')*'$")

_QUERY_KEYWORDS = {'SELECT', 'WITH', 'VALUES', 'TABLE', 'SHOW', 'EXPLAIN', 'PRAGMA'}

_FIRST_WORD = re.compile(r'[\s(]*(\w+)')

_RETURNING = re.compile(r'\bRETURNING\b', re.IGNORECASE)

_SNIPPET_LENGTH = 60


# =============================================================================
# Core Functions
# =============================================================================

def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL statement text

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        token = Token(TokenType.SQL_TEXT, match.group(0), start, end)
        if match.group('string'):
            token.type = TokenType.STRING_LITERAL
        elif match.group('ident'):
            token.type = TokenType.QUOTED_IDENT
        elif match.group('param_close'):
            token.type = TokenType.PARAM_CLOSE
        elif match.group('param_open'):
            token.type = TokenType.PARAM_OPEN
            token.name = match.group('pname') or None
            token.type_name = match.group('ptype')
        elif match.group('annotation'):
            token.type = TokenType.TYPE_ANNOTATION
            token.type_name = match.group('atype')
        elif match.group('comment'):
            token.type = TokenType.COMMENT
        elif match.group('line_comment'):
            token.type = TokenType.LINE_COMMENT
        elif match.group('unclosed'):
            token.type = TokenType.UNCLOSED
        elif match.group('terminator'):
            token.type = TokenType.TERMINATOR

        tokens.append(token)
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def infer_literal_kind(literal: str) -> HostKind | None:
    """Host kind implied by a default literal's syntax.

    Numeric literals map to NUMBER rather than guessing integer or decimal.
    """
    text = literal.strip()
    if text.upper() in {'TRUE', 'FALSE'}:
        return HostKind.BOOLEAN
    if _STRING_LITERAL.match(text):
        return HostKind.TEXT
    if _NUMERIC_LITERAL.match(text):
        return HostKind.NUMBER
    return None


def _snippet(sql: str, start: int) -> str:
    return sql[start:start + _SNIPPET_LENGTH].strip()


def _qualified_name(reference: str) -> str:
    parts = split_qualified(re.sub(r'\s*\.\s*', '.', reference))
    return '.'.join(unquote(p) for p in parts)


class _StatementBuilder:
    """Mutable state of one parse pass."""

    def __init__(self, sql: str, naming: NamingConvention) -> None:
        self.sql = sql
        self.naming = naming
        self.segments: list[str] = []
        self.current: list[str] = []
        self.placeholders: list[Parameter] = []
        self.result_columns: list[ResultColumn] = []
        self.kinds: dict[str, HostKind | None] = {}
        self.has_returning = False

    @property
    def text(self) -> str:
        return ''.join(self.current)

    def add_parameter(self, token: Token, default: str) -> None:
        name = token.name or self._infer_parameter_name(token)
        if token.type_name:
            kind = HostKind.from_name(token.type_name)
        else:
            kind = infer_literal_kind(default)

        if name in self.kinds:
            known = self.kinds[name]
            if known is not None and kind is not None and known != kind:
                raise MalformedStatementError(
                    f"Parameter '{name}' is used with incompatible types "
                    f'{known.value} and {kind.value}', _snippet(self.sql, token.start))
            self.kinds[name] = known or kind
        else:
            self.kinds[name] = kind

        self.placeholders.append(Parameter(name, kind, default, self.naming.sql_to_host(name)))
        self.segments.append(self.text)
        self.current = []

    def add_result_column(self, token: Token) -> None:
        text = self.text
        kind = HostKind.from_name(token.type_name)
        source = None
        alias_match = _ALIAS.search(text)
        if alias_match:
            label = alias_match.group('alias')
            source_match = _COLUMN_REF.search(text[:alias_match.start()])
            if source_match:
                source = _qualified_name(source_match.group('source'))
        else:
            source_match = _COLUMN_REF.search(text)
            if not source_match:
                raise MalformedStatementError(
                    'Type annotation does not follow a column reference',
                    _snippet(self.sql, max(0, token.start - _SNIPPET_LENGTH // 2)))
            reference = re.sub(r'\s*\.\s*', '.', source_match.group('source'))
            source = _qualified_name(reference)
            label = split_qualified(reference)[-1]

        self.result_columns.append(ResultColumn(
            key=unquote(label),
            host_kind=kind,
            display_name=self.naming.sql_to_host(label),
            source=source,
            quoted=is_quoted(label),
            ))

    def _infer_parameter_name(self, token: Token) -> str:
        match = _LEFT_OPERAND.search(self.text)
        if not match:
            raise MalformedStatementError(
                'Cannot infer the parameter name; use /*name=*/',
                _snippet(self.sql, max(0, token.start - _SNIPPET_LENGTH // 2)))
        return _qualified_name(match.group('name'))

    def build(self) -> StatementTemplate:
        self.segments.append(self.text)
        segments = list(self.segments)
        segments[0] = segments[0].lstrip()
        segments[-1] = segments[-1].rstrip()
        first = _FIRST_WORD.match(''.join(segments))
        is_query = bool(first and first.group(1).upper() in _QUERY_KEYWORDS) or self.has_returning
        return StatementTemplate(
            sql_text=self.sql,
            segments=tuple(segments),
            placeholders=tuple(self.placeholders),
            result_columns=tuple(self.result_columns),
            is_query=is_query,
            parameter_kinds=dict(self.kinds),
            )


def parse(sql: str, naming: NamingConvention | None = None) -> StatementTemplate:
    """Parse one annotated SQL statement terminated by ``;``.

    Raises MalformedStatementError when a directive, comment, literal or
    quoted identifier is not closed, when the statement has no terminator,
    or when anything but comments follows the terminator.
    """
    naming = naming or CamelCaseNaming()
    tokens = tokenize_sql(sql)
    builder = _StatementBuilder(sql, naming)
    terminated = False
    i = 0

    while i < len(tokens):
        token = tokens[i]

        if terminated:
            if token.type not in {TokenType.COMMENT, TokenType.LINE_COMMENT} and token.text.strip():
                raise MalformedStatementError('Unexpected text after statement terminator',
                                              _snippet(sql, token.start))

        elif token.type == TokenType.TERMINATOR:
            terminated = True

        elif token.type == TokenType.PARAM_OPEN:
            j = i + 1
            while j < len(tokens) and tokens[j].type not in {
                    TokenType.PARAM_CLOSE, TokenType.PARAM_OPEN, TokenType.TERMINATOR, TokenType.UNCLOSED}:
                j += 1
            if j >= len(tokens) or tokens[j].type != TokenType.PARAM_CLOSE:
                raise MalformedStatementError('Parameter directive is not closed with /**/',
                                              _snippet(sql, token.start))
            default = ''.join(t.text for t in tokens[i + 1:j]).strip()
            builder.add_parameter(token, default)
            i = j

        elif token.type == TokenType.TYPE_ANNOTATION:
            builder.add_result_column(token)

        elif token.type == TokenType.UNCLOSED:
            raise MalformedStatementError(f'Unterminated {token.text!r}', _snippet(sql, token.start))

        else:
            if token.type == TokenType.SQL_TEXT and _RETURNING.search(token.text):
                builder.has_returning = True
            builder.current.append(token.text)

        i += 1

    if not terminated:
        raise MalformedStatementError("Statement has no terminating ';'",
                                      sql.strip()[-_SNIPPET_LENGTH:])

    template = builder.build()
    logger.debug(f'Parsed statement with {len(template.placeholders)} placeholders '
                 f'and {len(template.result_columns)} typed result columns')
    return template
