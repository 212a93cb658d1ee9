"""
Typed row access to relational databases.

Tables are reflected from the live schema and read or written as Rows;
hand-written SQL annotated with inline directives becomes named,
typed statements.
"""
from sqlrow.column import Column
from sqlrow.connection import Database, connect
from sqlrow.converters import Converter, ConverterRegistry
from sqlrow.exceptions import AmbiguousTableError, ConversionError
from sqlrow.exceptions import DatabaseAccessException, DatabaseError
from sqlrow.exceptions import DeleteException, IllegalStateError
from sqlrow.exceptions import InsertException, MalformedStatementError
from sqlrow.exceptions import MissingParameterError, UnknownColumnError
from sqlrow.exceptions import UnknownStatementError, UnknownTableError
from sqlrow.exceptions import UnsupportedTypeError, UpdateException
from sqlrow.exceptions import ValidationError
from sqlrow.executor import BoundStatement, QueryResult, bind
from sqlrow.naming import CamelCaseNaming, NamingConvention, get_naming
from sqlrow.options import DatabaseOptions
from sqlrow.parser import Parameter, ResultColumn, StatementTemplate, parse
from sqlrow.row import QueriedRow, Row
from sqlrow.schema import TableCache, TableMetadata
from sqlrow.sqlfile import SqlFile
from sqlrow.statement import Statement
from sqlrow.table import LinkedRow, Table
from sqlrow.types import HostKind, SqlType
from sqlrow.validation import FieldError, InvalidKeyError, InvalidTypeError
from sqlrow.validation import StringTooLongError

__version__ = '0.1.0'

__all__ = [
    'AmbiguousTableError',
    'BoundStatement',
    'CamelCaseNaming',
    'Column',
    'ConversionError',
    'Converter',
    'ConverterRegistry',
    'Database',
    'DatabaseAccessException',
    'DatabaseError',
    'DatabaseOptions',
    'DeleteException',
    'FieldError',
    'HostKind',
    'IllegalStateError',
    'InsertException',
    'InvalidKeyError',
    'InvalidTypeError',
    'LinkedRow',
    'MalformedStatementError',
    'MissingParameterError',
    'NamingConvention',
    'Parameter',
    'QueriedRow',
    'QueryResult',
    'ResultColumn',
    'Row',
    'SqlFile',
    'SqlType',
    'Statement',
    'StatementTemplate',
    'StringTooLongError',
    'Table',
    'TableCache',
    'TableMetadata',
    'UnknownColumnError',
    'UnknownStatementError',
    'UnknownTableError',
    'UnsupportedTypeError',
    'UpdateException',
    'ValidationError',
    'bind',
    'connect',
    'get_naming',
    'parse',
]
