"""sqlsession: fluent SQL builder and executor for Python."""

from sqlsession.config import SessionFactoryConfig
from sqlsession.db import (
    ConnectionSource,
    DbSession,
    DirectConnection,
    ExecResult,
    NonTxDbSession,
    ResultSet,
    TxDbSession,
)
from sqlsession.deadline import Deadline
from sqlsession.dialect import Dialect, detect_dialect
from sqlsession.exceptions import (
    ArgumentCountError,
    MappingError,
    NoRowsError,
    ParameterTypeError,
    SqlCancelledError,
    SqlSessionError,
    StatementError,
    UnconditionalMutationError,
)
from sqlsession.factory import SessionFactory, connect_mysql, connect_postgresql, connect_sqlite
from sqlsession.mapper import ManualMapper, RowMapper, create_mapper
from sqlsession.mapper.column import Column, Embedded, entity
from sqlsession.mysql import MySqlSession
from sqlsession.placeholder import get_placeholders, split_placeholders, tokenize
from sqlsession.postgresql import PostgreSqlSession
from sqlsession.session import BaseSqlSession, SqlValue
from sqlsession.statement import LimitingRowsStrategy, Statement, StatementType

__all__ = [
    "ArgumentCountError",
    "BaseSqlSession",
    "Column",
    "ConnectionSource",
    "DbSession",
    "Deadline",
    "Dialect",
    "DirectConnection",
    "Embedded",
    "ExecResult",
    "LimitingRowsStrategy",
    "ManualMapper",
    "MappingError",
    "MySqlSession",
    "NoRowsError",
    "NonTxDbSession",
    "ParameterTypeError",
    "PostgreSqlSession",
    "ResultSet",
    "RowMapper",
    "SessionFactory",
    "SessionFactoryConfig",
    "SqlCancelledError",
    "SqlSessionError",
    "SqlValue",
    "Statement",
    "StatementError",
    "StatementType",
    "TxDbSession",
    "UnconditionalMutationError",
    "connect_mysql",
    "connect_postgresql",
    "connect_sqlite",
    "create_mapper",
    "detect_dialect",
    "entity",
    "get_placeholders",
    "split_placeholders",
    "tokenize",
]
