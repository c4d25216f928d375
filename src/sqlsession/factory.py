"""SessionFactory: 方言に合ったセッションを生成する."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from sqlsession.config import SessionFactoryConfig
from sqlsession.db import DirectConnection, NonTxDbSession, TxDbSession
from sqlsession.deadline import Deadline
from sqlsession.dialect import Dialect, detect_dialect
from sqlsession.mysql import MySqlSession
from sqlsession.postgresql import PostgreSqlSession
from sqlsession.session import BaseSqlSession

if TYPE_CHECKING:
    from sqlsession.db import ConnectionSource, DbSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

SqlHandler = Callable[[BaseSqlSession, Deadline], T]
"""SQL を実行する関数。セッションと実行期限を受け取る."""


class SessionFactory:
    """方言と接続元に束縛されたセッションファクトリ.

    Examples:
        >>> factory = SessionFactory(Dialect.SQLITE, DirectConnection(conn))
        >>> count = factory.do(lambda s, d: s.select("count(*)").from_("users").as_scalar(int, deadline=d))
        >>> factory.do_in_tx(lambda s, d: s.update("users").set("name", "x").where("id = #{id}", 1).execute())

    """

    def __init__(
        self,
        dialect: Dialect,
        source: ConnectionSource,
        config: SessionFactoryConfig | None = None,
    ) -> None:
        self.dialect = dialect
        self.source = source
        self.config = config if config is not None else SessionFactoryConfig()
        self._non_tx_db = NonTxDbSession(source)

    @classmethod
    def from_connection(
        cls,
        connection: Any,
        *,
        dialect: Dialect | None = None,
        config: SessionFactoryConfig | None = None,
    ) -> SessionFactory:
        """単一の DB-API 接続からファクトリを作る.

        Raises:
            ValueError: dialect を省略し、接続から自動検出できない場合

        """
        if dialect is None:
            dialect = detect_dialect(connection)
            if dialect is None:
                msg = f"cannot detect dialect from {type(connection).__module__}"
                raise ValueError(msg)
        return cls(dialect, DirectConnection(connection), config)

    def _session_class(self) -> type[BaseSqlSession]:
        match self.dialect.family:
            case "postgresql":
                return PostgreSqlSession
            case _:
                return MySqlSession

    def new_session(self) -> BaseSqlSession:
        """トランザクションを張らないセッションを作る."""
        return self._session_class()(self._non_tx_db, self.dialect, log_sql=self.config.log_sql)

    def new_tx_session(self, db: DbSession) -> BaseSqlSession:
        """db（通常は TxDbSession）に束縛されたセッションを作る."""
        return self._session_class()(db, self.dialect, log_sql=self.config.log_sql)

    @contextmanager
    def new_tx_db_session(self) -> Iterator[TxDbSession]:
        """接続を 1 つ借り、その上のトランザクション用 DbSession を貸し出す.

        commit / rollback は呼び出し側（通常は ``TxDbSession.in_tx``）の責任。
        """
        with self.source.connection() as conn:
            yield TxDbSession(conn)

    def new_deadline(self, timeout: float | None = None) -> Deadline:
        """実行期限を作る。timeout 省略時は設定の sql_timeout."""
        return Deadline(timeout if timeout is not None else self.config.sql_timeout)

    def do(self, handler: SqlHandler[T], *, timeout: float | None = None) -> T:
        """トランザクションなしで handler を実行する."""
        return handler(self.new_session(), self.new_deadline(timeout))

    def do_in_tx(self, handler: SqlHandler[T], *, timeout: float | None = None) -> T:
        """1 つのトランザクション内で handler を実行する.

        handler が正常終了すれば commit、例外を送出すれば rollback する。
        """
        deadline = self.new_deadline(timeout)
        with self.new_tx_db_session() as db:
            session = self.new_tx_session(db)
            return db.in_tx(lambda: handler(session, deadline))


def connect_postgresql(dsn: str, config: SessionFactoryConfig | None = None) -> SessionFactory:
    """psycopg_pool の接続プールを作り、PostgreSQL 用のファクトリを返す.

    プールの接続は ``$n`` マーカーをそのまま送る ``RawCursor`` を使う。

    Raises:
        psycopg_pool.PoolTimeout: 接続できない場合

    """
    import psycopg
    from psycopg_pool import ConnectionPool

    config = config if config is not None else SessionFactoryConfig()
    pool_kwargs: dict[str, Any] = {}
    if config.max_open_conns > 0:
        pool_kwargs["max_size"] = config.max_open_conns
        pool_kwargs["min_size"] = min(
            config.max_idle_conns or config.max_open_conns, config.max_open_conns
        )
    elif config.max_idle_conns > 0:
        pool_kwargs["min_size"] = config.max_idle_conns
    if config.conn_max_lifetime > 0:
        pool_kwargs["max_lifetime"] = config.conn_max_lifetime
    if config.conn_max_idle_time > 0:
        pool_kwargs["max_idle"] = config.conn_max_idle_time

    pool = ConnectionPool(
        dsn,
        kwargs={"cursor_factory": psycopg.RawCursor},
        open=True,
        **pool_kwargs,
    )
    pool.wait()
    return SessionFactory(Dialect.POSTGRESQL, pool, config)


def connect_mysql(config: SessionFactoryConfig | None = None, **params: Any) -> SessionFactory:
    """Pymysql で接続し、MySQL 用のファクトリを返す.

    Args:
        config: ファクトリの設定
        **params: ``pymysql.connect`` に渡す接続パラメータ

    """
    import pymysql

    config = config if config is not None else SessionFactoryConfig()
    if config.max_open_conns or config.max_idle_conns:
        logger.warning("pool settings are ignored for a single pymysql connection")
    conn = pymysql.connect(**params)
    return SessionFactory(Dialect.MYSQL, DirectConnection(conn), config)


def connect_sqlite(database: str = ":memory:", config: SessionFactoryConfig | None = None) -> SessionFactory:
    """sqlite3 で接続し、SQLite 用のファクトリを返す."""
    import sqlite3

    return SessionFactory.from_connection(sqlite3.connect(database), config=config)
