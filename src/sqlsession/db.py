"""DbSession: DB-API 2.0 接続をラップする DB ハンドル."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from sqlsession.dialect import Dialect, detect_dialect
from sqlsession.exceptions import NoRowsError

if TYPE_CHECKING:
    from sqlsession.deadline import Deadline

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ExecResult:
    """更新系 SQL の実行結果."""

    rows_affected: int
    last_insert_id: int | None = None


@dataclass
class ResultSet:
    """検索系 SQL の実行結果."""

    columns: list[str] = field(default_factory=list)
    rows: list[tuple[Any, ...]] = field(default_factory=list)

    def as_dicts(self) -> list[dict[str, Any]]:
        """各行をカラム順の辞書にする."""
        return [dict(zip(self.columns, row)) for row in self.rows]


@runtime_checkable
class ConnectionSource(Protocol):
    """接続の供給元（``psycopg_pool.ConnectionPool`` と同じインターフェース）."""

    def connection(self) -> AbstractContextManager[Any]:
        """接続を貸し出すコンテキストマネージャを返す."""
        ...


class DirectConnection:
    """単一の DB-API 接続を ConnectionSource として扱うアダプタ."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """常に同じ接続を貸し出す."""
        yield self._connection

    def close(self) -> None:
        self._connection.close()


class DbSession(ABC):
    """DB ハンドルの基底クラス.

    サブクラスは ``_borrow()`` で実行に使う接続を供給する。
    """

    auto_commit = False

    @abstractmethod
    def _borrow(self) -> AbstractContextManager[Any]:
        """実行に使う接続を貸し出す."""

    def exec(
        self,
        sql: str,
        args: Sequence[Any] = (),
        *,
        deadline: Deadline | None = None,
    ) -> ExecResult:
        """更新系 SQL を実行する.

        Returns:
            影響行数と自動生成 ID（lastrowid）

        """
        return self._call(
            sql,
            args,
            deadline,
            lambda cursor: ExecResult(
                rows_affected=cursor.rowcount,
                last_insert_id=getattr(cursor, "lastrowid", None),
            ),
        )

    def query(
        self,
        sql: str,
        args: Sequence[Any] = (),
        *,
        deadline: Deadline | None = None,
    ) -> ResultSet:
        """検索系 SQL を実行し、全行を返す."""
        return self._call(sql, args, deadline, _fetch)

    def _call(
        self,
        sql: str,
        args: Sequence[Any],
        deadline: Deadline | None,
        read: Callable[[Any], T],
    ) -> T:
        """カーソルで SQL を実行し、read の結果を返す.

        deadline が切れると実行中の SQL をドライバ経由で中断する。
        auto_commit の場合、期限切れやエラーでは commit せず rollback する。
        """
        _check(deadline)
        with self._borrow() as conn:
            try:
                with _aborting(conn, deadline):
                    cursor = conn.cursor()
                    try:
                        _execute(cursor, sql, args)
                        result = read(cursor)
                    finally:
                        cursor.close()
                _check(deadline)
            except BaseException as exc:
                if self.auto_commit:
                    _rollback(conn, exc)
                raise
            if self.auto_commit:
                conn.commit()
        return result

    def query_row(
        self,
        sql: str,
        args: Sequence[Any] = (),
        *,
        deadline: Deadline | None = None,
    ) -> tuple[list[str], tuple[Any, ...]]:
        """検索系 SQL を実行し、最初の 1 行を返す.

        Returns:
            (カラム名のリスト, 行)

        Raises:
            NoRowsError: 結果が 0 件の場合

        """
        result = self.query(sql, args, deadline=deadline)
        if not result.rows:
            msg = "no rows in result set"
            raise NoRowsError(msg)
        return result.columns, result.rows[0]

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...

    @abstractmethod
    def in_tx(self, func: Callable[[], T]) -> T:
        """func をトランザクション内で実行する."""


class NonTxDbSession(DbSession):
    """トランザクションを張らない DbSession.

    呼び出しごとに接続を借り、実行後すぐに commit する。
    """

    auto_commit = True

    def __init__(self, source: ConnectionSource) -> None:
        self.source = source

    def _borrow(self) -> AbstractContextManager[Any]:
        return self.source.connection()

    def commit(self) -> None:
        """何もしない."""

    def rollback(self) -> None:
        """何もしない."""

    def in_tx(self, func: Callable[[], T]) -> T:
        """トランザクションなしで func を実行する."""
        return func()


class TxDbSession(DbSession):
    """1 つの接続上のトランザクションに束縛された DbSession."""

    def __init__(self, connection: Any) -> None:
        self.connection = connection

    @contextmanager
    def _borrow(self) -> Iterator[Any]:
        yield self.connection

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def in_tx(self, func: Callable[[], T]) -> T:
        """func を実行し、正常終了なら commit、例外なら rollback する.

        rollback 自体が失敗した場合は、その例外を元の例外に連鎖させて送出する。
        """
        try:
            result = func()
        except BaseException as exc:
            logger.warning("found error and rollback: %r", exc)
            try:
                self.rollback()
            except Exception as rollback_exc:
                raise rollback_exc from exc
            raise
        logger.info("commit")
        self.commit()
        return result


def _check(deadline: Deadline | None) -> None:
    if deadline is not None:
        deadline.check()


def _execute(cursor: Any, sql: str, args: Sequence[Any]) -> None:
    # 引数なしで args を渡すと pymysql が "%" を書式として解釈するため分ける
    if args:
        cursor.execute(sql, list(args))
    else:
        cursor.execute(sql)


def _fetch(cursor: Any) -> ResultSet:
    if cursor.description is None:
        return ResultSet()
    columns = [desc[0] for desc in cursor.description]
    rows = [_as_tuple(row, columns) for row in cursor.fetchall()]
    return ResultSet(columns=columns, rows=rows)


def _as_tuple(row: Any, columns: list[str]) -> tuple[Any, ...]:
    """dict_row / DictCursor の行もタプルにそろえる."""
    if isinstance(row, Mapping):
        return tuple(row[c] for c in columns)
    return tuple(row)


def abort_statement(connection: Any) -> None:
    """接続で実行中の SQL をドライバの機能で中断する.

    別スレッドから呼ばれる前提。中断された側のカーソルはドライバ固有の例外を送出する。
    """
    match detect_dialect(connection):
        case Dialect.SQLITE:
            connection.interrupt()
        case Dialect.POSTGRESQL:
            connection.cancel_safe()
        case Dialect.MYSQL:
            _kill_mysql_query(connection)
        case _:
            logger.debug("cannot abort statement on %s", type(connection).__name__)


def _kill_mysql_query(connection: Any) -> None:
    """別接続から KILL QUERY を発行する（実行中の接続はブロックしているため）."""
    import pymysql

    killer = pymysql.connect(
        host=connection.host,
        port=connection.port,
        user=connection.user,
        password=connection.password,
        unix_socket=connection.unix_socket,
        connect_timeout=5,
    )
    try:
        with killer.cursor() as cursor:
            cursor.execute(f"KILL QUERY {int(connection.thread_id())}")
    finally:
        killer.close()


@contextmanager
def _aborting(conn: Any, deadline: Deadline | None) -> Iterator[None]:
    """ブロック実行中に deadline が切れたら SQL を中断し、SqlCancelledError に変換する."""
    if deadline is None:
        yield
        return
    with deadline.watch(lambda: abort_statement(conn)):
        try:
            yield
        except Exception as exc:
            error = deadline.error()
            if error is None:
                raise
            raise error from exc


def _rollback(conn: Any, exc: BaseException) -> None:
    try:
        conn.rollback()
    except Exception as rollback_exc:
        raise rollback_exc from exc
