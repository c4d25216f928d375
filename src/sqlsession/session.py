"""SqlSession: 流れるような API で SQL を組み立てて実行する.

SqlSession はスレッドセーフではない。1 つの SQL 文につき 1 つのセッションを使い、
DB ハンドルだけを共有すること。
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Self, TypeVar, Union
from uuid import UUID

from sqlsession.dialect import Dialect
from sqlsession.exceptions import (
    ArgumentCountError,
    ParameterTypeError,
    StatementError,
    UnconditionalMutationError,
)
from sqlsession.mapper.factory import create_mapper
from sqlsession.mapper.scalar import ScalarMapper
from sqlsession.placeholder import DYNAMIC_SIGIL, INJECTED_SIGIL, get_placeholders, tokenize
from sqlsession.statement import Statement

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlsession.db import DbSession
    from sqlsession.deadline import Deadline
    from sqlsession.mapper.protocol import RowMapper

logger = logging.getLogger(__name__)

T = TypeVar("T")

SqlValue = Union[
    None, str, int, float, bool, Decimal, datetime, date, time, timedelta, bytes, UUID
]
SQL_VALUE_TYPES: tuple[type, ...] = (
    type(None),
    str,
    int,
    float,
    bool,
    Decimal,
    datetime,
    date,
    time,
    timedelta,
    bytes,
    UUID,
)


def is_not_zero(value: Any) -> bool:
    """値が「指定あり」とみなせるか.

    None、空文字列、0、False、空のコレクションは「指定なし」として扱う。
    ``*_selective`` 系メソッドの判定に使う。
    """
    if value is None:
        return False
    if isinstance(value, (bool, int, float, Decimal)):
        return value != 0
    if isinstance(value, (str, bytes, list, tuple, dict, set, frozenset)):
        return len(value) > 0
    return True


def log_sql(sql: str, args: Sequence[Any]) -> None:
    """実行する SQL とパラメータをログに出力する."""
    logger.info("----- SQL -----\n%s", sql)
    logger.info(
        "----- Parameter -----\n%s",
        ",".join(f"{arg}({type(arg).__name__})" for arg in args),
    )


class BaseSqlSession(ABC):
    """方言に依存しない SQL 組み立て・実行セッション.

    句を組み立てるメソッドはすべて self を返す。実行系メソッド（``execute``、
    ``as_*``）は SQL を確定させたあと、必ずセッションを初期状態に戻す。

    Examples:
        >>> users = (
        ...     session.select("id", "name")
        ...     .from_("users")
        ...     .where("status = #{status}", "active")
        ...     .order_by("id")
        ...     .as_record_list(User)
        ... )

    """

    default_dialect: Dialect = Dialect.MYSQL

    def __init__(
        self,
        db: DbSession,
        dialect: Dialect | None = None,
        *,
        log_sql: bool = False,
    ) -> None:
        """初期化.

        Args:
            db: SQL を実行する DB ハンドル（借用のみ）
            dialect: RDBMS 方言。None の場合はクラスの既定値
            log_sql: 実行する SQL をログに出力するか

        """
        self.db = db
        self.dialect = dialect if dialect is not None else self.default_dialect
        self._default_log_sql = log_sql
        self._log_sql = log_sql
        self._statement = Statement()
        self._params: dict[str, Any] = {}
        self._raw: list[str] = []

    # --- パラメータ ---

    @property
    def params(self) -> dict[str, Any]:
        """プレースホルダ → 値のマッピング（コピー）."""
        return dict(self._params)

    def _bind(self, token: str, value: Any) -> None:
        if not isinstance(value, SQL_VALUE_TYPES):
            msg = f"unsupported parameter type for {token}: {type(value).__name__}"
            raise ParameterTypeError(msg)
        self._params[token] = value

    def _next_token(self) -> str:
        """自動採番のプレースホルダ ``#{N}`` を返す（N は現在のマッピング数）."""
        return f"{DYNAMIC_SIGIL}{{{len(self._params)}}}"

    def _bind_next(self, value: Any) -> str:
        token = self._next_token()
        self._bind(token, value)
        return token

    def _bind_args(self, text: str, args: Sequence[Any]) -> None:
        """text 内のプレースホルダに args を出現順にバインドする."""
        if not args:
            return
        placeholders = get_placeholders(text)
        if len(args) != len(placeholders):
            msg = (
                f"the number of SQL parameters ({len(placeholders)}) "
                f"and args ({len(args)}) must be same: {text!r}"
            )
            raise ArgumentCountError(msg)
        for placeholder, arg in zip(placeholders, args):
            self._bind(placeholder, arg)

    def _fill(self, text: str, value: Any) -> None:
        for placeholder in get_placeholders(text):
            self._bind(placeholder, value)

    def add_param(self, param: str, value: Any) -> Self:
        """プレースホルダに値を個別に登録する.

        Args:
            param: ``#{name}`` / ``${name}`` 形式。記号なしの名前は ``#{name}`` とみなす
            value: 値

        """
        if not param.startswith((f"{DYNAMIC_SIGIL}{{", f"{INJECTED_SIGIL}{{")):
            param = f"{DYNAMIC_SIGIL}{{{param}}}"
        self._bind(param, value)
        return self

    def add_param_selective(self, param: str, value: Any) -> Self:
        """値が指定ありの場合だけ add_param する."""
        if is_not_zero(value):
            self.add_param(param, value)
        return self

    # --- SELECT ---

    def select(self, *columns: str) -> Self:
        self._statement.select(*columns)
        return self

    def select_distinct(self, *columns: str) -> Self:
        self._statement.select_distinct(*columns)
        return self

    def from_(self, *tables: str) -> Self:
        self._statement.from_(*tables)
        return self

    def join(self, *joins: str) -> Self:
        self._statement.join(*joins)
        return self

    def inner_join(self, *joins: str) -> Self:
        self._statement.inner_join(*joins)
        return self

    def inner_join_selective(self, join: str, condition: Any) -> Self:
        """condition が指定ありの場合だけ INNER JOIN を追加する."""
        if is_not_zero(condition):
            self._statement.inner_join(join)
        return self

    def left_outer_join(self, *joins: str) -> Self:
        self._statement.left_outer_join(*joins)
        return self

    def right_outer_join(self, *joins: str) -> Self:
        self._statement.right_outer_join(*joins)
        return self

    def outer_join(self, *joins: str) -> Self:
        self._statement.outer_join(*joins)
        return self

    def where(self, condition: str, *args: Any) -> Self:
        """WHERE 条件を追加する.

        args を指定する場合、condition 内のプレースホルダと同数でなければならない。

        Raises:
            ArgumentCountError: プレースホルダ数と args の数が異なる場合

        """
        self._bind_args(condition, args)
        self._statement.where(condition)
        return self

    def where_selective(self, condition: str, arg: Any) -> Self:
        """Arg が指定ありの場合だけ WHERE 条件を追加する.

        condition 内の全プレースホルダに arg をバインドする。
        """
        if is_not_zero(arg):
            self._fill(condition, arg)
            self._statement.where(condition)
        return self

    def in_(self, column: str, values: Iterable[Any]) -> Self:
        """``column IN (...)`` を WHERE に追加する。values が空なら何もしない."""
        return self._in(column, "IN", values)

    def not_in(self, column: str, values: Iterable[Any]) -> Self:
        """``column NOT IN (...)`` を WHERE に追加する。values が空なら何もしない."""
        return self._in(column, "NOT IN", values)

    def _in(self, column: str, operator: str, values: Iterable[Any]) -> Self:
        if isinstance(values, str | bytes | bytearray):
            msg = f"{operator} values for {column!r} must be a collection, not {type(values).__name__}"
            raise ParameterTypeError(msg)
        values = list(values) if values is not None else []
        if not values:
            return self
        tokens = [self._bind_next(v) for v in values]
        self._statement.where(f"{column} {operator} ({','.join(tokens)})")
        return self

    def or_(self) -> Self:
        self._statement.or_()
        return self

    def and_(self) -> Self:
        self._statement.and_()
        return self

    def group_by(self, *columns: str) -> Self:
        self._statement.group_by(*columns)
        return self

    def having(self, condition: str, *args: Any) -> Self:
        """HAVING 条件を追加する。args の扱いは where と同じ."""
        self._bind_args(condition, args)
        self._statement.having(condition)
        return self

    def order_by(self, *columns: str) -> Self:
        self._statement.order_by(*columns)
        return self

    def limit(self, limit: int) -> Self:
        self._statement.limit(self._bind_next(limit))
        return self

    def offset(self, offset: int) -> Self:
        self._statement.offset(self._bind_next(offset))
        return self

    def fetch_first_rows_only(self, limit: int) -> Self:
        self._statement.fetch_first_rows_only(self._bind_next(limit))
        return self

    def offset_rows(self, offset: int) -> Self:
        self._statement.offset_rows(self._bind_next(offset))
        return self

    # --- INSERT ---

    def insert_into(self, table: str) -> Self:
        self._statement.insert_into(table)
        return self

    def values(self, column: str, value: Any) -> Self:
        """カラムと値を 1 組追加する（プレースホルダは ``#{column}``）."""
        token = f"{DYNAMIC_SIGIL}{{{column}}}"
        self._bind(token, value)
        self._statement.values(column, token)
        return self

    def values_selective(self, column: str, value: Any) -> Self:
        if is_not_zero(value):
            self.values(column, value)
        return self

    def into_columns(self, *columns: str) -> Self:
        self._statement.into_columns(*columns)
        return self

    def into_values(self, *values: Any) -> Self:
        tokens = [self._bind_next(v) for v in values]
        self._statement.into_values(*tokens)
        return self

    def into_multi_values(self, rows: Iterable[Sequence[Any]]) -> Self:
        """複数行の VALUES を追加する.

        Examples:
            >>> session.insert_into("a").into_columns("id", "name").into_multi_values(
            ...     [[1, "a"], [2, "b"]]
            ... )
            # INSERT INTO a (id, name) VALUES (?, ?) , (?, ?)

        """
        if rows is None:
            return self
        for index, row in enumerate(rows):
            tokens = [self._bind_next(v) for v in row]
            if index > 0:
                self._statement.add_row()
            self._statement.into_values(*tokens)
        return self

    # --- UPDATE / DELETE ---

    def update(self, table: str) -> Self:
        self._statement.update(table)
        return self

    def set(self, column: str, value: Any) -> Self:
        """``column = #{column}`` を SET 句に追加する."""
        token = f"{DYNAMIC_SIGIL}{{{column}}}"
        self._statement.set(f"{column} = {token}")
        self._bind(token, value)
        return self

    def set_selective(self, column: str, value: Any) -> Self:
        if is_not_zero(value):
            self.set(column, value)
        return self

    def delete_from(self, table: str) -> Self:
        self._statement.delete_from(table)
        return self

    # --- 生 SQL ---

    def append_raw(self, sql: str, *args: Any) -> Self:
        """組み立てた SQL の後ろに生の SQL を追加する。args の扱いは where と同じ."""
        self._bind_args(sql, args)
        self._raw.append(sql)
        return self

    def append(self, other: BaseSqlSession) -> Self:
        """別セッションで組み立てた SQL を後ろに追加する.

        other の動的プレースホルダはこのセッションの採番で付け直し、
        埋め込みプレースホルダは値を展開する。other は変更しない。
        """
        text = other.sql_text()
        pieces: list[str] = []
        pos = 0
        for token in tokenize(text):
            pieces.append(text[pos : token.start])
            value = other._lookup(token.text)
            if token.dynamic:
                pieces.append(self._bind_next(value))
            else:
                pieces.append(str(value))
            pos = token.end
        pieces.append(text[pos:])
        self._raw.append("".join(pieces))
        return self

    # --- 状態 ---

    def log_sql(self, enabled: bool) -> Self:
        """SQL をログに出力するか。実行系メソッドの前に呼ぶこと."""
        self._log_sql = enabled
        return self

    def reset(self) -> Self:
        """組み立て中の SQL とパラメータを破棄して再利用できる状態に戻す."""
        self._statement.reset()
        self._params = {}
        self._raw = []
        self._log_sql = self._default_log_sql
        return self

    def new(self) -> Self:
        """同じ DB ハンドル・方言で新しいセッションを作る."""
        return type(self)(self.db, self.dialect, log_sql=self._default_log_sql)

    def sql_text(self) -> str:
        """プレースホルダを含んだままの SQL テキストを返す."""
        return "\n".join(part for part in (self._statement.sql(), *self._raw) if part)

    def _lookup(self, token: str) -> Any:
        try:
            return self._params[token]
        except KeyError:
            msg = f"no value bound for placeholder {token}"
            raise StatementError(msg) from None

    # --- 方言ごとの描画 ---

    def _marker(self, index: int) -> str:
        """index 番目（0 始まり）の動的パラメータのマーカー."""
        return self.dialect.marker(index)

    def _literal(self, text: str, has_args: bool) -> str:
        """SQL にそのまま出力するテキストを方言に合わせて加工する."""
        return text

    def build(self) -> tuple[str, list[Any]]:
        """SQL テキストと位置パラメータのリストを確定させる.

        動的プレースホルダは出現順にマーカーへ置換され、引数の位置も出現順で決まる。
        埋め込みプレースホルダは値の文字列表現で置換される（エスケープしない）。

        Raises:
            StatementError: 値が登録されていないプレースホルダがある場合

        """
        text = self.sql_text()
        tokens = tokenize(text)
        has_args = any(t.dynamic for t in tokens)
        pieces: list[str] = []
        args: list[Any] = []
        pos = 0
        for token in tokens:
            pieces.append(self._literal(text[pos : token.start], has_args))
            value = self._lookup(token.text)
            if token.dynamic:
                pieces.append(self._marker(len(args)))
                args.append(value)
            else:
                pieces.append(self._literal(str(value), has_args))
            pos = token.end
        pieces.append(self._literal(text[pos:], has_args))
        return "".join(pieces), args

    # --- 実行 ---

    def _prepare(self, suffix: str = "") -> tuple[str, list[Any]]:
        """SQL を確定させ、ログ出力してからセッションをリセットする."""
        sql, args = self.build()
        sql += suffix
        if self._log_sql:
            log_sql(sql, args)
        self.reset()
        return sql, args

    def execute(self, *, deadline: Deadline | None = None) -> None:
        """SQL を実行する（結果は受け取らない）."""
        sql, args = self._prepare()
        self.db.exec(sql, args, deadline=deadline)

    @abstractmethod
    def execute_for_generated_id(self, column: str = "id", *, deadline: Deadline | None = None) -> int:
        """INSERT を実行し、自動生成された ID を返す."""

    def execute_for_rows_affected(self, *, deadline: Deadline | None = None) -> int:
        """UPDATE / DELETE を実行し、影響行数を返す.

        Raises:
            UnconditionalMutationError: バインドされたパラメータが 1 つもない場合

        """
        sql, args = self._prepare()
        if not args:
            msg = "a WHERE condition with bound parameters is required"
            raise UnconditionalMutationError(msg)
        return self.db.exec(sql, args, deadline=deadline).rows_affected

    def as_record(
        self,
        entity: type[T],
        *,
        mapper: RowMapper[T] | Callable[..., T] | None = None,
        deadline: Deadline | None = None,
    ) -> T:
        """SELECT を実行し、最初の1行をエンティティで返す.

        Raises:
            MappingError: entity がレコード型でない場合（DB 呼び出し前）
            NoRowsError: 結果が 0 件の場合

        """
        row_mapper = create_mapper(entity, mapper=mapper)
        sql, args = self._prepare()
        columns, row = self.db.query_row(sql, args, deadline=deadline)
        return row_mapper.map_row(dict(zip(columns, row)))

    def as_record_list(
        self,
        entity: type[T],
        *,
        mapper: RowMapper[T] | Callable[..., T] | None = None,
        deadline: Deadline | None = None,
    ) -> list[T]:
        """SELECT を実行し、結果をエンティティのリストで返す."""
        row_mapper = create_mapper(entity, mapper=mapper)
        sql, args = self._prepare()
        result = self.db.query(sql, args, deadline=deadline)
        return row_mapper.map_rows(result.as_dicts())

    def as_scalar(self, scalar_type: type[T], *, deadline: Deadline | None = None) -> T:
        """SELECT を実行し、最初の行の先頭カラムを返す.

        Raises:
            MappingError: scalar_type がプリミティブ型でない場合（DB 呼び出し前）
            NoRowsError: 結果が 0 件の場合

        """
        value_mapper = ScalarMapper(scalar_type)
        sql, args = self._prepare()
        _, row = self.db.query_row(sql, args, deadline=deadline)
        return value_mapper.map_value(row[0])

    def as_scalar_list(self, scalar_type: type[T], *, deadline: Deadline | None = None) -> list[T]:
        """SELECT を実行し、各行の先頭カラムをリストで返す."""
        value_mapper = ScalarMapper(scalar_type)
        sql, args = self._prepare()
        result = self.db.query(sql, args, deadline=deadline)
        return [value_mapper.map_value(row[0]) for row in result.rows]

    def as_map(self, *, deadline: Deadline | None = None) -> dict[str, Any]:
        """SELECT を実行し、最初の行をカラム順の辞書で返す.

        Raises:
            NoRowsError: 結果が 0 件の場合

        """
        sql, args = self._prepare()
        columns, row = self.db.query_row(sql, args, deadline=deadline)
        return dict(zip(columns, row))

    def as_map_list(self, *, deadline: Deadline | None = None) -> list[dict[str, Any]]:
        """SELECT を実行し、各行をカラム順の辞書で返す."""
        sql, args = self._prepare()
        return self.db.query(sql, args, deadline=deadline).as_dicts()
