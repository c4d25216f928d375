"""MySqlSession: MySQL 系（MySQL / SQLite）のセッション."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlsession.dialect import Dialect
from sqlsession.exceptions import SqlSessionError
from sqlsession.session import BaseSqlSession

if TYPE_CHECKING:
    from sqlsession.db import DbSession
    from sqlsession.deadline import Deadline


class MySqlSession(BaseSqlSession):
    """MySQL 系の方言で SQL を描画・実行するセッション.

    動的プレースホルダは無名の位置マーカー（MySQL は ``%s``、SQLite は ``?``）に置換する。
    自動生成 ID はドライバの ``lastrowid`` から取得する。
    """

    default_dialect = Dialect.MYSQL

    def __init__(
        self,
        db: DbSession,
        dialect: Dialect | None = None,
        *,
        log_sql: bool = False,
    ) -> None:
        if dialect is not None and dialect.family != "mysql":
            msg = f"MySqlSession does not support {dialect.name}"
            raise ValueError(msg)
        super().__init__(db, dialect, log_sql=log_sql)

    def _literal(self, text: str, has_args: bool) -> str:
        # pymysql は引数がある場合だけ sql % args で展開する
        if has_args and self.dialect.percent_is_format:
            return text.replace("%", "%%")
        return text

    def execute_for_generated_id(self, column: str = "id", *, deadline: Deadline | None = None) -> int:
        """INSERT を実行し、``lastrowid`` を返す。column は使用しない."""
        sql, args = self._prepare()
        result = self.db.exec(sql, args, deadline=deadline)
        if result.last_insert_id is None:
            msg = "driver did not report lastrowid"
            raise SqlSessionError(msg)
        return result.last_insert_id
