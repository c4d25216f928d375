"""PostgreSqlSession: PostgreSQL のセッション."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlsession.dialect import Dialect
from sqlsession.session import BaseSqlSession

if TYPE_CHECKING:
    from sqlsession.db import DbSession
    from sqlsession.deadline import Deadline


class PostgreSqlSession(BaseSqlSession):
    """PostgreSQL の方言で SQL を描画・実行するセッション.

    動的プレースホルダは出現順に ``$1, $2, ...`` へ置換する。psycopg では
    ``RawCursor`` を使う接続で実行すること。
    自動生成 ID は ``RETURNING`` 句を付けて最初の行から読み取る。
    """

    default_dialect = Dialect.POSTGRESQL

    def __init__(
        self,
        db: DbSession,
        dialect: Dialect | None = None,
        *,
        log_sql: bool = False,
    ) -> None:
        if dialect is not None and dialect.family != "postgresql":
            msg = f"PostgreSqlSession does not support {dialect.name}"
            raise ValueError(msg)
        super().__init__(db, dialect, log_sql=log_sql)

    def execute_for_generated_id(self, column: str = "id", *, deadline: Deadline | None = None) -> int:
        """``RETURNING column`` を付けて INSERT を実行し、生成された値を返す.

        Raises:
            NoRowsError: 行が返らなかった場合

        """
        sql, args = self._prepare(f"\n RETURNING {column}")
        _, row = self.db.query_row(sql, args, deadline=deadline)
        return row[0]
