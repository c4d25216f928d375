"""Dialect enum: RDBMS ごとの SQL 方言定義."""

from __future__ import annotations

from enum import Enum
from typing import Any


class Dialect(Enum):
    """RDBMS ごとの SQL 方言.

    SQLITE と MYSQL は同じ系統（位置指定の無名マーカー、lastrowid による ID 取得）に属し、
    POSTGRESQL は番号付きマーカー ``$1, $2, ...`` と ``RETURNING`` 句を使う。
    """

    SQLITE = ("sqlite", "?")
    MYSQL = ("mysql", "%s")
    POSTGRESQL = ("postgresql", "$n")

    def __init__(self, dialect_id: str, placeholder_fmt: str) -> None:
        self._dialect_id = dialect_id
        self._placeholder_fmt = placeholder_fmt

    @property
    def dialect_id(self) -> str:
        """方言 ID を返す."""
        return self._dialect_id

    @property
    def placeholder(self) -> str:
        """プレースホルダ文字列を返す."""
        return self._placeholder_fmt

    @property
    def numbered(self) -> bool:
        """プレースホルダが番号付き（``$1``）かどうか."""
        return self is Dialect.POSTGRESQL

    @property
    def family(self) -> str:
        """方言の系統を返す.

        Returns:
            ``"mysql"`` または ``"postgresql"``
        """
        match self:
            case Dialect.POSTGRESQL:
                return "postgresql"
            case _:
                return "mysql"

    @property
    def percent_is_format(self) -> bool:
        """ドライバが ``%`` を書式指定として解釈するか.

        pymysql は引数がある場合に ``sql % args`` で展開するため、
        リテラルの ``%`` を ``%%`` にする必要がある。
        """
        return self._placeholder_fmt == "%s"

    def marker(self, index: int) -> str:
        """index 番目（0 始まり）の位置パラメータマーカーを返す."""
        if self.numbered:
            return f"${index + 1}"
        return self._placeholder_fmt


def detect_dialect(connection: Any) -> Dialect | None:
    """Connection オブジェクトから Dialect を自動検出する."""
    module = type(connection).__module__
    if "sqlite3" in module:
        return Dialect.SQLITE
    if "psycopg" in module:
        return Dialect.POSTGRESQL
    if "pymysql" in module:
        return Dialect.MYSQL
    return None
