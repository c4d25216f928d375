"""RowMapper / ValueMapper プロトコル定義."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class RowMapper(Protocol[T]):
    """行をレコードに変換するマッパーのインターフェース.

    row はカラム名をキーとし、結果セットのカラム順に並んだ辞書。
    """

    def map_row(self, row: dict[str, Any]) -> T:
        """1行をエンティティに変換."""
        ...

    def map_rows(self, rows: list[dict[str, Any]]) -> list[T]:
        """複数行をエンティティのリストに変換."""
        ...


@runtime_checkable
class ValueMapper(Protocol[T]):
    """単一カラムの値をプリミティブ型に変換するマッパーのインターフェース."""

    def map_value(self, value: Any) -> T | None:
        """DB から返った値を変換."""
        ...
