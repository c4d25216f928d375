"""Statement: 句の断片を蓄積し SQL テキストを組み立てる."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sqlsession.exceptions import StatementError

AND = ") \nAND ("
OR = ") \nOR ("
_BOUNDARIES = (AND, OR)


class StatementType(Enum):
    """SQL コマンドの種類."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class LimitingRowsStrategy(Enum):
    """行数制限句の形式."""

    NOP = "nop"
    ISO = "iso"
    """``OFFSET n ROWS FETCH FIRST n ROWS ONLY``."""

    OFFSET_LIMIT = "offset_limit"
    """``LIMIT n OFFSET n``."""

    def append_clause(self, parts: list[str], offset: str, limit: str) -> None:
        """行数制限句を parts の末尾に追加する."""
        match self:
            case LimitingRowsStrategy.OFFSET_LIMIT:
                if limit:
                    parts.append(f" LIMIT {limit}")
                if offset:
                    parts.append(f" OFFSET {offset}")
            case LimitingRowsStrategy.ISO:
                if offset:
                    parts.append(f" OFFSET {offset} ROWS")
                if limit:
                    parts.append(f" FETCH FIRST {limit} ROWS ONLY")
            case _:
                pass


@dataclass
class Statement:
    """組み立て中の SQL 文 1 つ分.

    コマンド種別に関係しない句のリストは描画時に無視されるだけで消去されない。
    ``reset()`` で空の状態に戻る。
    """

    statement_type: StatementType | None = None
    distinct: bool = False
    selects: list[str] = field(default_factory=list)
    tables: list[str] = field(default_factory=list)
    join_list: list[str] = field(default_factory=list)
    inner_joins: list[str] = field(default_factory=list)
    outer_joins: list[str] = field(default_factory=list)
    left_outer_joins: list[str] = field(default_factory=list)
    right_outer_joins: list[str] = field(default_factory=list)
    wheres: list[str] = field(default_factory=list)
    havings: list[str] = field(default_factory=list)
    group_bys: list[str] = field(default_factory=list)
    order_bys: list[str] = field(default_factory=list)
    sets: list[str] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=lambda: [[]])
    offset_value: str = ""
    limit_value: str = ""
    limiting_rows_strategy: LimitingRowsStrategy = LimitingRowsStrategy.NOP
    _last_list: list[str] | None = field(default=None, repr=False)

    # --- コマンド種別 ---

    def _set_type(self, statement_type: StatementType) -> None:
        if self.statement_type is not None and self.statement_type is not statement_type:
            msg = (
                f"statement is already {self.statement_type.value.upper()}, "
                f"cannot change to {statement_type.value.upper()}"
            )
            raise StatementError(msg)
        self.statement_type = statement_type

    def select(self, *columns: str) -> None:
        self._set_type(StatementType.SELECT)
        self.selects.extend(columns)

    def select_distinct(self, *columns: str) -> None:
        self.distinct = True
        self.select(*columns)

    def insert_into(self, table: str) -> None:
        self._set_type(StatementType.INSERT)
        self.tables.append(table)

    def update(self, table: str) -> None:
        self._set_type(StatementType.UPDATE)
        self.tables.append(table)

    def delete_from(self, table: str) -> None:
        self._set_type(StatementType.DELETE)
        self.tables.append(table)

    # --- 句 ---

    def from_(self, *tables: str) -> None:
        self.tables.extend(tables)

    def join(self, *joins: str) -> None:
        self.join_list.extend(joins)

    def inner_join(self, *joins: str) -> None:
        self.inner_joins.extend(joins)

    def outer_join(self, *joins: str) -> None:
        self.outer_joins.extend(joins)

    def left_outer_join(self, *joins: str) -> None:
        self.left_outer_joins.extend(joins)

    def right_outer_join(self, *joins: str) -> None:
        self.right_outer_joins.extend(joins)

    def where(self, *conditions: str) -> None:
        self.wheres.extend(conditions)
        self._last_list = self.wheres

    def having(self, *conditions: str) -> None:
        self.havings.extend(conditions)
        self._last_list = self.havings

    def or_(self) -> None:
        """直前に追加した条件リスト（WHERE / HAVING）に OR 境界を挿入する."""
        self._predicates().append(OR)

    def and_(self) -> None:
        """直前に追加した条件リスト（WHERE / HAVING）に AND 境界を挿入する."""
        self._predicates().append(AND)

    def _predicates(self) -> list[str]:
        if self._last_list is None:
            self._last_list = self.wheres
        return self._last_list

    def group_by(self, *columns: str) -> None:
        self.group_bys.extend(columns)

    def order_by(self, *columns: str) -> None:
        self.order_bys.extend(columns)

    def set(self, *sets: str) -> None:
        self.sets.extend(sets)

    def values(self, columns: str, values: str) -> None:
        self.into_columns(columns)
        self.into_values(values)

    def into_columns(self, *columns: str) -> None:
        self.columns.extend(columns)

    def into_values(self, *values: str) -> None:
        self.rows[-1].extend(values)

    def add_row(self) -> None:
        """以降の into_values を新しい VALUES 行に追加する."""
        self.rows.append([])

    def limit(self, limit: int | str) -> None:
        self.limit_value = str(limit)
        self.limiting_rows_strategy = LimitingRowsStrategy.OFFSET_LIMIT

    def offset(self, offset: int | str) -> None:
        self.offset_value = str(offset)
        self.limiting_rows_strategy = LimitingRowsStrategy.OFFSET_LIMIT

    def fetch_first_rows_only(self, limit: int | str) -> None:
        self.limit_value = str(limit)
        self.limiting_rows_strategy = LimitingRowsStrategy.ISO

    def offset_rows(self, offset: int | str) -> None:
        self.offset_value = str(offset)
        self.limiting_rows_strategy = LimitingRowsStrategy.ISO

    def reset(self) -> None:
        """全ての句を破棄し、空の Statement に戻す."""
        blank = Statement()
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(blank, name))

    # --- 描画 ---

    def sql(self) -> str:
        """SQL テキストを組み立てる.

        Returns:
            SQL 文字列。コマンド種別が未設定なら空文字列。

        """
        parts: list[str] = []
        match self.statement_type:
            case StatementType.SELECT:
                self._select_sql(parts)
            case StatementType.DELETE:
                self._delete_sql(parts)
            case StatementType.INSERT:
                self._insert_sql(parts)
            case StatementType.UPDATE:
                self._update_sql(parts)
            case _:
                pass
        return "".join(parts)

    def __str__(self) -> str:
        return self.sql()

    def _select_sql(self, parts: list[str]) -> None:
        keyword = "SELECT DISTINCT" if self.distinct else "SELECT"
        _clause(parts, keyword, self.selects, "", "", ", ")
        _clause(parts, "FROM", self.tables, "", "", ", ")
        self._joins(parts)
        _clause(parts, "WHERE", self.wheres, "(", ")", " AND ")
        _clause(parts, "GROUP BY", self.group_bys, "", "", ", ")
        _clause(parts, "HAVING", self.havings, "(", ")", " AND ")
        _clause(parts, "ORDER BY", self.order_bys, "", "", ", ")
        self.limiting_rows_strategy.append_clause(parts, self.offset_value, self.limit_value)

    def _delete_sql(self, parts: list[str]) -> None:
        _clause(parts, "DELETE FROM", self.tables, "", "", "")
        _clause(parts, "WHERE", self.wheres, "(", ")", " AND ")
        self.limiting_rows_strategy.append_clause(parts, "", self.limit_value)

    def _insert_sql(self, parts: list[str]) -> None:
        _clause(parts, "INSERT INTO", self.tables, "", "", "")
        _clause(parts, "", self.columns, "(", ")", ", ")
        for i, row in enumerate(self.rows):
            keyword = "VALUES" if i == 0 else ","
            _clause(parts, keyword, row, "(", ")", ", ")

    def _update_sql(self, parts: list[str]) -> None:
        _clause(parts, "UPDATE", self.tables, "", "", "")
        self._joins(parts)
        _clause(parts, "SET", self.sets, "", "", ", ")
        _clause(parts, "WHERE", self.wheres, "(", ")", " AND ")
        self.limiting_rows_strategy.append_clause(parts, "", self.limit_value)

    def _joins(self, parts: list[str]) -> None:
        _clause(parts, "JOIN", self.join_list, "", "", "\nJOIN ")
        _clause(parts, "INNER JOIN", self.inner_joins, "", "", "\nINNER JOIN ")
        _clause(parts, "OUTER JOIN", self.outer_joins, "", "", "\nOUTER JOIN ")
        _clause(parts, "LEFT OUTER JOIN", self.left_outer_joins, "", "", "\nLEFT OUTER JOIN ")
        _clause(parts, "RIGHT OUTER JOIN", self.right_outer_joins, "", "", "\nRIGHT OUTER JOIN ")


def _clause(
    parts: list[str],
    keyword: str,
    fragments: list[str],
    open_: str,
    close: str,
    conjunction: str,
) -> None:
    """1 つの句を描画して parts に追加する.

    AND / OR 境界トークンの前後には conjunction を入れない。
    """
    if not fragments:
        return
    if parts:
        parts.append("\n")
    parts.append(f"{keyword} {open_}")
    last: str | None = None
    for i, fragment in enumerate(fragments):
        if i > 0 and fragment not in _BOUNDARIES and last not in _BOUNDARIES:
            parts.append(conjunction)
        parts.append(fragment)
        last = fragment
    parts.append(close)
