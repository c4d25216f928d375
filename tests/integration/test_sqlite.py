"""SQLite 統合テスト: 組み立て → DB 実行 → マッピングの一連フロー検証."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Annotated

import pytest

from sqlsession import (
    BaseSqlSession,
    Column,
    Deadline,
    Embedded,
    NoRowsError,
    SessionFactory,
    UnconditionalMutationError,
    connect_sqlite,
    entity,
)


@dataclass
class Employee:
    """テスト用エンティティ."""

    id: int
    name: str
    dept_id: int | None = None


@dataclass
class Dept:
    """部署."""

    dept_name: str


@dataclass
class EmployeeWithDept:
    """部署を埋め込んだエンティティ."""

    id: Annotated[int, Column("emp_id")]
    name: str
    dept: Annotated[Dept | None, Embedded()] = None


@entity(naming="snake_to_camel")
@dataclass
class CamelEmployee:
    """CamelCase カラム名のエンティティ."""

    emp_id: int
    emp_name: str


@pytest.fixture
def factory() -> Iterator[SessionFactory]:
    """テスト用テーブルを作成し、テストデータを投入する."""
    factory = connect_sqlite()
    factory.do(
        lambda s, d: s.append_raw(
            "CREATE TABLE employees (id INTEGER PRIMARY KEY, name TEXT NOT NULL, dept_id INTEGER)"
        ).execute()
    )
    factory.do(
        lambda s, d: s.append_raw("CREATE TABLE depts (id INTEGER PRIMARY KEY, dept_name TEXT)").execute()
    )
    factory.do(
        lambda s, d: s.insert_into("employees")
        .into_columns("id", "name", "dept_id")
        .into_multi_values([[1, "Alice", 10], [2, "Bob", 20], [3, "Charlie", 10], [4, "Diana", None]])
        .execute()
    )
    factory.do(
        lambda s, d: s.insert_into("depts")
        .into_columns("id", "dept_name")
        .into_multi_values([[10, "Sales"], [20, "Dev"]])
        .execute()
    )
    try:
        yield factory
    finally:
        factory.source.close()


class TestSelect:
    """SELECT の実行."""

    def test_as_record_list(self, factory: SessionFactory) -> None:
        """条件に一致する行をエンティティのリストで取得する."""
        rows = factory.do(
            lambda s, d: s.select("*").from_("employees").where("dept_id = #{dept}", 10).order_by("id").as_record_list(Employee)
        )
        assert rows == [Employee(1, "Alice", 10), Employee(3, "Charlie", 10)]

    def test_or_conditions(self, factory: SessionFactory) -> None:
        """OR で条件のグループをつなぐ."""
        names = factory.do(
            lambda s, d: s.select("name")
            .from_("employees")
            .where("dept_id = #{a}", 20)
            .or_()
            .where("dept_id IS NULL")
            .order_by("id")
            .as_scalar_list(str)
        )
        assert names == ["Bob", "Diana"]

    def test_selective_and_in(self, factory: SessionFactory) -> None:
        """指定なしの条件は省かれ、IN は値の数だけ展開される."""
        ids = factory.do(
            lambda s, d: s.select("id")
            .from_("employees")
            .where_selective("name = #{name}", "")
            .in_("id", [2, 3, 4])
            .order_by("id")
            .limit(2)
            .as_scalar_list(int)
        )
        assert ids == [2, 3]

    def test_embedded_join(self, factory: SessionFactory) -> None:
        """JOIN した列を埋め込みレコードにマッピングする."""
        rows = factory.do(
            lambda s, d: s.select("e.id AS emp_id", "e.name", "d.dept_name")
            .from_("employees e")
            .left_outer_join("depts d ON d.id = e.dept_id")
            .where("e.id IN (#{a}, #{b})", 1, 4)
            .order_by("e.id")
            .as_record_list(EmployeeWithDept)
        )
        assert rows[0] == EmployeeWithDept(id=1, name="Alice", dept=Dept("Sales"))
        # LEFT JOIN で NULL でもカラム自体はあるので埋め込みは生成される
        assert rows[1].dept == Dept(None)  # type: ignore[arg-type]

    def test_naming(self, factory: SessionFactory) -> None:
        """命名規則で camelCase の別名をフィールドに対応させる."""
        emp = factory.do(
            lambda s, d: s.select("id AS empId", "name AS empName")
            .from_("employees")
            .where("id = #{id}", 2)
            .as_record(CamelEmployee)
        )
        assert emp == CamelEmployee(emp_id=2, emp_name="Bob")

    def test_as_map(self, factory: SessionFactory) -> None:
        """1 行をカラム順の辞書で取得する."""
        row = factory.do(lambda s, d: s.select("name", "id").from_("employees").where("id = #{id}", 1).as_map())
        assert list(row.items()) == [("name", "Alice"), ("id", 1)]

    def test_no_rows(self, factory: SessionFactory) -> None:
        """0 件の単一行取得は NoRowsError."""
        with pytest.raises(NoRowsError):
            factory.do(lambda s, d: s.select("*").from_("employees").where("id = #{id}", 99).as_record(Employee))

    def test_group_by_having(self, factory: SessionFactory) -> None:
        """GROUP BY / HAVING."""
        rows = factory.do(
            lambda s, d: s.select("dept_id", "count(*) AS cnt")
            .from_("employees")
            .group_by("dept_id")
            .having("count(*) > #{n}", 1)
            .as_map_list()
        )
        assert rows == [{"dept_id": 10, "cnt": 2}]


class TestMutation:
    """INSERT / UPDATE / DELETE の実行."""

    def test_update_rows_affected(self, factory: SessionFactory) -> None:
        """影響行数を返す."""
        count = factory.do(
            lambda s, d: s.update("employees").set("dept_id", 30).where("dept_id = #{d}", 10).execute_for_rows_affected()
        )
        assert count == 2

    def test_delete_without_condition_rejected(self, factory: SessionFactory) -> None:
        """引数のない DELETE は拒否され、行は残る."""
        with pytest.raises(UnconditionalMutationError):
            factory.do(lambda s, d: s.delete_from("employees").execute_for_rows_affected())
        assert factory.do(lambda s, d: s.select("count(*)").from_("employees").as_scalar(int)) == 4

    def test_generated_id(self, factory: SessionFactory) -> None:
        """自動採番の ID を返す."""
        new_id = factory.do(lambda s, d: s.insert_into("employees").values("name", "Eve").execute_for_generated_id())
        assert new_id == 5

    def test_append_union(self, factory: SessionFactory) -> None:
        """別セッションの SQL を UNION でつなぐ."""

        def handler(session: BaseSqlSession, deadline: Deadline) -> list[str]:
            other = session.new().select("name").from_("employees").where("id = #{id}", 4)
            return (
                session.select("name")
                .from_("employees")
                .where("id = #{id}", 1)
                .append_raw("UNION ALL")
                .append(other)
                .as_scalar_list(str)
            )

        assert factory.do(handler) == ["Alice", "Diana"]
