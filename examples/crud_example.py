#!/usr/bin/env python3
"""sqlsession CRUD Example.

This example demonstrates the basic usage of sqlsession:
- Entity definition (dataclass + Column / Embedded mapping)
- Fluent statement building with #{...} placeholders
- Selective conditions (zero values drop the condition)
- IN clause expansion and paging
- Transactions with SessionFactory.do_in_tx

Usage:
    uv run python examples/crud_example.py
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from sqlsession import (
    BaseSqlSession,
    Column,
    Deadline,
    Embedded,
    SessionFactory,
    SessionFactoryConfig,
    connect_sqlite,
)

# =============================================================================
# Entity Definition
# =============================================================================


@dataclass
class Department:
    """Department embedded in a user row."""

    department: str | None = None


@dataclass
class User:
    """User entity.

    Use Annotated[T, Column("DB_COLUMN_NAME")] to map a column to a field
    and Annotated[T, Embedded()] to decode part of the row into a sub record.
    """

    id: int
    name: str
    email: Annotated[str, Column("mail_address")]
    dept: Annotated[Department, Embedded()]


# =============================================================================
# Database Setup
# =============================================================================


def setup_database() -> SessionFactory:
    """Set up SQLite database for testing."""
    factory = connect_sqlite(config=SessionFactoryConfig(log_sql=True))

    factory.do(
        lambda s, d: s.append_raw(
            "CREATE TABLE users ("
            " id INTEGER PRIMARY KEY AUTOINCREMENT,"
            " name TEXT NOT NULL,"
            " mail_address TEXT NOT NULL UNIQUE,"
            " department TEXT)"
        ).execute()
    )
    factory.do(
        lambda s, d: s.insert_into("users")
        .into_columns("name", "mail_address", "department")
        .into_multi_values(
            [
                ["Tanaka Taro", "tanaka@example.com", "Sales"],
                ["Suzuki Hanako", "suzuki@example.com", "Development"],
                ["Sato Ichiro", "sato@example.com", "Sales"],
                ["Yamada Misaki", "yamada@example.com", None],
            ]
        )
        .execute()
    )
    return factory


# =============================================================================
# Queries
# =============================================================================


def find_users(factory: SessionFactory, department: str = "", name: str = "") -> list[User]:
    """Search users; empty arguments are ignored."""
    return factory.do(
        lambda s, d: s.select("id", "name", "mail_address", "department")
        .from_("users")
        .where_selective("department = #{department}", department)
        .where_selective("name LIKE #{name}", f"%{name}%" if name else "")
        .order_by("id")
        .as_record_list(User, deadline=d)
    )


def find_page(factory: SessionFactory, ids: list[int], page: int, size: int) -> list[str]:
    """Return one page of user names among the given ids."""
    return factory.do(
        lambda s, d: s.select("name")
        .from_("users")
        .in_("id", ids)
        .order_by("id")
        .limit(size)
        .offset(page * size)
        .as_scalar_list(str, deadline=d)
    )


def transfer(session: BaseSqlSession, deadline: Deadline) -> int:
    """Move every Sales user to Development inside one transaction."""
    return (
        session.update("users")
        .set("department", "Development")
        .where("department = #{department}", "Sales")
        .execute_for_rows_affected(deadline=deadline)
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    factory = setup_database()

    print("=== All users ===")
    for user in find_users(factory):
        print(f"  {user}")

    print("\n=== Sales users ===")
    for user in find_users(factory, department="Sales"):
        print(f"  {user.name} <{user.email}>")

    print("\n=== Page 1 of ids 1..4 (size 2) ===")
    print(f"  {find_page(factory, [1, 2, 3, 4], page=1, size=2)}")

    new_id = factory.do(
        lambda s, d: s.insert_into("users")
        .values("name", "Takahashi Jiro")
        .values("mail_address", "takahashi@example.com")
        .execute_for_generated_id(deadline=d)
    )
    print(f"\n=== Inserted user id: {new_id} ===")

    moved = factory.do_in_tx(transfer, timeout=5.0)
    print(f"\n=== Moved {moved} users to Development ===")


if __name__ == "__main__":
    main()
