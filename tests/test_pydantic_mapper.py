"""PydanticMapper のテスト."""

from __future__ import annotations

from typing import Annotated

import pytest
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from sqlsession.exceptions import MappingError
from sqlsession.mapper.column import Column, entity
from sqlsession.mapper.protocol import RowMapper
from sqlsession.mapper.pydantic import PydanticMapper


class User(BaseModel):
    """テスト用基本モデル."""

    id: int
    name: str


class Employee(BaseModel):
    """Annotated カラム付きモデル."""

    id: Annotated[int, Column("EMP_ID")]
    dept_id: int | None = None


class Account(BaseModel):
    """alias 付きモデル."""

    user_id: int = Field(alias="USER_ID")
    name: str
    code: Annotated[str, Column("ACCOUNT_CODE")] = Field(default="", alias="accountCode")


class Product(BaseModel):
    """alias_generator 付きモデル."""

    model_config = ConfigDict(alias_generator=to_pascal)

    product_id: int
    unit_price: int


@entity(column_map={"name": "full_name"})
class Member(BaseModel):
    """column_map 付きモデル."""

    id: int
    name: str


class TestPydanticMapperBasic:
    """PydanticMapper の基本動作."""

    def test_map_row(self) -> None:
        """行辞書から Pydantic モデルインスタンスを生成する."""
        assert PydanticMapper(User).map_row({"id": 1, "name": "Alice"}) == User(id=1, name="Alice")

    def test_map_rows(self) -> None:
        """複数行を変換する."""
        users = PydanticMapper(User).map_rows([{"id": 1, "name": "A"}, {"id": 2, "name": "B"}])
        assert users == [User(id=1, name="A"), User(id=2, name="B")]

    def test_satisfies_row_mapper_protocol(self) -> None:
        """RowMapper プロトコルを満たす."""
        assert isinstance(PydanticMapper(User), RowMapper)

    def test_non_base_model(self) -> None:
        """BaseModel でないクラスを渡すと MappingError."""

        class NotPydantic:
            pass

        with pytest.raises(MappingError):
            PydanticMapper(NotPydantic)


class TestPydanticMapperValidation:
    """Pydantic のバリデーション."""

    def test_type_coercion(self) -> None:
        """Pydantic の型変換が動作する."""
        user = PydanticMapper(User).map_row({"id": "42", "name": "Alice"})
        assert user.id == 42

    def test_validation_error_becomes_mapping_error(self) -> None:
        """不正な値は MappingError になる."""
        with pytest.raises(MappingError):
            PydanticMapper(User).map_row({"id": "not_a_number", "name": "Alice"})


class TestPydanticColumnResolution:
    """Pydantic モデルのカラム名の決定."""

    def test_annotated_column(self) -> None:
        """Annotated の Column を使う."""
        emp = PydanticMapper(Employee).map_row({"EMP_ID": 3, "dept_id": 10})
        assert emp == Employee(id=3, dept_id=10)

    def test_optional_missing(self) -> None:
        """カラムがなければデフォルト値."""
        assert PydanticMapper(Employee).map_row({"EMP_ID": 3}).dept_id is None

    def test_column_map(self) -> None:
        """@entity の column_map を使う."""
        assert PydanticMapper(Member).map_row({"id": 1, "full_name": "A B"}) == Member(id=1, name="A B")

    def test_field_alias(self) -> None:
        """Field の alias をカラム名にする."""
        account = PydanticMapper(Account).map_row({"USER_ID": 1, "name": "a"})
        assert account.user_id == 1
        assert account.name == "a"

    def test_field_alias_case_insensitive(self) -> None:
        """alias のカラムも大文字小文字を区別せず一致する."""
        assert PydanticMapper(Account).map_row({"user_id": 2, "name": "b"}).user_id == 2

    def test_annotated_column_over_alias(self) -> None:
        """Annotated の Column は alias より優先される."""
        account = PydanticMapper(Account).map_row({"USER_ID": 1, "name": "a", "ACCOUNT_CODE": "x"})
        assert account.code == "x"

    def test_alias_generator(self) -> None:
        """alias_generator で生成された alias をカラム名にする."""
        product = PydanticMapper(Product).map_row({"ProductId": 5, "UnitPrice": 100})
        assert (product.product_id, product.unit_price) == (5, 100)
