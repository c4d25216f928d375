"""create_mapper ファクトリ関数と ManualMapper."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import is_dataclass
from typing import Any

from sqlsession.exceptions import MappingError
from sqlsession.mapper.protocol import RowMapper
from sqlsession.mapper.record import is_pydantic_model


class ManualMapper:
    """行辞書を受け取る関数を RowMapper として扱うアダプタ."""

    def __init__(self, func: Callable[[dict[str, Any]], Any]) -> None:
        self._func = func

    def map_row(self, row: dict[str, Any]) -> Any:
        return self._func(row)

    def map_rows(self, rows: list[dict[str, Any]]) -> list[Any]:
        return list(map(self._func, rows))


def create_mapper(
    entity_cls: type,
    *,
    mapper: RowMapper[Any] | Callable[[dict[str, Any]], Any] | None = None,
) -> RowMapper[Any]:
    """as_record / as_record_list が使うマッパーを決める.

    mapper を渡した場合はそれを優先し、entity_cls は検査しない。
    省略時は entity_cls が dataclass か Pydantic BaseModel でなければならない。

    Raises:
        MappingError: entity_cls がレコード型でなく、mapper も省略された場合

    """
    if isinstance(mapper, RowMapper):
        return mapper
    if mapper is not None and callable(mapper):
        return ManualMapper(mapper)

    if isinstance(entity_cls, type) and is_dataclass(entity_cls):
        from sqlsession.mapper.dataclass import DataclassMapper

        return DataclassMapper(entity_cls)

    if is_pydantic_model(entity_cls):
        from sqlsession.mapper.pydantic import PydanticMapper

        return PydanticMapper(entity_cls)

    msg = f"Cannot create mapper for {entity_cls!r}: not a dataclass or Pydantic BaseModel"
    raise MappingError(msg)
