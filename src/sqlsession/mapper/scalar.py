"""ScalarMapper: プリミティブ型用のマッパー."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID

from pydantic import ConfigDict, TypeAdapter, ValidationError

from sqlsession.exceptions import MappingError
from sqlsession.mapper.record import unwrap_optional

PRIMITIVE_TYPES: tuple[type, ...] = (
    bool,
    int,
    float,
    str,
    bytes,
    Decimal,
    datetime,
    date,
    time,
    timedelta,
    UUID,
)


def is_primitive_type(tp: Any) -> bool:
    """スカラー値として受け取れる型か（``T | None`` も可）."""
    inner, _ = unwrap_optional(tp)
    return isinstance(inner, type) and issubclass(inner, PRIMITIVE_TYPES)


class ScalarMapper:
    """プリミティブ型用のマッパー.

    値の変換は ``pydantic.TypeAdapter`` に任せる。NULL は常に None のまま返す。
    """

    _adapter_cache: ClassVar[dict[Any, TypeAdapter[Any]]] = {}

    def __init__(self, scalar_type: Any) -> None:
        if not is_primitive_type(scalar_type):
            msg = f"{scalar_type!r} is not a primitive type"
            raise MappingError(msg)
        self.scalar_type = scalar_type
        self._adapter = self._get_adapter(scalar_type)

    @classmethod
    def _get_adapter(cls, scalar_type: Any) -> TypeAdapter[Any]:
        if scalar_type not in cls._adapter_cache:
            # COUNT(*) などの数値を str で受け取れるようにする
            config = ConfigDict(coerce_numbers_to_str=True)
            cls._adapter_cache[scalar_type] = TypeAdapter(scalar_type, config=config)
        return cls._adapter_cache[scalar_type]

    def map_value(self, value: Any) -> Any:
        """DB から返った値を変換."""
        if value is None:
            return None
        try:
            return self._adapter.validate_python(value)
        except ValidationError as e:
            msg = f"Cannot convert {value!r} to {self.scalar_type!r}: {e}"
            raise MappingError(msg) from e

    def map_row(self, row: dict[str, Any]) -> Any:
        """1行の先頭カラムを変換."""
        if not row:
            msg = "row has no columns"
            raise MappingError(msg)
        return self.map_value(next(iter(row.values())))

    def map_rows(self, rows: list[dict[str, Any]]) -> list[Any]:
        """複数行の先頭カラムをリストに変換."""
        return [self.map_row(row) for row in rows]
