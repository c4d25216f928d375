"""PydanticMapper: Pydantic BaseModel 用のマッパー."""

from __future__ import annotations

from sqlsession.exceptions import MappingError
from sqlsession.mapper.record import RecordMapper, is_pydantic_model


class PydanticMapper(RecordMapper):
    """Pydantic BaseModel 用のマッパー.

    フィールドを集めたあと ``model_validate`` で生成するため、Pydantic の型変換が効く。
    """

    def __init__(self, entity_cls: type) -> None:
        if not is_pydantic_model(entity_cls):
            msg = f"{entity_cls} is not a Pydantic BaseModel"
            raise MappingError(msg)
        super().__init__(entity_cls)
