"""DataclassMapper: dataclass 用の自動マッパー."""

from __future__ import annotations

from dataclasses import is_dataclass

from sqlsession.exceptions import MappingError
from sqlsession.mapper.record import RecordMapper


class DataclassMapper(RecordMapper):
    """Dataclass 用の自動マッパー."""

    def __init__(self, entity_cls: type) -> None:
        if not is_dataclass(entity_cls):
            msg = f"{entity_cls} is not a dataclass"
            raise MappingError(msg)
        super().__init__(entity_cls)
