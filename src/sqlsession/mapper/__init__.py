"""sqlsession マッパーパッケージ."""

from sqlsession.mapper.column import Column, Embedded, entity
from sqlsession.mapper.factory import ManualMapper, create_mapper
from sqlsession.mapper.protocol import RowMapper, ValueMapper
from sqlsession.mapper.record import RecordMapper
from sqlsession.mapper.scalar import ScalarMapper

__all__ = [
    "Column",
    "Embedded",
    "ManualMapper",
    "RecordMapper",
    "RowMapper",
    "ScalarMapper",
    "ValueMapper",
    "create_mapper",
    "entity",
]
