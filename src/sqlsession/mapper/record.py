"""RecordMapper: フィールド記述子ツリーによるレコードマッピング."""

from __future__ import annotations

import types
from dataclasses import dataclass, fields, is_dataclass
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin, get_type_hints

from sqlsession.exceptions import MappingError
from sqlsession.mapper.column import DEFAULT_NAMING, Column, Embedded, apply_naming


@dataclass(frozen=True)
class LeafField:
    """カラムに対応するフィールド."""

    name: str
    column: str


@dataclass(frozen=True)
class BranchField:
    """埋め込みレコードのフィールド."""

    name: str
    record_type: type
    optional: bool
    children: tuple[LeafField | BranchField, ...]


FieldNode = Union[LeafField, BranchField]


def is_pydantic_model(cls: Any) -> bool:
    """Pydantic BaseModel のサブクラスか."""
    return isinstance(cls, type) and hasattr(cls, "model_validate") and hasattr(cls, "model_fields")


def is_record_type(cls: Any) -> bool:
    """レコードとしてマッピングできる型か（dataclass または Pydantic BaseModel）."""
    return (isinstance(cls, type) and is_dataclass(cls)) or is_pydantic_model(cls)


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """``T | None`` を (T, True) に分解する."""
    if get_origin(tp) in (Union, types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1 and len(args) < len(get_args(tp)):
            return args[0], True
    return tp, False


def construct_record(record_type: type, kwargs: dict[str, Any]) -> Any:
    """キーワード引数からレコードを生成する."""
    if is_pydantic_model(record_type):
        from pydantic import ValidationError

        try:
            return record_type.model_validate(kwargs)  # type: ignore[attr-defined]
        except ValidationError as e:
            msg = f"Cannot map row to {record_type.__name__}: {e}"
            raise MappingError(msg) from e
    try:
        return record_type(**kwargs)
    except TypeError as e:
        msg = f"Cannot map row to {record_type.__name__}: {e}"
        raise MappingError(msg) from e


class RecordMapper:
    """レコード型用の自動マッパー.

    フィールド記述子ツリーは型ごとに一度だけ構築してキャッシュする。
    カラム名は ``Annotated[..., Column("X")]``、``@entity(column_map=...)``、
    命名規則の順で決まる。
    """

    _fields_cache: ClassVar[dict[type, tuple[FieldNode, ...]]] = {}

    def __init__(self, entity_cls: type) -> None:
        if not is_record_type(entity_cls):
            msg = f"{entity_cls} is not a dataclass or Pydantic BaseModel"
            raise MappingError(msg)
        self.entity_cls = entity_cls
        self._fields = self.get_fields(entity_cls)

    @classmethod
    def get_fields(cls, entity_cls: type) -> tuple[FieldNode, ...]:
        """フィールド記述子ツリーを取得（キャッシュ付き）."""
        if entity_cls not in cls._fields_cache:
            cls._fields_cache[entity_cls] = cls._build_fields(entity_cls)
        return cls._fields_cache[entity_cls]

    @classmethod
    def _build_fields(cls, entity_cls: type) -> tuple[FieldNode, ...]:
        column_map: dict[str, str] = getattr(entity_cls, "__column_map__", {})
        naming: str = getattr(entity_cls, "__column_naming__", DEFAULT_NAMING)

        nodes: list[FieldNode] = []
        for field_name, key, tp, metadata in _declared_fields(entity_cls):
            if any(isinstance(m, Embedded) for m in metadata):
                inner, optional = unwrap_optional(tp)
                if not is_record_type(inner):
                    msg = f"Embedded field {entity_cls.__name__}.{field_name} must be a record type"
                    raise MappingError(msg)
                nodes.append(BranchField(key, inner, optional, cls.get_fields(inner)))
                continue

            column = next((m.name for m in metadata if isinstance(m, Column)), None)
            if column is None:
                column = column_map.get(field_name)
            if column is None:
                column = key if key != field_name else apply_naming(field_name, naming)
            nodes.append(LeafField(key, column))
        return tuple(nodes)

    def map_row(self, row: dict[str, Any]) -> Any:
        """1行をエンティティに変換."""
        row_lower = {k.lower(): v for k, v in row.items()}
        kwargs, _ = _collect(self._fields, row, row_lower)
        return construct_record(self.entity_cls, kwargs)

    def map_rows(self, rows: list[dict[str, Any]]) -> list[Any]:
        """複数行をエンティティのリストに変換."""
        return [self.map_row(row) for row in rows]


def _declared_fields(entity_cls: type) -> list[tuple[str, str, Any, list[Any]]]:
    """(フィールド名, コンストラクタ引数のキー, 型, Annotated メタデータ) のリストを返す.

    Pydantic モデルの alias 付きフィールドは alias をキーにする（model_validate が alias で受け取るため）。
    """
    if is_pydantic_model(entity_cls):
        return [
            (name, _validation_key(name, info), info.annotation, list(info.metadata))
            for name, info in entity_cls.model_fields.items()  # type: ignore[attr-defined]
        ]

    hints = get_type_hints(entity_cls, include_extras=True)
    result: list[tuple[str, str, Any, list[Any]]] = []
    for f in fields(entity_cls):
        if not f.init:
            continue
        hint = hints.get(f.name, Any)
        if get_origin(hint) is Annotated:
            args = get_args(hint)
            result.append((f.name, f.name, args[0], list(args[1:])))
        else:
            result.append((f.name, f.name, hint, []))
    return result


def _validation_key(name: str, info: Any) -> str:
    if isinstance(info.validation_alias, str):
        return info.validation_alias
    return info.alias or name


def _collect(
    nodes: tuple[FieldNode, ...],
    row: dict[str, Any],
    row_lower: dict[str, Any],
) -> tuple[dict[str, Any], bool]:
    """記述子ツリーを辿り、コンストラクタ引数を集める.

    Returns:
        (キーワード引数, いずれかのカラムに一致したか)

    """
    kwargs: dict[str, Any] = {}
    matched = False
    for node in nodes:
        if isinstance(node, BranchField):
            sub_kwargs, sub_matched = _collect(node.children, row, row_lower)
            if node.optional and not sub_matched:
                continue
            kwargs[node.name] = construct_record(node.record_type, sub_kwargs)
            matched = matched or sub_matched
            continue

        for key in (node.column, node.name):
            if key in row:
                kwargs[node.name] = row[key]
                matched = True
                break
            if key.lower() in row_lower:
                kwargs[node.name] = row_lower[key.lower()]
                matched = True
                break
    return kwargs, matched
