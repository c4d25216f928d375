"""Column / Embedded アノテーションと @entity デコレータ."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

DEFAULT_NAMING = "camel_to_snake"
_VALID_NAMING = frozenset({"as_is", "snake_to_camel", "camel_to_snake"})


@dataclass(frozen=True)
class Column:
    """カラム名を指定するアノテーション."""

    name: str


@dataclass(frozen=True)
class Embedded:
    """埋め込みレコードを示すアノテーション.

    ``Annotated[Base, Embedded()]`` のフィールドは、親と同じカラム集合に対して
    再帰的にマッピングされる。``Base | None`` の場合は、いずれかのフィールドに
    対応するカラムがあるときだけ生成される。
    """


def entity(
    cls: type | None = None,
    *,
    column_map: dict[str, str] | None = None,
    naming: str = DEFAULT_NAMING,
) -> Any:
    """エンティティデコレータ.

    Args:
        cls: デコレート対象クラス
        column_map: フィールド名→カラム名のマッピング
        naming: 命名規則 ("as_is", "snake_to_camel", "camel_to_snake")

    """
    if naming not in _VALID_NAMING:
        msg = f"Invalid naming: {naming!r}. Must be one of {sorted(_VALID_NAMING)}"
        raise ValueError(msg)

    def decorator(cls: type) -> type:
        cls.__column_map__ = column_map or {}  # type: ignore[attr-defined]
        cls.__column_naming__ = naming  # type: ignore[attr-defined]
        return cls

    if cls is not None:
        return decorator(cls)
    return decorator


def apply_naming(name: str, naming: str) -> str:
    """命名規則に従ってフィールド名をカラム名に変換する."""
    if naming == "snake_to_camel":
        return to_camel(name)
    if naming == "camel_to_snake":
        return to_snake(name)
    return name


def to_camel(name: str) -> str:
    """Snake_case → camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def to_snake(name: str) -> str:
    """CamelCase → snake_case.

    連続する大文字は 1 語として扱う（``HTTPStatus`` → ``http_status``）。
    """
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.lower()
