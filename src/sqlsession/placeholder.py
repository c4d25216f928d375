"""SQL 文字列内プレースホルダの字句解析.

``#{name}`` : 動的プレースホルダ（実行時にパラメータマーカーへ置換しバインド）
``${name}`` : 埋め込みプレースホルダ（値を SQL テキストとしてそのまま埋め込む）
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DYNAMIC_SIGIL = "#"
INJECTED_SIGIL = "$"

# 開始記号から次の "}" まで。途中で新しい開始記号が現れたらそこから数え直す（入れ子なし）
PLACEHOLDER_PATTERN = re.compile(r"[#$]\{(?:(?![#$]\{)[^}])*\}")


@dataclass(frozen=True)
class Token:
    """プレースホルダトークン."""

    text: str
    """``#{name}`` 形式のトークン文字列."""

    dynamic: bool
    """``#`` 始まりなら True."""

    start: int
    """元文字列内の開始位置."""

    end: int
    """元文字列内の終了位置."""

    @property
    def name(self) -> str:
        """括弧内の名前."""
        return self.text[2:-1]


def tokenize(sql: str) -> list[Token]:
    """SQL からプレースホルダトークンを抽出する.

    閉じ括弧のないトークンは無視する。同じトークンが複数回現れた場合は
    出現ごとに返す。

    Args:
        sql: SQL 文字列

    Returns:
        Token のリスト（出現順）

    """
    return [
        Token(
            text=m.group(0),
            dynamic=m.group(0)[0] == DYNAMIC_SIGIL,
            start=m.start(),
            end=m.end(),
        )
        for m in PLACEHOLDER_PATTERN.finditer(sql)
    ]


def get_placeholders(sql: str) -> list[str]:
    """動的・埋め込みを区別せず、全トークンを出現順に返す."""
    return [t.text for t in tokenize(sql)]


def split_placeholders(sql: str) -> tuple[list[str], list[str]]:
    """トークンを動的と埋め込みに分けて返す.

    Returns:
        (動的トークンのリスト, 埋め込みトークンのリスト)。それぞれ出現順。

    """
    dynamic: list[str] = []
    injected: list[str] = []
    for token in tokenize(sql):
        if token.dynamic:
            dynamic.append(token.text)
        else:
            injected.append(token.text)
    return dynamic, injected
