"""SessionFactoryConfig: SessionFactory の設定."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SessionFactoryConfig(BaseModel):
    """SessionFactory の設定.

    0 はドライバ / プールの既定値を使うことを意味する。時間はすべて秒。
    """

    model_config = ConfigDict(frozen=True)

    max_open_conns: int = Field(default=0, ge=0)
    """同時に開く接続数の上限."""

    max_idle_conns: int = Field(default=0, ge=0)
    """プールに保持する接続数."""

    conn_max_lifetime: float = Field(default=0.0, ge=0)
    """接続を使い回す最大時間."""

    conn_max_idle_time: float = Field(default=0.0, ge=0)
    """アイドル接続を閉じるまでの時間."""

    sql_timeout: float = Field(default=0.0, ge=0)
    """do / do_in_tx の既定の実行期限."""

    log_sql: bool = False
    """生成したセッションで SQL をログに出力するか."""
