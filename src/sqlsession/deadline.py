"""Deadline: 実行のキャンセル / タイムアウトを伝えるトークン."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlsession.exceptions import SqlCancelledError

logger = logging.getLogger(__name__)


class Deadline:
    """SQL 実行の期限.

    DB ハンドル呼び出しの前後で ``check()`` され、期限切れまたは
    ``cancel()`` 済みなら SqlCancelledError を送出する。
    呼び出し中は ``watch()`` で登録された中断処理が、期限到来時または
    ``cancel()`` 時に実行される。

    Examples:
        >>> deadline = Deadline.after(5.0)
        >>> session.select("id").from_("users").as_scalar_list(int, deadline=deadline)

    """

    def __init__(self, timeout: float | None = None) -> None:
        """初期化.

        Args:
            timeout: 秒数。None または 0 以下は期限なし

        """
        self._expires_at = time.monotonic() + timeout if timeout and timeout > 0 else None
        self._cancelled = False
        self._fired = False
        self._lock = threading.Lock()
        self._watchers: list[Callable[[], None]] = []

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        """現在から seconds 秒後に期限切れになる Deadline を作る."""
        return cls(seconds)

    def cancel(self) -> None:
        """明示的にキャンセルする.

        実行中の呼び出しがあれば、その中断処理を呼ぶ。
        """
        self._cancelled = True
        self._notify()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        """キャンセル済み、または期限を過ぎているか."""
        if self._cancelled or self._fired:
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> float | None:
        """残り秒数を返す。期限なしなら None."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def error(self) -> SqlCancelledError | None:
        """期限切れなら送出すべき SqlCancelledError を返す。有効なら None."""
        if self._cancelled:
            return SqlCancelledError("SQL execution cancelled")
        if self.expired:
            return SqlCancelledError("SQL execution deadline exceeded")
        return None

    def check(self) -> None:
        """期限切れなら SqlCancelledError を送出する."""
        error = self.error()
        if error is not None:
            raise error

    @contextmanager
    def watch(self, abort: Callable[[], None]) -> Iterator[None]:
        """ブロック実行中、期限到来またはキャンセルで abort を呼ぶ.

        期限があればタイマースレッドを起動し、ブロックを抜けると停止する。

        Args:
            abort: 実行中の SQL を中断する関数（別スレッドから呼ばれる）

        """
        with self._lock:
            self._watchers.append(abort)
        timer = None
        remaining = self.remaining()
        if remaining is not None:
            timer = threading.Timer(remaining, self._fire)
            timer.daemon = True
            timer.start()
        try:
            yield
        finally:
            if timer is not None:
                timer.cancel()
            with self._lock:
                self._watchers.remove(abort)

    def _fire(self) -> None:
        self._fired = True
        self._notify()

    def _notify(self) -> None:
        # watch() の解除と排他し、ブロックを抜けた後に abort が走らないようにする
        with self._lock:
            for abort in self._watchers:
                try:
                    abort()
                except Exception:
                    # タイマースレッドには送出先がないため記録のみ
                    logger.warning("failed to abort running statement", exc_info=True)
