"""リクエスト間隔の制御."""

from __future__ import annotations

import time

from kwsearch.config import REQUEST_INTERVAL


class IntervalRateLimiter:
    """キーワード1件ごとに固定時間待機する.

    wait() を持つオブジェクトなら何でも差し替え可能。
    """

    def __init__(self, interval: float = REQUEST_INTERVAL, sleep=time.sleep):
        self.interval = interval
        self._sleep = sleep

    def wait(self) -> None:
        if self.interval > 0:
            self._sleep(self.interval)
