"""
取消信号
一次转换共用一个 CancelToken，任意线程调用 cancel() 后，
所有相关子进程都会被终止
"""
import threading
from typing import Optional

from tubemp3.exceptions import CancellationError


class CancelToken:
    """基于 threading.Event 的取消上下文"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """最多等待 timeout 秒，返回是否已取消"""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError("转换已取消")
