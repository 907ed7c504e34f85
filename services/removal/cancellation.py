"""
Cooperative cancellation for export attempts
"""
import threading
from typing import Callable, List, Optional

from .errors import ExportCancelled


class CancellationToken:
    """
    Thread-safe cancellation flag

    Checked at stage boundaries of an export. Worker threads can also
    sleep on it so that a backoff wait ends as soon as the export is
    cancelled, or register a callback to abort blocking I/O.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Call `callback` on cancellation (immediately if already cancelled)"""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def raise_if_cancelled(self, stage: Optional[str] = None) -> None:
        """Raise ExportCancelled if the token was cancelled"""
        if self._event.is_set():
            raise ExportCancelled(meta={"stage": stage, "reason": self.reason})

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; returns True if cancelled meanwhile"""
        return self._event.wait(timeout)
