from __future__ import annotations

import queue
import threading
from typing import Generic, TypeVar

T = TypeVar("T")

_POLL_SECONDS = 0.05


class QueueClosed(Exception):
    """Raised by BatchQueue.get once the queue is closed and drained."""


class BatchQueue(Generic[T]):
    """Bounded FIFO with blocking put/get and an explicit close signal."""

    def __init__(self, maxsize: int = 3) -> None:
        self._queue: queue.Queue[T] = queue.Queue(maxsize=max(1, maxsize))
        self._closed = threading.Event()

    def put(self, item: T, stop_event: threading.Event | None = None) -> bool:
        while not self._closed.is_set():
            if stop_event is not None and stop_event.is_set():
                return False
            try:
                self._queue.put(item, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def get(self, timeout: float | None = None) -> T:
        remaining = timeout
        while True:
            wait = _POLL_SECONDS if remaining is None else max(0.0, min(_POLL_SECONDS, remaining))
            try:
                return self._queue.get(timeout=wait)
            except queue.Empty:
                if self._closed.is_set() and self._queue.empty():
                    raise QueueClosed() from None
                if remaining is not None:
                    remaining -= wait
                    if remaining <= 0:
                        raise

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def qsize(self) -> int:
        return self._queue.qsize()

    def full(self) -> bool:
        return self._queue.full()
