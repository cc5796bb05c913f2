"""Fixed-size thread pool draining a shared `queue.Queue`."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

_STOP = object()


class WorkerPool(Generic[T]):
    """Run `handler` over submitted items on `size` daemon threads.

    `run_batch` blocks until every item of the batch has been handled, so the
    caller can take the next batch only once the previous one is drained.
    An exception raised by `handler` is logged, passed to `on_error`, and
    does not stop the worker.
    """

    def __init__(
        self,
        size: int,
        handler: Callable[[T], None],
        *,
        name: str = "crawler-worker",
        on_error: Callable[[T, BaseException], None] | None = None,
    ) -> None:
        if size <= 0:
            raise ValueError("size must be > 0")

        self.size = size
        self.handler = handler
        self.on_error = on_error

        self._queue: queue.Queue = queue.Queue()
        self._threads = [
            threading.Thread(
                target=self._worker,
                name=f"{name}-{idx}",
                daemon=True,
            )
            for idx in range(size)
        ]
        for thread in self._threads:
            thread.start()

        self._closed = False

    def run_batch(self, items: Iterable[T]) -> None:
        if self._closed:
            raise RuntimeError("WorkerPool is closed")

        for item in items:
            self._queue.put(item)
        self._queue.join()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join(timeout=5.0)

    def __enter__(self) -> "WorkerPool[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.handler(item)
            except Exception as exc:
                logger.exception("Worker failed on %r", item)
                if self.on_error is not None:
                    self.on_error(item, exc)
            finally:
                self._queue.task_done()


__all__ = ["WorkerPool"]
