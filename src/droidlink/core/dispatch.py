"""Worker threads for bridge calls and the queue that hands results back.

Worker tasks never touch orchestrator state. They post a callback onto the
CompletionQueue and the owner thread runs it when it drains the queue.
"""

from __future__ import annotations

import queue
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

from droidlink.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CompletionQueue:
    """FIFO of callbacks executed one at a time on the owner thread."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[Callable[..., Any], tuple[Any, ...]]] = (
            queue.SimpleQueue()
        )

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Schedule *callback* for the owner thread. Safe from any thread."""
        self._queue.put((callback, args))

    def drain(self) -> int:
        """Run every callback queued so far without blocking. Returns the count."""
        count = 0
        while True:
            try:
                callback, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            callback(*args)
            count += 1

    def wait(self, timeout: float | None = None) -> bool:
        """Block for the next callback and run it. False on timeout."""
        try:
            callback, args = self._queue.get(timeout=timeout)
        except queue.Empty:
            return False
        callback(*args)
        return True


class WorkerPool:
    """Runs blocking tasks off the owner thread and posts their outcome back."""

    def __init__(self, completions: CompletionQueue, max_workers: int = 1) -> None:
        self._completions = completions
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="droidlink-worker",
        )

    def submit(
        self,
        task: Callable[[], T],
        on_complete: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> Future[None]:
        """Run *task* on a worker; exactly one of the callbacks is posted."""

        def _run() -> None:
            try:
                value = task()
            except Exception as exc:
                logger.debug("worker_task_error", error=str(exc))
                self._completions.post(on_error, exc)
                return
            self._completions.post(on_complete, value)

        return self._executor.submit(_run)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
