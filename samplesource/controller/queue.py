"""Reconcile work queue.

Guarantees:
  * A key waiting in the queue is held once, however many times it is added.
  * A key is never reconciled by two workers at once; an add that arrives
    while the key is in flight is replayed after the current run finishes.
  * A failed reconcile is retried after a capped exponential back-off.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from samplesource.observability.logging import get_logger
from samplesource.observability.metrics import queue_depth

_log = get_logger("controller.queue")

_DEFAULT_MAX_SIZE = 10_000


class QueueFullError(Exception):
    """Raised when a key cannot be queued because the queue is at capacity."""


class WorkQueue:
    """Deduplicating, per-key exclusive work queue with retry back-off.

    Args:
        reconcile_fn: Coroutine called with each key.  Raising requeues the key.
        workers:      Number of concurrent worker tasks.
        base_delay:   First retry delay in seconds; doubles per consecutive failure.
        max_delay:    Upper bound on the retry delay.
        max_size:     Maximum number of distinct keys waiting.
    """

    def __init__(
        self,
        reconcile_fn: Callable[[str], Awaitable[None]],
        workers: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 300.0,
        max_size: int = _DEFAULT_MAX_SIZE,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._reconcile_fn = reconcile_fn
        self._worker_count = workers
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._max_size = max_size

        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._queued: set[str] = set()
        self._processing: set[str] = set()
        self._dirty: set[str] = set()
        self._failures: dict[str, int] = {}
        self._delayed: dict[str, asyncio.TimerHandle] = {}
        self._workers: list[asyncio.Task[None]] = []
        self._running = False

    def __len__(self) -> int:
        return len(self._queued)

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for i in range(self._worker_count):
            task = asyncio.create_task(self._worker(i), name=f"reconcile-worker-{i}")
            self._workers.append(task)
        _log.info("work_queue_started", workers=self._worker_count)

    async def stop(self) -> None:
        self._running = False
        for handle in self._delayed.values():
            handle.cancel()
        self._delayed.clear()
        for task in self._workers:
            task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        _log.info("work_queue_stopped")

    def add(self, key: str) -> None:
        """Queue *key* for reconciliation."""
        if key in self._queued:
            return
        if key in self._processing:
            self._dirty.add(key)
            return
        if len(self._queued) >= self._max_size:
            raise QueueFullError(f"work queue full ({self._max_size} keys)")
        self._queued.add(key)
        self._queue.put_nowait(key)
        queue_depth.set(len(self._queued))

    def add_after(self, key: str, delay: float) -> None:
        """Queue *key* once *delay* seconds have passed.  An earlier pending retry wins."""
        if key in self._delayed:
            return
        loop = asyncio.get_running_loop()
        self._delayed[key] = loop.call_later(delay, self._fire_delayed, key)

    def forget(self, key: str) -> None:
        """Drop retry state for *key*, e.g. after its resource was deleted."""
        self._failures.pop(key, None)
        handle = self._delayed.pop(key, None)
        if handle is not None:
            handle.cancel()

    def next_delay(self, key: str) -> float:
        """Back-off for the next retry of *key*; advances its failure count."""
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        return float(min(self._base_delay * (2**failures), self._max_delay))

    async def join(self) -> None:
        """Wait until every queued key has been processed once."""
        await self._queue.join()

    def _fire_delayed(self, key: str) -> None:
        self._delayed.pop(key, None)
        if not self._running:
            return
        try:
            self.add(key)
        except QueueFullError:
            _log.warning("retry_dropped_queue_full", key=key)

    async def _worker(self, index: int) -> None:
        while True:
            key = await self._queue.get()
            self._queued.discard(key)
            queue_depth.set(len(self._queued))
            self._processing.add(key)
            try:
                await self._reconcile_fn(key)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                delay = self.next_delay(key)
                _log.warning("reconcile_failed_requeue", key=key, worker=index, delay=delay, error=str(exc))
                self.add_after(key, delay)
            else:
                self._failures.pop(key, None)
            finally:
                self._processing.discard(key)
                if key in self._dirty:
                    self._dirty.discard(key)
                    try:
                        self.add(key)
                    except QueueFullError:
                        _log.warning("replay_dropped_queue_full", key=key)
                self._queue.task_done()
