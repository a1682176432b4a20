"""Controller: watchers, work queue and periodic resync around one Reconciler."""

from __future__ import annotations

import asyncio

from samplesource.controller.queue import QueueFullError, WorkQueue
from samplesource.controller.watcher import ResourceWatcher
from samplesource.observability.logging import get_logger

_log = get_logger("controller")


class Controller:
    """Owns the queue and watch loops that decide when a reconcile runs.

    Every known SampleSource key is re-queued each ``resync_seconds`` so
    drift in child resources is corrected even without a watch event.
    """

    def __init__(
        self,
        queue: WorkQueue,
        watchers: list[ResourceWatcher],
        known_keys: set[str],
        resync_seconds: float = 300.0,
    ) -> None:
        self._queue = queue
        self._watchers = watchers
        self._known_keys = known_keys
        self._resync_seconds = resync_seconds
        self._resync_task: asyncio.Task[None] | None = None
        self._started = False

    @property
    def ready(self) -> bool:
        return self._started and self._queue.running

    async def start(self) -> None:
        await self._queue.start()
        for watcher in self._watchers:
            await watcher.start()
        self._resync_task = asyncio.create_task(self._resync_loop(), name="resync")
        self._started = True
        _log.info("controller_started", watchers=[w.name for w in self._watchers])

    async def stop(self) -> None:
        self._started = False
        if self._resync_task is not None:
            self._resync_task.cancel()
            await asyncio.gather(self._resync_task, return_exceptions=True)
            self._resync_task = None
        for watcher in reversed(self._watchers):
            await watcher.stop()
        await self._queue.stop()
        _log.info("controller_stopped")

    def resync(self) -> int:
        """Queue every known key.  Returns how many were queued."""
        queued = 0
        for key in sorted(self._known_keys):
            try:
                self._queue.add(key)
                queued += 1
            except QueueFullError:
                _log.warning("resync_truncated_queue_full", queued=queued)
                break
        return queued

    async def _resync_loop(self) -> None:
        while True:
            await asyncio.sleep(self._resync_seconds)
            count = self.resync()
            _log.debug("resync", keys=count)
