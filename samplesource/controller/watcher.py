"""Watch streams that feed reconcile keys into the work queue.

Each watcher lists and watches one resource type, maps every event to a
SampleSource key and adds it to the queue.  Dropped connections are
re-established with exponential back-off; an expired resource version
(HTTP 410) restarts from a fresh list.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from kubernetes_asyncio import watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from samplesource.controller.queue import QueueFullError, WorkQueue
from samplesource.observability.logging import get_logger
from samplesource.reconciler.resources.receive_adapter import SOURCE_NAME_LABEL

_HTTP_GONE = 410
_WATCH_TIMEOUT_SECONDS = 300
_BACKOFF_INITIAL = 1.0
_BACKOFF_MAX = 60.0

KeyFn = Callable[[str, Any], str | None]


def object_meta(obj: Any) -> tuple[str, str, dict[str, str]]:
    """(namespace, name, labels) from a raw dict or a kubernetes model object."""
    if isinstance(obj, dict):
        metadata = obj.get("metadata") or {}
        return (
            str(metadata.get("namespace") or ""),
            str(metadata.get("name") or ""),
            dict(metadata.get("labels") or {}),
        )
    metadata = getattr(obj, "metadata", None)
    if metadata is None:
        return "", "", {}
    return metadata.namespace or "", metadata.name or "", dict(metadata.labels or {})


def source_key(event_type: str, obj: Any) -> str | None:
    """Key of a SampleSource watch event."""
    namespace, name, _ = object_meta(obj)
    if not name:
        return None
    return f"{namespace}/{name}"


def owner_key(event_type: str, obj: Any) -> str | None:
    """Key of the SampleSource that labelled a child resource."""
    namespace, _, labels = object_meta(obj)
    owner = labels.get(SOURCE_NAME_LABEL)
    if not owner:
        return None
    return f"{namespace}/{owner}"


class ResourceWatcher:
    """Watches one list endpoint and enqueues a key per event.

    Args:
        name:     Identifier used in logs and task names.
        list_fn:  kubernetes-asyncio list method to stream.
        list_args: Positional arguments for *list_fn*.
        list_kwargs: Keyword arguments for *list_fn* (e.g. label_selector).
        key_fn:   Maps (event type, object) to a queue key, or None to skip.
        queue:    Destination work queue.
        known_keys: Optional set kept in sync with ADDED/DELETED events.
    """

    def __init__(
        self,
        name: str,
        list_fn: Callable[..., Any],
        key_fn: KeyFn,
        queue: WorkQueue,
        list_args: tuple[Any, ...] = (),
        list_kwargs: dict[str, Any] | None = None,
        known_keys: set[str] | None = None,
    ) -> None:
        self.name = name
        self._list_fn = list_fn
        self._list_args = list_args
        self._list_kwargs = list_kwargs or {}
        self._key_fn = key_fn
        self._queue = queue
        self._known_keys = known_keys
        self._task: asyncio.Task[None] | None = None
        self._resource_version = ""
        self._log = get_logger(f"controller.watcher.{name}")

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"watch-{self.name}")

    async def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    def handle_event(self, event_type: str, obj: Any) -> None:
        """Map one watch event to a key and queue it."""
        key = self._key_fn(event_type, obj)
        if key is None:
            return
        if self._known_keys is not None:
            if event_type == "DELETED":
                self._known_keys.discard(key)
                self._queue.forget(key)
            else:
                self._known_keys.add(key)
        try:
            self._queue.add(key)
        except QueueFullError:
            self._log.warning("event_dropped_queue_full", key=key, event_type=event_type)

    async def _run(self) -> None:
        backoff = _BACKOFF_INITIAL
        while True:
            try:
                await self._watch_once()
                backoff = _BACKOFF_INITIAL
            except asyncio.CancelledError:
                raise
            except ApiException as exc:
                if exc.status == _HTTP_GONE:
                    self._log.info("watch_resource_version_expired")
                    self._resource_version = ""
                    continue
                self._log.warning("watch_api_error", status=exc.status, retry_in=backoff)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, _BACKOFF_MAX)
            except Exception as exc:
                self._log.warning("watch_error", error=str(exc), retry_in=backoff)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, _BACKOFF_MAX)

    async def _watch_once(self) -> None:
        kwargs = dict(self._list_kwargs)
        kwargs["timeout_seconds"] = _WATCH_TIMEOUT_SECONDS
        if self._resource_version:
            kwargs["resource_version"] = self._resource_version
        w = watch.Watch()
        async with w.stream(self._list_fn, *self._list_args, **kwargs) as stream:
            async for event in stream:
                event_type = str(event.get("type", ""))
                obj = event.get("object")
                if event_type == "ERROR":
                    code = obj.get("code") if isinstance(obj, dict) else None
                    if code == _HTTP_GONE:
                        self._resource_version = ""
                        return
                    self._log.warning("watch_error_event", object=str(obj)[:200])
                    continue
                self._remember_version(obj)
                self.handle_event(event_type, obj)

    def _remember_version(self, obj: Any) -> None:
        if isinstance(obj, dict):
            version = (obj.get("metadata") or {}).get("resourceVersion")
        else:
            metadata = getattr(obj, "metadata", None)
            version = getattr(metadata, "resource_version", None)
        if version:
            self._resource_version = str(version)
