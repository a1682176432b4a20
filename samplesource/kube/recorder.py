"""Fire-and-forget core/v1 Event recorder.

``event`` never raises and never blocks: it schedules the API call as a
background task and logs delivery failures.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

from samplesource.models.conditions import format_timestamp
from samplesource.models.source import Owner
from samplesource.observability.logging import get_logger

_log = get_logger("kube.recorder")

COMPONENT = "sample-source-controller"


class KubeEventRecorder:
    """Emits Kubernetes Events attached to a SampleSource."""

    def __init__(self, core_api: k8s_client.CoreV1Api, component: str = COMPONENT) -> None:
        self._api = core_api
        self._component = component
        self._pending: set[asyncio.Task[None]] = set()

    def event(self, obj: Owner, event_type: str, reason: str, message: str) -> None:
        body = self._build_event(obj, event_type, reason, message)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _log.warning("event_dropped_no_loop", reason=reason)
            return
        task = loop.create_task(self._send(obj.namespace, body, reason))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def stop(self) -> None:
        """Wait for in-flight events."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _send(self, namespace: str, body: dict[str, Any], reason: str) -> None:
        try:
            await self._api.create_namespaced_event(namespace, body)
        except Exception as exc:  # noqa: BLE001
            _log.warning("event_emit_failed", reason=reason, namespace=namespace, error=str(exc))

    def _build_event(self, obj: Owner, event_type: str, reason: str, message: str) -> dict[str, Any]:
        now = format_timestamp(datetime.now(tz=UTC))
        return {
            "apiVersion": "v1",
            "kind": "Event",
            "metadata": {"generateName": f"{obj.name}.", "namespace": obj.namespace},
            "involvedObject": {
                "apiVersion": obj.api_version,
                "kind": obj.kind,
                "name": obj.name,
                "namespace": obj.namespace,
                "uid": obj.uid,
            },
            "type": event_type,
            "reason": reason,
            "message": message,
            "source": {"component": self._component},
            "firstTimestamp": now,
            "lastTimestamp": now,
            "count": 1,
        }
