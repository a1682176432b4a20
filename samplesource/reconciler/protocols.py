"""Collaborator interfaces the reconciler depends on.

Concrete Kubernetes-backed implementations live in ``samplesource.kube``;
tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Protocol

from samplesource.models.event_types import EventType
from samplesource.models.results import GetResult
from samplesource.models.source import Destination, Owner, SampleSource


class SinkResolver(Protocol):
    async def resolve(self, destination: Destination, owner: Owner) -> str:
        """Return the URI for *destination*.  Raises SinkNotFoundError."""
        ...


class SampleSourceStore(Protocol):
    async def get(self, namespace: str, name: str) -> GetResult[SampleSource]: ...

    async def update_status(self, source: SampleSource) -> SampleSource: ...


class DeploymentStore(Protocol):
    async def get(self, namespace: str, name: str) -> GetResult[dict[str, Any]]: ...

    async def list(self, namespace: str, labels: dict[str, str]) -> list[dict[str, Any]]: ...

    async def create(self, deployment: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, deployment: dict[str, Any]) -> dict[str, Any]: ...


class EventTypeStore(Protocol):
    async def list(self, namespace: str, labels: dict[str, str]) -> list[EventType]: ...

    async def create(self, event_type: EventType) -> EventType: ...

    async def delete(self, namespace: str, name: str) -> None: ...


class EventRecorder(Protocol):
    """Fire-and-forget notifications attached to a resource."""

    def event(self, obj: Owner, event_type: str, reason: str, message: str) -> None: ...


class StatsReporter(Protocol):
    def report_ready(self, kind: str, namespace: str, name: str, duration_seconds: float) -> None: ...
