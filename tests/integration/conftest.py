"""Shared fixtures for SampleSource integration tests.

Provides in-memory stand-ins for the Kubernetes stores, sink resolver,
event recorder and stats reporter, wired into a real ``Reconciler`` so
tests can drive whole reconcile passes without a cluster.

The stores behave like the API server where it matters: status is
round-tripped through its wire form, Deployments come back with
server-side defaults filled in, and EventTypes get generated names.
"""

from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from samplesource.models.event_types import EventType
from samplesource.models.results import Failed, GetResult, NotFound, Ok
from samplesource.models.source import Destination, KReference, Owner, SampleSource
from samplesource.reconciler import Reconciler
from samplesource.reconciler.errors import SinkNotFoundError, StoreError

RA_IMAGE = "registry.local/sample-receive-adapter:v1"
EVENT_TYPE = "dev.knative.sample"

_CREATED_AT = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# SampleSource factory helpers
# ---------------------------------------------------------------------------


def broker_sink(name: str = "default", namespace: str = "") -> Destination:
    return Destination(
        ref=KReference(kind="Broker", name=name, api_version="eventing.knative.dev/v1alpha1", namespace=namespace)
    )


def service_sink(name: str = "event-display") -> Destination:
    return Destination(ref=KReference(kind="Service", name=name, api_version="serving.knative.dev/v1"))


def make_source(
    name: str = "sample",
    namespace: str = "default",
    sink: dict[str, Any] | None = None,
    uid: str = "",
    generation: int = 1,
) -> dict[str, Any]:
    """Raw SampleSource object as the API server would return it."""
    spec: dict[str, Any] = {"interval": "10s"}
    if sink is not None:
        spec["sink"] = sink
    return {
        "apiVersion": "samples.knative.dev/v1alpha1",
        "kind": "SampleSource",
        "metadata": {
            "namespace": namespace,
            "name": name,
            "uid": uid or f"uid-{name}",
            "generation": generation,
            "resourceVersion": "1",
            "creationTimestamp": _CREATED_AT.strftime("%Y-%m-%dT%H:%M:%SZ"),
        },
        "spec": spec,
    }


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


def _matches(metadata: dict[str, Any], namespace: str, labels: dict[str, str]) -> bool:
    if metadata.get("namespace") != namespace:
        return False
    have = metadata.get("labels") or {}
    return all(have.get(k) == v for k, v in labels.items())


class FakeSampleSourceStore:
    """SampleSources held in wire form; status writes replace only ``status``."""

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.status_writes = 0
        self.fail_get: str = ""
        self.fail_update: str = ""

    def put(self, raw: dict[str, Any]) -> None:
        meta = raw["metadata"]
        self.objects[f"{meta['namespace']}/{meta['name']}"] = copy.deepcopy(raw)

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)

    def raw_status(self, key: str) -> dict[str, Any]:
        return copy.deepcopy(self.objects[key].get("status") or {})

    def current(self, key: str) -> SampleSource:
        return SampleSource.from_dict(self.objects[key])

    async def get(self, namespace: str, name: str) -> GetResult[SampleSource]:
        if self.fail_get:
            return Failed(self.fail_get)
        raw = self.objects.get(f"{namespace}/{name}")
        if raw is None:
            return NotFound("SampleSource", namespace, name)
        return Ok(SampleSource.from_dict(copy.deepcopy(raw)))

    async def update_status(self, source: SampleSource) -> SampleSource:
        if self.fail_update:
            raise StoreError("update SampleSource status", self.fail_update)
        raw = self.objects[source.key]
        raw["status"] = source.status.to_dict()
        meta = raw["metadata"]
        meta["resourceVersion"] = str(int(meta["resourceVersion"]) + 1)
        self.status_writes += 1
        return SampleSource.from_dict(copy.deepcopy(raw))


def _apply_server_defaults(deployment: dict[str, Any]) -> dict[str, Any]:
    """Fill in what the API server adds to a stored Deployment."""
    out = copy.deepcopy(deployment)
    spec = out.setdefault("spec", {})
    spec.setdefault("revisionHistoryLimit", 10)
    spec.setdefault("progressDeadlineSeconds", 600)
    pod_spec = spec.setdefault("template", {}).setdefault("spec", {})
    pod_spec.setdefault("restartPolicy", "Always")
    pod_spec.setdefault("dnsPolicy", "ClusterFirst")
    pod_spec.setdefault("schedulerName", "default-scheduler")
    for container in pod_spec.get("containers") or []:
        container.setdefault("imagePullPolicy", "IfNotPresent")
        container.setdefault("terminationMessagePath", "/dev/termination-log")
        # Empty env values are not persisted.
        container["env"] = [
            {k: v for k, v in entry.items() if not (k == "value" and v == "")} for entry in container.get("env") or []
        ]
    return out


class FakeDeploymentStore:
    """Deployments keyed by ``namespace/name``; ``available`` drives the Available condition."""

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.available = False
        self.creates = 0
        self.updates = 0

    def _with_status(self, deployment: dict[str, Any]) -> dict[str, Any]:
        deployment["status"] = {
            "conditions": [{"type": "Available", "status": "True" if self.available else "False"}],
        }
        return deployment

    def put(self, deployment: dict[str, Any]) -> None:
        meta = deployment["metadata"]
        self.objects[f"{meta['namespace']}/{meta['name']}"] = _apply_server_defaults(deployment)

    def only(self) -> dict[str, Any]:
        (deployment,) = self.objects.values()
        return copy.deepcopy(deployment)

    async def get(self, namespace: str, name: str) -> GetResult[dict[str, Any]]:
        deployment = self.objects.get(f"{namespace}/{name}")
        if deployment is None:
            return NotFound("Deployment", namespace, name)
        return Ok(self._with_status(copy.deepcopy(deployment)))

    async def list(self, namespace: str, labels: dict[str, str]) -> list[dict[str, Any]]:
        return [
            self._with_status(copy.deepcopy(d)) for d in self.objects.values() if _matches(d["metadata"], namespace, labels)
        ]

    async def create(self, deployment: dict[str, Any]) -> dict[str, Any]:
        self.creates += 1
        self.put(deployment)
        meta = deployment["metadata"]
        return self._with_status(copy.deepcopy(self.objects[f"{meta['namespace']}/{meta['name']}"]))

    async def update(self, deployment: dict[str, Any]) -> dict[str, Any]:
        self.updates += 1
        self.put(deployment)
        meta = deployment["metadata"]
        return self._with_status(copy.deepcopy(self.objects[f"{meta['namespace']}/{meta['name']}"]))


class FakeEventTypeStore:
    """EventTypes keyed by name.  ``ops`` logs every write in order."""

    def __init__(self) -> None:
        self.objects: dict[str, EventType] = {}
        self.ops: list[tuple[str, str]] = []
        self.fail_create: str = ""
        self._counter = itertools.count(1)

    def put(self, event_type: EventType) -> None:
        self.objects[event_type.name] = copy.deepcopy(event_type)

    def types(self) -> list[str]:
        return sorted(et.spec.type for et in self.objects.values())

    async def list(self, namespace: str, labels: dict[str, str]) -> list[EventType]:
        return [copy.deepcopy(et) for et in self.objects.values() if _matches(et.metadata, namespace, labels)]

    async def create(self, event_type: EventType) -> EventType:
        if self.fail_create:
            raise StoreError("create EventType", self.fail_create)
        created = copy.deepcopy(event_type)
        created.name = event_type.name or f"{event_type.generate_name}{next(self._counter):05d}"
        self.objects[created.name] = created
        self.ops.append(("create", created.spec.type))
        return copy.deepcopy(created)

    async def delete(self, namespace: str, name: str) -> None:
        et = self.objects.pop(name, None)
        self.ops.append(("delete", et.spec.type if et else name))


class FakeSinkResolver:
    """Resolves refs to cluster-local URLs; set ``error`` to make resolution fail."""

    def __init__(self) -> None:
        self.error: str = ""
        self.resolved: list[Destination] = []

    async def resolve(self, destination: Destination, owner: Owner) -> str:
        self.resolved.append(destination)
        if self.error:
            raise SinkNotFoundError(self.error)
        ref = destination.get_ref()
        if ref is None:
            return destination.uri
        return f"http://{ref.name}.{ref.namespace}.svc.cluster.local/"


@dataclass
class RecordedEvent:
    name: str
    type: str
    reason: str
    message: str


class FakeRecorder:
    def __init__(self) -> None:
        self.events: list[RecordedEvent] = []

    def event(self, obj: Owner, event_type: str, reason: str, message: str) -> None:
        self.events.append(RecordedEvent(obj.name, event_type, reason, message))

    def reasons(self) -> list[str]:
        return [e.reason for e in self.events]


class FakeStats:
    def __init__(self) -> None:
        self.ready: list[tuple[str, str, str, float]] = []
        self.error: Exception | None = None

    def report_ready(self, kind: str, namespace: str, name: str, duration_seconds: float) -> None:
        if self.error is not None:
            raise self.error
        self.ready.append((kind, namespace, name, duration_seconds))


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------


@dataclass
class Harness:
    sources: FakeSampleSourceStore = field(default_factory=FakeSampleSourceStore)
    deployments: FakeDeploymentStore = field(default_factory=FakeDeploymentStore)
    event_types: FakeEventTypeStore = field(default_factory=FakeEventTypeStore)
    resolver: FakeSinkResolver = field(default_factory=FakeSinkResolver)
    recorder: FakeRecorder = field(default_factory=FakeRecorder)
    stats: FakeStats = field(default_factory=FakeStats)
    declared_types: tuple[str, ...] = (EVENT_TYPE,)

    def reconciler(self) -> Reconciler:
        return Reconciler(
            receive_adapter_image=RA_IMAGE,
            event_types=self.declared_types,
            source_store=self.sources,
            deployment_store=self.deployments,
            event_type_store=self.event_types,
            sink_resolver=self.resolver,
            recorder=self.recorder,
            stats_reporter=self.stats,
            clock=lambda: _CREATED_AT + timedelta(seconds=42),
        )

    async def reconcile(self, key: str = "default/sample") -> None:
        await self.reconciler().reconcile(key)


@pytest.fixture()
def harness() -> Harness:
    return Harness()
