"""Resource stores backed by the Kubernetes API.

Lookups return a tagged ``Ok | NotFound | Failed`` result.  Writes raise
``StoreError`` wrapping the API exception.
"""

from __future__ import annotations

from typing import Any

from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from samplesource.models.event_types import EVENT_TYPE_PLURAL, EVENTING_GROUP, EVENTING_VERSION, EventType
from samplesource.models.results import Failed, GetResult, NotFound, Ok
from samplesource.models.source import GROUP, PLURAL, VERSION, SampleSource
from samplesource.observability.logging import get_logger
from samplesource.reconciler.errors import StoreError

_logger = get_logger("kube.stores")

_HTTP_NOT_FOUND = 404


def label_selector(labels: dict[str, str]) -> str:
    """Render an equality-based label selector, keys sorted."""
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _lookup_failed(operation: str, exc: ApiException) -> Failed:
    return Failed(detail=f"{operation}: {exc.status} {exc.reason}", cause=exc)


class KubeSampleSourceStore:
    """Reads SampleSources and writes their status sub-resource."""

    def __init__(self, custom_api: k8s_client.CustomObjectsApi) -> None:
        self._api = custom_api

    async def get(self, namespace: str, name: str) -> GetResult[SampleSource]:
        try:
            raw = await self._api.get_namespaced_custom_object(GROUP, VERSION, namespace, PLURAL, name)
        except ApiException as exc:
            if exc.status == _HTTP_NOT_FOUND:
                return NotFound(kind="SampleSource", namespace=namespace, name=name)
            return _lookup_failed("get samplesource", exc)
        return Ok(SampleSource.from_dict(raw))

    async def update_status(self, source: SampleSource) -> SampleSource:
        body = source.to_dict()
        try:
            raw = await self._api.replace_namespaced_custom_object_status(
                GROUP, VERSION, source.namespace, PLURAL, source.name, body
            )
        except ApiException as exc:
            raise StoreError("update samplesource status", f"{exc.status} {exc.reason}") from exc
        return SampleSource.from_dict(raw)


class KubeDeploymentStore:
    """apps/v1 Deployments as plain camelCase dicts."""

    def __init__(self, apps_api: k8s_client.AppsV1Api, api_client: k8s_client.ApiClient) -> None:
        self._api = apps_api
        self._api_client = api_client

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self._api_client.sanitize_for_serialization(obj)  # type: ignore[no-any-return]

    async def get(self, namespace: str, name: str) -> GetResult[dict[str, Any]]:
        try:
            obj = await self._api.read_namespaced_deployment(name, namespace)
        except ApiException as exc:
            if exc.status == _HTTP_NOT_FOUND:
                return NotFound(kind="Deployment", namespace=namespace, name=name)
            return _lookup_failed("get deployment", exc)
        return Ok(self._to_dict(obj))

    async def list(self, namespace: str, labels: dict[str, str]) -> list[dict[str, Any]]:
        try:
            result = await self._api.list_namespaced_deployment(namespace, label_selector=label_selector(labels))
        except ApiException as exc:
            raise StoreError("list deployments", f"{exc.status} {exc.reason}") from exc
        return [self._to_dict(item) for item in result.items]

    async def create(self, deployment: dict[str, Any]) -> dict[str, Any]:
        namespace = deployment["metadata"]["namespace"]
        try:
            obj = await self._api.create_namespaced_deployment(namespace, deployment)
        except ApiException as exc:
            raise StoreError("create deployment", f"{exc.status} {exc.reason}") from exc
        return self._to_dict(obj)

    async def update(self, deployment: dict[str, Any]) -> dict[str, Any]:
        metadata = deployment["metadata"]
        try:
            obj = await self._api.replace_namespaced_deployment(metadata["name"], metadata["namespace"], deployment)
        except ApiException as exc:
            raise StoreError("update deployment", f"{exc.status} {exc.reason}") from exc
        return self._to_dict(obj)


class KubeEventTypeStore:
    """eventing.knative.dev EventTypes."""

    def __init__(self, custom_api: k8s_client.CustomObjectsApi) -> None:
        self._api = custom_api

    async def list(self, namespace: str, labels: dict[str, str]) -> list[EventType]:
        try:
            raw = await self._api.list_namespaced_custom_object(
                EVENTING_GROUP,
                EVENTING_VERSION,
                namespace,
                EVENT_TYPE_PLURAL,
                label_selector=label_selector(labels),
            )
        except ApiException as exc:
            _logger.error("list_event_types_failed", namespace=namespace, status=exc.status)
            raise StoreError("list eventtypes", f"{exc.status} {exc.reason}") from exc
        return [EventType.from_dict(item) for item in raw.get("items", [])]

    async def create(self, event_type: EventType) -> EventType:
        try:
            raw = await self._api.create_namespaced_custom_object(
                EVENTING_GROUP, EVENTING_VERSION, event_type.namespace, EVENT_TYPE_PLURAL, event_type.to_dict()
            )
        except ApiException as exc:
            raise StoreError("create eventtype", f"{exc.status} {exc.reason}") from exc
        return EventType.from_dict(raw)

    async def delete(self, namespace: str, name: str) -> None:
        try:
            await self._api.delete_namespaced_custom_object(
                EVENTING_GROUP, EVENTING_VERSION, namespace, EVENT_TYPE_PLURAL, name
            )
        except ApiException as exc:
            if exc.status == _HTTP_NOT_FOUND:
                # Already gone; the goal state is reached.
                return
            raise StoreError("delete eventtype", f"{exc.status} {exc.reason}") from exc
