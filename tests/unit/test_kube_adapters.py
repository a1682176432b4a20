"""Tests for the Kubernetes-backed stores, sink resolver and event recorder."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from samplesource.kube import (
    KubeDeploymentStore,
    KubeEventRecorder,
    KubeEventTypeStore,
    KubeSampleSourceStore,
    KubeSinkResolver,
    label_selector,
)
from samplesource.models.results import Failed, NotFound, Ok
from samplesource.models.source import Destination, KReference, SampleSource
from samplesource.reconciler.errors import SinkNotFoundError, StoreError


def _owner() -> SampleSource:
    return SampleSource(namespace="default", name="src", uid="uid-1")


class TestLabelSelector:
    def test_sorted(self) -> None:
        assert label_selector({"b": "2", "a": "1"}) == "a=1,b=2"


class TestKubeSampleSourceStore:
    async def test_not_found(self) -> None:
        api = MagicMock()
        api.get_namespaced_custom_object = AsyncMock(side_effect=ApiException(status=404, reason="Not Found"))
        result = await KubeSampleSourceStore(api).get("default", "src")
        assert isinstance(result, NotFound)

    async def test_other_error_is_failed(self) -> None:
        api = MagicMock()
        api.get_namespaced_custom_object = AsyncMock(side_effect=ApiException(status=500, reason="Boom"))
        result = await KubeSampleSourceStore(api).get("default", "src")
        assert isinstance(result, Failed)
        assert "500" in result.detail

    async def test_found(self) -> None:
        api = MagicMock()
        api.get_namespaced_custom_object = AsyncMock(
            return_value={"metadata": {"namespace": "default", "name": "src", "uid": "u"}, "spec": {}}
        )
        result = await KubeSampleSourceStore(api).get("default", "src")
        assert isinstance(result, Ok)
        assert result.value.uid == "u"

    async def test_status_write_failure(self) -> None:
        api = MagicMock()
        api.replace_namespaced_custom_object_status = AsyncMock(side_effect=ApiException(status=409, reason="Conflict"))
        with pytest.raises(StoreError, match="409"):
            await KubeSampleSourceStore(api).update_status(_owner())


class TestKubeDeploymentStore:
    async def test_get_serializes(self) -> None:
        apps = MagicMock()
        apps.read_namespaced_deployment = AsyncMock(return_value=object())
        api_client = MagicMock()
        api_client.sanitize_for_serialization.return_value = {"metadata": {"name": "d"}}
        result = await KubeDeploymentStore(apps, api_client).get("default", "d")
        assert result == Ok({"metadata": {"name": "d"}})
        apps.read_namespaced_deployment.assert_awaited_once_with("d", "default")

    async def test_list_uses_label_selector(self) -> None:
        apps = MagicMock()
        apps.list_namespaced_deployment = AsyncMock(return_value=MagicMock(items=[]))
        await KubeDeploymentStore(apps, MagicMock()).list("default", {"x": "1"})
        apps.list_namespaced_deployment.assert_awaited_once_with("default", label_selector="x=1")


class TestKubeEventTypeStore:
    async def test_delete_missing_is_ignored(self) -> None:
        api = MagicMock()
        api.delete_namespaced_custom_object = AsyncMock(side_effect=ApiException(status=404, reason="Not Found"))
        await KubeEventTypeStore(api).delete("default", "gone")

    async def test_delete_error_raises(self) -> None:
        api = MagicMock()
        api.delete_namespaced_custom_object = AsyncMock(side_effect=ApiException(status=403, reason="Forbidden"))
        with pytest.raises(StoreError):
            await KubeEventTypeStore(api).delete("default", "et")

    async def test_list_parses_items(self) -> None:
        api = MagicMock()
        api.list_namespaced_custom_object = AsyncMock(
            return_value={
                "items": [{"metadata": {"namespace": "default", "name": "et-1"}, "spec": {"type": "dev.a", "source": "s"}}]
            }
        )
        (et,) = await KubeEventTypeStore(api).list("default", {"k": "v"})
        assert et.name == "et-1"
        assert et.spec.type == "dev.a"


class TestKubeSinkResolver:
    def _resolver(self, custom_obj: dict | None = None, error: ApiException | None = None) -> KubeSinkResolver:
        core = MagicMock()
        core.read_namespaced_service = AsyncMock(side_effect=error)
        custom = MagicMock()
        custom.get_namespaced_custom_object = AsyncMock(return_value=custom_obj or {}, side_effect=error)
        return KubeSinkResolver(core, custom)

    async def test_absolute_uri(self) -> None:
        uri = await self._resolver().resolve(Destination(uri="https://example.com/hook"), _owner())
        assert uri == "https://example.com/hook"

    async def test_relative_uri_alone_rejected(self) -> None:
        with pytest.raises(SinkNotFoundError):
            await self._resolver().resolve(Destination(uri="/hook"), _owner())

    async def test_empty_destination_rejected(self) -> None:
        with pytest.raises(SinkNotFoundError):
            await self._resolver().resolve(Destination(), _owner())

    async def test_core_service(self) -> None:
        dest = Destination(ref=KReference(kind="Service", name="svc", api_version="v1", namespace="default"))
        assert await self._resolver().resolve(dest, _owner()) == "http://svc.default.svc.cluster.local/"

    async def test_addressable_with_relative_uri(self) -> None:
        resolver = self._resolver({"status": {"address": {"url": "http://broker.default.svc.cluster.local/"}}})
        dest = Destination(
            ref=KReference(kind="Broker", name="default", api_version="eventing.knative.dev/v1", namespace="default"),
            uri="extra/path",
        )
        assert await resolver.resolve(dest, _owner()) == "http://broker.default.svc.cluster.local/extra/path"

    async def test_addressable_without_address(self) -> None:
        resolver = self._resolver({"status": {}})
        dest = Destination(
            ref=KReference(kind="Broker", name="default", api_version="eventing.knative.dev/v1", namespace="default")
        )
        with pytest.raises(SinkNotFoundError, match="does not have an address"):
            await resolver.resolve(dest, _owner())

    async def test_missing_ref(self) -> None:
        resolver = self._resolver(error=ApiException(status=404, reason="Not Found"))
        dest = Destination(
            ref=KReference(kind="Broker", name="nope", api_version="eventing.knative.dev/v1", namespace="default")
        )
        with pytest.raises(SinkNotFoundError, match="404"):
            await resolver.resolve(dest, _owner())


class TestKubeEventRecorder:
    async def test_event_body(self) -> None:
        core = MagicMock()
        core.create_namespaced_event = AsyncMock()
        recorder = KubeEventRecorder(core)

        recorder.event(_owner(), "Normal", "SampleSourceReconciled", "done")
        await recorder.stop()

        namespace, body = core.create_namespaced_event.await_args.args
        assert namespace == "default"
        assert body["reason"] == "SampleSourceReconciled"
        assert body["type"] == "Normal"
        assert body["involvedObject"]["uid"] == "uid-1"
        assert body["involvedObject"]["kind"] == "SampleSource"

    async def test_delivery_failure_is_swallowed(self) -> None:
        core = MagicMock()
        core.create_namespaced_event = AsyncMock(side_effect=ApiException(status=403, reason="Forbidden"))
        recorder = KubeEventRecorder(core)

        recorder.event(_owner(), "Warning", "SampleSourceUpdateStatusFailed", "boom")
        await recorder.stop()
        await asyncio.sleep(0)

        core.create_namespaced_event.assert_awaited_once()

    def test_no_loop_drops_event(self) -> None:
        core = MagicMock()
        core.create_namespaced_event = AsyncMock()
        KubeEventRecorder(core).event(_owner(), "Normal", "R", "m")
        core.create_namespaced_event.assert_not_called()
