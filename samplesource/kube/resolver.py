"""Resolve a SampleSource destination to a URI.

* ``uri`` only            -- must be absolute; returned as-is.
* ``ref`` to a Service    -- cluster-local DNS name of the Service.
* ``ref`` to anything else -- the object's ``status.address.url`` (or
  ``status.address.hostname``), i.e. the Addressable contract.
* ``ref`` plus ``uri``    -- ``uri`` is resolved relative to the ref's URI.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urljoin, urlparse

from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from samplesource.models.source import Destination, KReference, Owner
from samplesource.observability.logging import get_logger
from samplesource.reconciler.errors import SinkNotFoundError

_logger = get_logger("kube.resolver")


def _split_api_version(api_version: str) -> tuple[str, str]:
    if "/" in api_version:
        group, version = api_version.split("/", 1)
        return group, version
    return "", api_version


def _plural(kind: str) -> str:
    lower = kind.lower()
    if lower.endswith("s"):
        return f"{lower}es"
    if lower.endswith("y"):
        return f"{lower[:-1]}ies"
    return f"{lower}s"


def _address_uri(obj: dict[str, Any]) -> str:
    address = (obj.get("status") or {}).get("address") or {}
    if address.get("url"):
        return str(address["url"])
    if address.get("hostname"):
        return f"http://{address['hostname']}/"
    return ""


class KubeSinkResolver:
    """Looks destinations up through the core and custom-objects APIs."""

    def __init__(self, core_api: k8s_client.CoreV1Api, custom_api: k8s_client.CustomObjectsApi) -> None:
        self._core = core_api
        self._custom = custom_api

    async def resolve(self, destination: Destination, owner: Owner) -> str:
        ref = destination.get_ref()
        if ref is None:
            if not destination.uri:
                raise SinkNotFoundError(f"destination of {owner.kind} {owner.name!r} has neither ref nor uri")
            parsed = urlparse(destination.uri)
            if not parsed.scheme or not parsed.netloc:
                raise SinkNotFoundError(f"destination uri {destination.uri!r} is not absolute")
            return destination.uri

        base = await self._resolve_ref(ref)
        if destination.uri:
            return urljoin(base, destination.uri)
        return base

    async def _resolve_ref(self, ref: KReference) -> str:
        group, version = _split_api_version(ref.api_version or "v1")
        if ref.kind == "Service" and not group:
            try:
                await self._core.read_namespaced_service(ref.name, ref.namespace)
            except ApiException as exc:
                raise SinkNotFoundError(f"failed to get Service {ref.namespace}/{ref.name}: {exc.status}") from exc
            return f"http://{ref.name}.{ref.namespace}.svc.cluster.local/"

        try:
            obj = await self._custom.get_namespaced_custom_object(
                group, version, ref.namespace, _plural(ref.kind), ref.name
            )
        except ApiException as exc:
            raise SinkNotFoundError(
                f"failed to get ref {ref.kind} {ref.namespace}/{ref.name}: {exc.status}"
            ) from exc

        uri = _address_uri(obj)
        if not uri:
            _logger.debug("addressable_without_address", kind=ref.kind, namespace=ref.namespace, name=ref.name)
            raise SinkNotFoundError(f"{ref.kind} {ref.namespace}/{ref.name} does not have an address")
        return uri
