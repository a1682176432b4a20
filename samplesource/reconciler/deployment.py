"""Receive adapter Deployment convergence.

Look up the Deployment by its deterministic name, create it when missing,
refuse to touch it when another controller owns it, and overwrite its pod
spec when it has drifted.  The returned Deployment is what availability is
read from.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from samplesource.models.results import Failed, NotFound, Ok
from samplesource.models.source import SampleSource, is_controlled_by
from samplesource.observability.logging import get_logger
from samplesource.observability.metrics import child_writes_total
from samplesource.reconciler.equality import pod_spec_changed
from samplesource.reconciler.errors import OwnershipConflictError, StoreError
from samplesource.reconciler.protocols import DeploymentStore, EventRecorder
from samplesource.reconciler.resources import labels

_logger = get_logger("reconciler.deployment")

EVENT_NORMAL = "Normal"
EVENT_WARNING = "Warning"

REASON_DEPLOYMENT_CREATED = "SampleSourceDeploymentCreated"
REASON_DEPLOYMENT_UPDATED = "SampleSourceDeploymentUpdated"


class ConvergeAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ConvergeResult:
    deployment: dict[str, Any]
    action: ConvergeAction


def _pod_spec(deployment: dict[str, Any]) -> dict[str, Any]:
    return deployment.get("spec", {}).get("template", {}).get("spec", {}) or {}


async def find_receive_adapter(store: DeploymentStore, src: SampleSource) -> dict[str, Any] | None:
    """Fallback discovery: a Deployment with *src*'s labels that *src* controls."""
    for deployment in await store.list(src.namespace, labels(src.name)):
        if is_controlled_by(deployment.get("metadata", {}), src):
            return deployment
    return None


async def converge_receive_adapter(
    store: DeploymentStore,
    recorder: EventRecorder,
    src: SampleSource,
    expected: dict[str, Any],
) -> ConvergeResult:
    """Bring the receive adapter in line with *expected*."""
    name = expected["metadata"]["name"]
    log = _logger.bind(key=src.key, deployment=name)

    result = await store.get(src.namespace, name)
    if isinstance(result, Failed):
        raise StoreError("error getting receive adapter", result.detail) from result.cause

    if isinstance(result, Ok):
        existing = result.value
    else:
        assert isinstance(result, NotFound)
        found = await find_receive_adapter(store, src)
        if found is None:
            created = await store.create(expected)
            child_writes_total.labels(kind="Deployment", operation="create").inc()
            recorder.event(src, EVENT_NORMAL, REASON_DEPLOYMENT_CREATED, f"Deployment {name!r} created")
            log.info("receive_adapter_created")
            return ConvergeResult(deployment=created, action=ConvergeAction.CREATED)
        existing = found

    existing_name = existing.get("metadata", {}).get("name", name)
    if not is_controlled_by(existing.get("metadata", {}), src):
        raise OwnershipConflictError("Deployment", existing_name, src.name)

    if pod_spec_changed(_pod_spec(existing), _pod_spec(expected)):
        desired = copy.deepcopy(existing)
        desired.setdefault("spec", {}).setdefault("template", {})["spec"] = copy.deepcopy(_pod_spec(expected))
        updated = await store.update(desired)
        child_writes_total.labels(kind="Deployment", operation="update").inc()
        recorder.event(src, EVENT_NORMAL, REASON_DEPLOYMENT_UPDATED, "Deployment updated")
        log.info("receive_adapter_updated", deployment=existing_name)
        return ConvergeResult(deployment=updated, action=ConvergeAction.UPDATED)

    log.debug("reusing_existing_receive_adapter", deployment=existing_name)
    return ConvergeResult(deployment=existing, action=ConvergeAction.UNCHANGED)
