"""SampleSource resource model and its status lifecycle."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from samplesource.models.conditions import (
    Condition,
    ConditionSet,
    living_condition_set,
)

GROUP = "samples.knative.dev"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"
KIND = "SampleSource"
PLURAL = "samplesources"

CONDITION_SINK_PROVIDED = "SinkProvided"
CONDITION_DEPLOYED = "Deployed"
CONDITION_EVENT_TYPES_PROVIDED = "EventTypesProvided"

SAMPLE_CONDITION_SET: ConditionSet = living_condition_set(
    CONDITION_SINK_PROVIDED,
    CONDITION_DEPLOYED,
    CONDITION_EVENT_TYPES_PROVIDED,
)

REASON_SINK_EMPTY = "SinkEmpty"
REASON_DEPLOYMENT_UNAVAILABLE = "DeploymentUnavailable"

SINK_EMPTY_MESSAGE = "Sink has resolved to empty."
DEPRECATED_SINK_REF_MESSAGE = (
    "Using deprecated object ref fields when specifying spec.sink. "
    "These will be removed in a future release. Update to spec.sink.ref."
)


class Owner(Protocol):
    """Stable identity fields needed to build and check owner references."""

    @property
    def api_version(self) -> str: ...

    @property
    def kind(self) -> str: ...

    @property
    def namespace(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def uid(self) -> str: ...


def new_controller_ref(owner: Owner) -> dict[str, Any]:
    """Build a controller owner reference pointing at *owner*."""
    return {
        "apiVersion": owner.api_version,
        "kind": owner.kind,
        "name": owner.name,
        "uid": owner.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def is_controlled_by(metadata: dict[str, Any], owner: Owner) -> bool:
    """True if *metadata* carries a controller reference whose uid matches *owner*."""
    for ref in metadata.get("ownerReferences") or []:
        if ref.get("controller") and ref.get("uid") == owner.uid:
            return True
    return False


@dataclass
class KReference:
    """Reference to another Kubernetes object."""

    kind: str
    name: str
    api_version: str = ""
    namespace: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind, "name": self.name}
        if self.api_version:
            out["apiVersion"] = self.api_version
        if self.namespace:
            out["namespace"] = self.namespace
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> KReference:
        return cls(
            kind=str(raw.get("kind", "")),
            name=str(raw.get("name", "")),
            api_version=str(raw.get("apiVersion", "")),
            namespace=str(raw.get("namespace", "")),
        )


@dataclass
class Destination:
    """Where events are delivered.

    Either ``ref`` or ``uri`` (or both, in which case ``uri`` is resolved
    relative to the ref).  The flat ``deprecated_*`` fields are the legacy
    way of naming the target object.
    """

    ref: KReference | None = None
    uri: str = ""
    deprecated_api_version: str = ""
    deprecated_kind: str = ""
    deprecated_name: str = ""
    deprecated_namespace: str = ""

    @property
    def uses_deprecated_ref(self) -> bool:
        return bool(self.deprecated_api_version and self.deprecated_kind and self.deprecated_name)

    def get_ref(self) -> KReference | None:
        """Return the referenced object, from either the current or legacy shape."""
        if self.ref is not None:
            return self.ref
        if self.deprecated_name:
            return KReference(
                kind=self.deprecated_kind,
                name=self.deprecated_name,
                api_version=self.deprecated_api_version,
                namespace=self.deprecated_namespace,
            )
        return None

    def with_default_namespace(self, namespace: str) -> Destination:
        """Return a copy whose object reference has a namespace, defaulting to *namespace*."""
        dest = copy.deepcopy(self)
        if dest.ref is not None:
            if not dest.ref.namespace:
                dest.ref.namespace = namespace
        elif dest.deprecated_name and not dest.deprecated_namespace:
            dest.deprecated_namespace = namespace
        return dest

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.ref is not None:
            out["ref"] = self.ref.to_dict()
        if self.uri:
            out["uri"] = self.uri
        for key, value in (
            ("apiVersion", self.deprecated_api_version),
            ("kind", self.deprecated_kind),
            ("name", self.deprecated_name),
            ("namespace", self.deprecated_namespace),
        ):
            if value:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Destination:
        ref = raw.get("ref")
        return cls(
            ref=KReference.from_dict(ref) if ref else None,
            uri=str(raw.get("uri", "")),
            deprecated_api_version=str(raw.get("apiVersion", "")),
            deprecated_kind=str(raw.get("kind", "")),
            deprecated_name=str(raw.get("name", "")),
            deprecated_namespace=str(raw.get("namespace", "")),
        )


@dataclass
class SampleSourceSpec:
    """Desired state of a SampleSource."""

    sink: Destination | None = None
    interval: str = ""
    service_account_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.sink is not None:
            out["sink"] = self.sink.to_dict()
        if self.interval:
            out["interval"] = self.interval
        if self.service_account_name:
            out["serviceAccountName"] = self.service_account_name
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SampleSourceSpec:
        sink = raw.get("sink")
        return cls(
            sink=Destination.from_dict(sink) if sink else None,
            interval=str(raw.get("interval", "")),
            service_account_name=str(raw.get("serviceAccountName", "")),
        )


@dataclass
class SampleSourceStatus:
    """Observed state of a SampleSource.

    The lifecycle methods below are the only writers of ``conditions``.
    """

    conditions: list[Condition] = field(default_factory=list)
    sink_uri: str = ""
    observed_generation: int = 0

    def get_condition(self, condition_type: str) -> Condition | None:
        return SAMPLE_CONDITION_SET.manage(self).get_condition(condition_type)

    def initialize_conditions(self) -> None:
        """Set every unset tracked condition to Unknown."""
        SAMPLE_CONDITION_SET.manage(self).initialize_conditions()

    def mark_sink(self, uri: str) -> None:
        """Record the resolved sink; an empty URI leaves the sink condition Unknown."""
        self.sink_uri = uri
        if uri:
            SAMPLE_CONDITION_SET.manage(self).mark_true(CONDITION_SINK_PROVIDED)
        else:
            SAMPLE_CONDITION_SET.manage(self).mark_unknown(CONDITION_SINK_PROVIDED, REASON_SINK_EMPTY, SINK_EMPTY_MESSAGE)

    def mark_sink_warn_ref_deprecated(self, uri: str) -> None:
        """Like mark_sink, but warns that the legacy reference fields are in use."""
        self.sink_uri = uri
        if uri:
            SAMPLE_CONDITION_SET.manage(self).mark_true_with_warning(
                CONDITION_SINK_PROVIDED, DEPRECATED_SINK_REF_MESSAGE
            )
        else:
            SAMPLE_CONDITION_SET.manage(self).mark_unknown(CONDITION_SINK_PROVIDED, REASON_SINK_EMPTY, SINK_EMPTY_MESSAGE)

    def mark_no_sink(self, reason: str, message: str = "") -> None:
        SAMPLE_CONDITION_SET.manage(self).mark_false(CONDITION_SINK_PROVIDED, reason, message)

    def propagate_deployment_availability(self, deployment: dict[str, Any]) -> None:
        """Mark Deployed from the Available condition of *deployment*.

        Deeper failure reasons are not propagated; only the name is reported.
        """
        if deployment_is_available(deployment):
            SAMPLE_CONDITION_SET.manage(self).mark_true(CONDITION_DEPLOYED)
        else:
            name = deployment.get("metadata", {}).get("name", "")
            SAMPLE_CONDITION_SET.manage(self).mark_false(
                CONDITION_DEPLOYED,
                REASON_DEPLOYMENT_UNAVAILABLE,
                f"The Deployment '{name}' is unavailable.",
            )

    def mark_event_types(self) -> None:
        SAMPLE_CONDITION_SET.manage(self).mark_true(CONDITION_EVENT_TYPES_PROVIDED)

    def mark_no_event_types(self, reason: str, message: str = "") -> None:
        SAMPLE_CONDITION_SET.manage(self).mark_false(CONDITION_EVENT_TYPES_PROVIDED, reason, message)

    def is_ready(self) -> bool:
        return SAMPLE_CONDITION_SET.manage(self).is_happy()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"conditions": [c.to_dict() for c in self.conditions]}
        if self.observed_generation:
            out["observedGeneration"] = self.observed_generation
        if self.sink_uri:
            out["sinkUri"] = self.sink_uri
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> SampleSourceStatus:
        raw = raw or {}
        conditions = sorted(
            (Condition.from_dict(c) for c in raw.get("conditions") or []),
            key=lambda c: c.type,
        )
        return cls(
            conditions=conditions,
            sink_uri=str(raw.get("sinkUri", "")),
            observed_generation=int(raw.get("observedGeneration", 0)),
        )


def deployment_is_available(deployment: dict[str, Any]) -> bool:
    """True if the deployment reports an Available condition with status True."""
    for cond in deployment.get("status", {}).get("conditions") or []:
        if cond.get("type") == "Available":
            return cond.get("status") == "True"
    return False


@dataclass
class SampleSource:
    """A SampleSource custom resource."""

    namespace: str
    name: str
    uid: str = ""
    generation: int = 0
    resource_version: str = ""
    creation_timestamp: datetime | None = None
    labels: dict[str, str] = field(default_factory=dict)
    spec: SampleSourceSpec = field(default_factory=SampleSourceSpec)
    status: SampleSourceStatus = field(default_factory=SampleSourceStatus)

    api_version: str = API_VERSION
    kind: str = KIND

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def deep_copy(self) -> SampleSource:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"namespace": self.namespace, "name": self.name}
        if self.uid:
            metadata["uid"] = self.uid
        if self.generation:
            metadata["generation"] = self.generation
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        if self.labels:
            metadata["labels"] = dict(self.labels)
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SampleSource:
        metadata = raw.get("metadata") or {}
        created = metadata.get("creationTimestamp")
        if isinstance(created, str) and created:
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        return cls(
            namespace=str(metadata.get("namespace", "")),
            name=str(metadata.get("name", "")),
            uid=str(metadata.get("uid", "")),
            generation=int(metadata.get("generation", 0)),
            resource_version=str(metadata.get("resourceVersion", "")),
            creation_timestamp=created if isinstance(created, datetime) else None,
            labels=dict(metadata.get("labels") or {}),
            spec=SampleSourceSpec.from_dict(raw.get("spec") or {}),
            status=SampleSourceStatus.from_dict(raw.get("status")),
        )
