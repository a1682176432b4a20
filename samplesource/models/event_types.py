"""EventType descriptor model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EVENTING_GROUP = "eventing.knative.dev"
EVENTING_VERSION = "v1alpha1"
EVENT_TYPE_KIND = "EventType"
EVENT_TYPE_PLURAL = "eventtypes"


@dataclass(frozen=True)
class EventTypeSpec:
    """Payload of an EventType.  Compared as a whole when diffing."""

    type: str
    source: str
    schema: str = ""
    broker: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "source": self.source, "broker": self.broker}
        if self.schema:
            out["schema"] = self.schema
        if self.description:
            out["description"] = self.description
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EventTypeSpec:
        return cls(
            type=str(raw.get("type", "")),
            source=str(raw.get("source", "")),
            schema=str(raw.get("schema", "")),
            broker=str(raw.get("broker", "")),
            description=str(raw.get("description", "")),
        )


EventTypeKey = tuple[str, str, str, str]


@dataclass
class EventType:
    """An EventType descriptor announcing one kind of event a source emits.

    ``name`` is empty until the API server assigns one from ``generate_name``.
    """

    namespace: str
    spec: EventTypeSpec
    name: str = ""
    generate_name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    owner_references: list[dict[str, Any]] = field(default_factory=list)

    @property
    def key(self) -> EventTypeKey:
        """Identity used for diffing: (type, source, schema, broker)."""
        return (self.spec.type, self.spec.source, self.spec.schema, self.spec.broker)

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "name": self.name,
            "labels": self.labels,
            "ownerReferences": self.owner_references,
        }

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"namespace": self.namespace}
        if self.name:
            metadata["name"] = self.name
        if self.generate_name:
            metadata["generateName"] = self.generate_name
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.owner_references:
            metadata["ownerReferences"] = [dict(r) for r in self.owner_references]
        return {
            "apiVersion": f"{EVENTING_GROUP}/{EVENTING_VERSION}",
            "kind": EVENT_TYPE_KIND,
            "metadata": metadata,
            "spec": self.spec.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EventType:
        metadata = raw.get("metadata") or {}
        return cls(
            namespace=str(metadata.get("namespace", "")),
            name=str(metadata.get("name", "")),
            generate_name=str(metadata.get("generateName", "")),
            labels=dict(metadata.get("labels") or {}),
            owner_references=list(metadata.get("ownerReferences") or []),
            spec=EventTypeSpec.from_dict(raw.get("spec") or {}),
        )
