"""Desired EventType descriptors for a SampleSource."""

from __future__ import annotations

from dataclasses import dataclass

from samplesource.models.event_types import EventType, EventTypeSpec
from samplesource.models.source import SampleSource, new_controller_ref
from samplesource.reconciler.resources.names import to_dns1123_subdomain
from samplesource.reconciler.resources.receive_adapter import labels


@dataclass
class EventTypeArgs:
    src: SampleSource
    type: str
    source: str
    broker: str


def make_event_type(args: EventTypeArgs) -> EventType:
    return EventType(
        namespace=args.src.namespace,
        generate_name=f"{to_dns1123_subdomain(args.type)}-",
        labels=labels(args.src.name),
        owner_references=[new_controller_ref(args.src)],
        spec=EventTypeSpec(
            type=args.type,
            source=args.source,
            broker=args.broker,
        ),
    )
