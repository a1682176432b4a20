"""EventType convergence.

``compute_diff`` is pure: given the EventTypes that exist and the ones that
should exist, it returns what to create and what to delete.  Descriptors
are never patched; a changed payload is a delete of the old object plus a
create of the new one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import NamedTuple

from samplesource.models.event_types import EventType, EventTypeKey
from samplesource.models.source import SampleSource, is_controlled_by
from samplesource.observability.logging import get_logger
from samplesource.observability.metrics import child_writes_total
from samplesource.reconciler.protocols import EventTypeStore
from samplesource.reconciler.resources import EventTypeArgs, labels, make_event_type

_logger = get_logger("reconciler.event_types")

BROKER_KIND = "Broker"


class EventTypeDiff(NamedTuple):
    to_create: list[EventType]
    to_delete: list[EventType]


def key_from_event_type(event_type: EventType) -> EventTypeKey:
    return event_type.key


def as_map(
    event_types: Iterable[EventType],
    key_fn: Callable[[EventType], EventTypeKey] = key_from_event_type,
) -> dict[EventTypeKey, EventType]:
    return {key_fn(et): et for et in event_types}


def compute_diff(current: list[EventType], expected: list[EventType]) -> EventTypeDiff:
    """Compute the creates and deletes that turn *current* into *expected*.

    Both passes iterate the input lists, not the maps, so output order is
    reproducible.
    """
    to_create: list[EventType] = []
    to_delete: list[EventType] = []
    current_map = as_map(current)
    expected_map = as_map(expected)

    for e in expected:
        c = current_map.get(e.key)
        if c is None:
            to_create.append(e)
        elif e.spec != c.spec:
            to_delete.append(c)
            to_create.append(e)

    # Current EventTypes that are no longer expected, e.g. after a broker change.
    for c in current:
        if c.key not in expected_map:
            to_delete.append(c)

    return EventTypeDiff(to_create=to_create, to_delete=to_delete)


def make_event_types(src: SampleSource, event_source: str, declared_types: Iterable[str]) -> list[EventType]:
    """Desired EventTypes for *src*.  Only Broker sinks get any."""
    if src.spec.sink is None:
        return []
    ref = src.spec.sink.get_ref()
    if ref is None or ref.kind != BROKER_KIND:
        return []
    return [
        make_event_type(EventTypeArgs(src=src, type=declared, source=event_source, broker=ref.name))
        for declared in dict.fromkeys(declared_types)
    ]


async def get_event_types(store: EventTypeStore, src: SampleSource) -> list[EventType]:
    """EventTypes carrying *src*'s labels and controlled by it."""
    listed = await store.list(src.namespace, labels(src.name))
    return [et for et in listed if is_controlled_by(et.metadata, src)]


async def reconcile_event_types(
    store: EventTypeStore,
    src: SampleSource,
    event_source: str,
    declared_types: Iterable[str],
) -> EventTypeDiff:
    """Apply the diff: every delete, then every create.  The first failure aborts the rest."""
    log = _logger.bind(key=src.key)
    current = await get_event_types(store, src)
    expected = make_event_types(src, event_source, declared_types)
    diff = compute_diff(current, expected)

    for event_type in diff.to_delete:
        try:
            await store.delete(event_type.namespace, event_type.name)
        except Exception as exc:
            log.error("event_type_delete_failed", event_type=event_type.name, error=str(exc))
            raise
        child_writes_total.labels(kind="EventType", operation="delete").inc()

    for event_type in diff.to_create:
        try:
            await store.create(event_type)
        except Exception as exc:
            log.error("event_type_create_failed", type=event_type.spec.type, error=str(exc))
            raise
        child_writes_total.labels(kind="EventType", operation="create").inc()

    if diff.to_create or diff.to_delete:
        log.info("event_types_reconciled", created=len(diff.to_create), deleted=len(diff.to_delete))
    return diff
