"""SampleSource reconciler.

``Reconciler.reconcile`` is handed a ``namespace/name`` key by the work
queue.  It re-reads the resource, drives it toward its desired state
(sink → receive adapter → availability → event types) and writes the
status back whether or not that succeeded.  Any error is re-raised after
the status write so the queue can retry.

Every step is safe to repeat: a second reconcile with no external change
issues no writes and leaves the status byte-identical.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from samplesource.models.results import Failed, NotFound
from samplesource.models.source import KIND, SampleSource
from samplesource.observability.logging import get_logger
from samplesource.observability.metrics import reconcile_duration_seconds, reconcile_total
from samplesource.reconciler.deployment import (
    EVENT_NORMAL,
    EVENT_WARNING,
    converge_receive_adapter,
)
from samplesource.reconciler.errors import SinkMissingError, StatusUpdateError, StoreError
from samplesource.reconciler.event_types import reconcile_event_types
from samplesource.reconciler.protocols import (
    DeploymentStore,
    EventRecorder,
    EventTypeStore,
    SampleSourceStore,
    SinkResolver,
    StatsReporter,
)
from samplesource.reconciler.resources import ReceiveAdapterArgs, labels, make_receive_adapter

_logger = get_logger("reconciler")

REASON_SINK_MISSING = "SinkMissing"
REASON_SINK_NOT_FOUND = "NotFound"
REASON_EVENT_TYPES_FAILED = "EventTypesReconcileFailed"

REASON_RECONCILED = "SampleSourceReconciled"
REASON_READINESS_CHANGED = "SampleSourceReadinessChanged"
REASON_UPDATE_STATUS_FAILED = "SampleSourceUpdateStatusFailed"


def split_meta_namespace_key(key: str) -> tuple[str, str]:
    """Split ``namespace/name`` (or a bare ``name``) into its parts."""
    parts = key.split("/")
    if len(parts) == 1 and parts[0]:
        return "", parts[0]
    if len(parts) == 2 and parts[1]:
        return parts[0], parts[1]
    raise ValueError(f"unexpected key format: {key!r}")


def make_event_source(src: SampleSource) -> str:
    """The CloudEvents source attribute for events emitted by *src*."""
    return f"{src.namespace}/{src.name}"


def _now() -> datetime:
    return datetime.now(tz=UTC)


class Reconciler:
    """Reconciles SampleSource resources.

    All collaborators are injected; the reconciler holds no per-resource
    state between calls.
    """

    def __init__(
        self,
        *,
        receive_adapter_image: str,
        event_types: Iterable[str],
        source_store: SampleSourceStore,
        deployment_store: DeploymentStore,
        event_type_store: EventTypeStore,
        sink_resolver: SinkResolver,
        recorder: EventRecorder,
        stats_reporter: StatsReporter,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        if not receive_adapter_image:
            raise ValueError("receive adapter image must not be empty")
        self._image = receive_adapter_image
        self._event_types = tuple(event_types)
        self._sources = source_store
        self._deployments = deployment_store
        self._event_type_store = event_type_store
        self._sink_resolver = sink_resolver
        self._recorder = recorder
        self._stats = stats_reporter
        self._clock = clock

    async def reconcile(self, key: str) -> None:
        """Reconcile the SampleSource identified by *key*.

        Raises the reconcile error (or the status write error) so the caller
        can requeue.  Invalid keys and deleted resources return quietly.
        """
        log = _logger.bind(key=key)
        try:
            namespace, name = split_meta_namespace_key(key)
        except ValueError:
            log.error("invalid_resource_key")
            return

        result = await self._sources.get(namespace, name)
        if isinstance(result, NotFound):
            log.info("samplesource_no_longer_exists")
            return
        if isinstance(result, Failed):
            raise StoreError("error getting SampleSource", result.detail) from result.cause

        # Never mutate the store's copy.
        source = result.value.deep_copy()

        started = time.monotonic()
        reconcile_err: Exception | None = None
        try:
            await self._reconcile(source)
        except Exception as exc:
            reconcile_err = exc
        reconcile_duration_seconds.observe(time.monotonic() - started)

        if reconcile_err is not None:
            reconcile_total.labels(outcome="error").inc()
            log.warning("error_reconciling_samplesource", error=str(reconcile_err))
        else:
            reconcile_total.labels(outcome="success").inc()
            log.debug("samplesource_reconciled")
            self._recorder.event(
                source, EVENT_NORMAL, REASON_RECONCILED, f'SampleSource reconciled: "{namespace}/{name}"'
            )

        try:
            await self._update_status(source.deep_copy())
        except Exception as exc:
            log.warning("failed_to_update_samplesource_status", error=str(exc))
            self._recorder.event(
                source, EVENT_WARNING, REASON_UPDATE_STATUS_FAILED, f"Failed to update SampleSource's status: {exc}"
            )
            raise StatusUpdateError(f"updating status of {key}: {exc}") from exc

        if reconcile_err is not None:
            raise reconcile_err

    async def _reconcile(self, source: SampleSource) -> None:
        status = source.status
        status.initialize_conditions()
        status.observed_generation = source.generation
        log = _logger.bind(key=source.key)

        if source.spec.sink is None:
            status.mark_no_sink(REASON_SINK_MISSING)
            raise SinkMissingError()

        # The resolver needs a namespace on object references.
        dest = source.spec.sink.with_default_namespace(source.namespace)

        try:
            sink_uri = await self._sink_resolver.resolve(dest, source)
        except Exception as exc:
            status.mark_no_sink(REASON_SINK_NOT_FOUND, str(exc))
            raise

        if source.spec.sink.uses_deprecated_ref:
            status.mark_sink_warn_ref_deprecated(sink_uri)
        else:
            status.mark_sink(sink_uri)

        event_source = make_event_source(source)
        log.debug("event_source", source=event_source)
        expected = make_receive_adapter(
            ReceiveAdapterArgs(
                event_source=event_source,
                image=self._image,
                source=source,
                labels=labels(source.name),
                sink_uri=sink_uri,
            )
        )
        try:
            converged = await converge_receive_adapter(self._deployments, self._recorder, source, expected)
        except Exception as exc:
            log.error("unable_to_create_receive_adapter", error=str(exc))
            raise

        status.propagate_deployment_availability(converged.deployment)

        try:
            await reconcile_event_types(self._event_type_store, source, event_source, self._event_types)
        except Exception:
            status.mark_no_event_types(REASON_EVENT_TYPES_FAILED)
            raise
        status.mark_event_types()

    async def _update_status(self, desired: SampleSource) -> SampleSource | None:
        """Persist *desired*'s status if it differs from what is stored.

        Reports the not-ready → ready transition once, after a successful write.
        """
        log = _logger.bind(key=desired.key)
        result = await self._sources.get(desired.namespace, desired.name)
        if isinstance(result, NotFound):
            log.debug("samplesource_deleted_before_status_update")
            return None
        if isinstance(result, Failed):
            raise StoreError("error getting SampleSource", result.detail) from result.cause

        current = result.value
        if current.status == desired.status:
            return current

        becomes_ready = desired.status.is_ready() and not current.status.is_ready()

        existing = current.deep_copy()
        existing.status = desired.status
        updated = await self._sources.update_status(existing)

        if becomes_ready:
            created_at = updated.creation_timestamp or current.creation_timestamp
            duration = (self._clock() - created_at).total_seconds() if created_at else 0.0
            log.info("samplesource_became_ready", after_seconds=duration)
            self._recorder.event(
                current, EVENT_NORMAL, REASON_READINESS_CHANGED, f'SampleSource "{current.name}" became ready'
            )
            try:
                self._stats.report_ready(KIND, current.namespace, current.name, duration)
            except Exception as exc:
                log.info("failed_to_record_ready", error=str(exc))

        return updated
