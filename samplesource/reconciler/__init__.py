"""Reconciliation engine for SampleSource resources.

Submodules
----------
samplesource  -- Reconciler: orchestrates one reconcile and persists status.
deployment    -- Receive adapter Deployment convergence.
event_types   -- EventType set diff and application.
equality      -- Structural-subset and exact env comparisons for drift detection.
resources     -- Builders for the desired child resources.
protocols     -- Collaborator interfaces (stores, resolver, recorder, stats).
errors        -- Exception hierarchy.
"""

from samplesource.reconciler.deployment import ConvergeAction, ConvergeResult, converge_receive_adapter
from samplesource.reconciler.equality import is_exact_env_match, is_structural_subset, pod_spec_changed
from samplesource.reconciler.errors import (
    OwnershipConflictError,
    SampleSourceError,
    SinkMissingError,
    SinkNotFoundError,
    StatusUpdateError,
    StoreError,
)
from samplesource.reconciler.event_types import EventTypeDiff, compute_diff, reconcile_event_types
from samplesource.reconciler.samplesource import Reconciler, make_event_source, split_meta_namespace_key

__all__ = [
    "ConvergeAction",
    "ConvergeResult",
    "EventTypeDiff",
    "OwnershipConflictError",
    "Reconciler",
    "SampleSourceError",
    "SinkMissingError",
    "SinkNotFoundError",
    "StatusUpdateError",
    "StoreError",
    "compute_diff",
    "converge_receive_adapter",
    "is_exact_env_match",
    "is_structural_subset",
    "make_event_source",
    "pod_spec_changed",
    "reconcile_event_types",
    "split_meta_namespace_key",
]
