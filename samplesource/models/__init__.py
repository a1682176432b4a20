"""Core data structures for the SampleSource controller."""

from samplesource.models.conditions import (
    CONDITION_READY,
    Condition,
    ConditionManager,
    ConditionSet,
    ConditionSeverity,
    ConditionStatus,
)
from samplesource.models.config import SampleSourceConfig
from samplesource.models.event_types import EventType, EventTypeKey, EventTypeSpec
from samplesource.models.results import Failed, GetResult, NotFound, Ok
from samplesource.models.source import (
    CONDITION_DEPLOYED,
    CONDITION_EVENT_TYPES_PROVIDED,
    CONDITION_SINK_PROVIDED,
    SAMPLE_CONDITION_SET,
    Destination,
    KReference,
    Owner,
    SampleSource,
    SampleSourceSpec,
    SampleSourceStatus,
)

__all__ = [
    "CONDITION_DEPLOYED",
    "CONDITION_EVENT_TYPES_PROVIDED",
    "CONDITION_READY",
    "CONDITION_SINK_PROVIDED",
    "Condition",
    "ConditionManager",
    "ConditionSet",
    "ConditionSeverity",
    "ConditionStatus",
    "Destination",
    "EventType",
    "EventTypeKey",
    "EventTypeSpec",
    "Failed",
    "GetResult",
    "KReference",
    "NotFound",
    "Ok",
    "Owner",
    "SAMPLE_CONDITION_SET",
    "SampleSource",
    "SampleSourceConfig",
    "SampleSourceSpec",
    "SampleSourceStatus",
]
