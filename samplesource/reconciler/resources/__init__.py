"""Builders for the child resources a SampleSource owns.

Nothing here talks to the API server; every function returns the desired
object for the reconciler to compare against what exists.
"""

from samplesource.reconciler.resources.event_type import EventTypeArgs, make_event_type
from samplesource.reconciler.resources.names import generate_fixed_name, to_dns1123_subdomain
from samplesource.reconciler.resources.receive_adapter import (
    ReceiveAdapterArgs,
    labels,
    make_receive_adapter,
)

__all__ = [
    "EventTypeArgs",
    "ReceiveAdapterArgs",
    "generate_fixed_name",
    "labels",
    "make_event_type",
    "make_receive_adapter",
    "to_dns1123_subdomain",
]
