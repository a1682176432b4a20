"""kubernetes-asyncio implementations of the reconciler's collaborators.

Submodules
----------
stores    -- SampleSource, Deployment and EventType stores.
resolver  -- Destination → URI resolution against the API server.
recorder  -- Fire-and-forget core/v1 Event emission.
"""

from samplesource.kube.recorder import KubeEventRecorder
from samplesource.kube.resolver import KubeSinkResolver
from samplesource.kube.stores import (
    KubeDeploymentStore,
    KubeEventTypeStore,
    KubeSampleSourceStore,
    label_selector,
)

__all__ = [
    "KubeDeploymentStore",
    "KubeEventRecorder",
    "KubeEventTypeStore",
    "KubeSampleSourceStore",
    "KubeSinkResolver",
    "label_selector",
]
