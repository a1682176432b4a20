"""Controller package: decides when reconciles run.

Submodules
----------
queue       -- WorkQueue: dedup, per-key exclusivity, retry back-off.
watcher     -- ResourceWatcher: watch streams mapped to SampleSource keys.
controller  -- Controller: wires watchers, queue and periodic resync.
"""

from samplesource.controller.controller import Controller
from samplesource.controller.queue import QueueFullError, WorkQueue
from samplesource.controller.watcher import ResourceWatcher, owner_key, source_key

__all__ = [
    "Controller",
    "QueueFullError",
    "ResourceWatcher",
    "WorkQueue",
    "owner_key",
    "source_key",
]
