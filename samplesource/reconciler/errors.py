"""Exception hierarchy for the reconciler."""

from __future__ import annotations


class SampleSourceError(Exception):
    """Base class for all reconcile failures."""


class SinkMissingError(SampleSourceError):
    """spec.sink is not set."""

    def __init__(self) -> None:
        super().__init__("spec.sink missing")


class SinkNotFoundError(SampleSourceError):
    """The destination could not be resolved to a URI."""


class OwnershipConflictError(SampleSourceError):
    """A child resource exists but is controlled by something else."""

    def __init__(self, kind: str, name: str, owner: str) -> None:
        super().__init__(f"{kind.lower()} {name!r} is not owned by SampleSource {owner!r}")
        self.kind = kind
        self.name = name
        self.owner = owner


class StoreError(SampleSourceError):
    """A resource store operation failed."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


class StatusUpdateError(SampleSourceError):
    """Writing the status sub-resource failed."""
