"""Condition tracking for resource status.

A ``ConditionSet`` names one aggregate ("happy") condition and the
dependent conditions that feed it.  The set is immutable and built once at
import time; ``ConditionSet.manage`` returns a ``ConditionManager`` bound to
a single status object for the duration of a reconcile.

The aggregate condition is never set directly.  Every mark re-derives it
from the dependents so it cannot drift from its inputs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

CONDITION_READY = "Ready"


class ConditionStatus(StrEnum):
    """Tri-state condition status."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionSeverity(StrEnum):
    """Condition severity.  Error-severity conditions are serialised without a severity field."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"


def _now() -> datetime:
    return datetime.now(tz=UTC)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class Condition:
    """A named tri-state health signal."""

    type: str
    status: ConditionStatus
    severity: ConditionSeverity = ConditionSeverity.ERROR
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""

    def same_state(self, other: Condition) -> bool:
        """True if *other* differs from this condition at most in its transition time."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.severity == other.severity
            and self.reason == other.reason
            and self.message == other.message
        )

    @property
    def is_true(self) -> bool:
        return self.status == ConditionStatus.TRUE

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "status": self.status.value}
        if self.severity != ConditionSeverity.ERROR:
            out["severity"] = self.severity.value
        if self.last_transition_time:
            out["lastTransitionTime"] = self.last_transition_time
        if self.reason:
            out["reason"] = self.reason
        if self.message:
            out["message"] = self.message
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Condition:
        severity = raw.get("severity") or ConditionSeverity.ERROR.value
        if severity not in {s.value for s in ConditionSeverity}:
            # Unrecognised severities read as Info.
            severity = ConditionSeverity.INFO.value
        return cls(
            type=str(raw.get("type", "")),
            status=ConditionStatus(raw.get("status", ConditionStatus.UNKNOWN.value)),
            severity=ConditionSeverity(severity),
            reason=str(raw.get("reason", "")),
            message=str(raw.get("message", "")),
            last_transition_time=str(raw.get("lastTransitionTime", "")),
        )


class ConditionsAccessor(Protocol):
    """Anything that holds a mutable list of conditions."""

    conditions: list[Condition]


@dataclass(frozen=True)
class ConditionSet:
    """Immutable definition of the conditions tracked for one resource kind."""

    happy: str
    dependents: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.happy in self.dependents:
            raise ValueError(f"aggregate condition {self.happy!r} cannot also be a dependent")
        if len(set(self.dependents)) != len(self.dependents):
            raise ValueError(f"duplicate dependent conditions in {self.dependents}")

    @property
    def tracked(self) -> tuple[str, ...]:
        return (self.happy, *self.dependents)

    def manage(self, accessor: ConditionsAccessor, clock: Callable[[], datetime] = _now) -> ConditionManager:
        return ConditionManager(self, accessor, clock)


def living_condition_set(*dependents: str) -> ConditionSet:
    """Build a condition set whose aggregate condition is ``Ready``."""
    return ConditionSet(happy=CONDITION_READY, dependents=tuple(dependents))


class ConditionManager:
    """Mutates the conditions of one status object according to a ConditionSet."""

    def __init__(
        self,
        condition_set: ConditionSet,
        accessor: ConditionsAccessor,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._set = condition_set
        self._accessor = accessor
        self._clock = clock

    def get_condition(self, condition_type: str) -> Condition | None:
        for cond in self._accessor.conditions:
            if cond.type == condition_type:
                return cond
        return None

    def set_condition(self, condition: Condition) -> None:
        """Store *condition*, keeping the transition time when nothing else changed."""
        existing = self.get_condition(condition.type)
        if existing is not None and existing.same_state(condition):
            return
        stamped = replace(condition, last_transition_time=format_timestamp(self._clock()))
        others = [c for c in self._accessor.conditions if c.type != condition.type]
        others.append(stamped)
        # Kept sorted by type.
        others.sort(key=lambda c: c.type)
        self._accessor.conditions = others

    def initialize_conditions(self) -> None:
        """Set every tracked condition that is absent to Unknown."""
        for condition_type in self._set.tracked:
            if self.get_condition(condition_type) is None:
                self.set_condition(Condition(type=condition_type, status=ConditionStatus.UNKNOWN))
        self._recompute_happy()

    def mark_true(self, condition_type: str) -> None:
        self.set_condition(Condition(type=condition_type, status=ConditionStatus.TRUE))
        self._recompute_happy()

    def mark_true_with_warning(self, condition_type: str, message: str) -> None:
        self.set_condition(
            Condition(
                type=condition_type,
                status=ConditionStatus.TRUE,
                severity=ConditionSeverity.ERROR,
                message=message,
            )
        )
        self._recompute_happy()

    def mark_false(self, condition_type: str, reason: str, message: str = "") -> None:
        self.set_condition(
            Condition(type=condition_type, status=ConditionStatus.FALSE, reason=reason, message=message)
        )
        self._recompute_happy()

    def mark_unknown(self, condition_type: str, reason: str, message: str = "") -> None:
        self.set_condition(
            Condition(type=condition_type, status=ConditionStatus.UNKNOWN, reason=reason, message=message)
        )
        self._recompute_happy()

    def is_happy(self) -> bool:
        """True iff every dependent condition is True."""
        for condition_type in self._set.dependents:
            cond = self.get_condition(condition_type)
            if cond is None or not cond.is_true:
                return False
        return True

    def _recompute_happy(self) -> None:
        if not self._set.dependents:
            return
        first_false: Condition | None = None
        first_unknown: Condition | None = None
        for condition_type in self._set.dependents:
            cond = self.get_condition(condition_type)
            if cond is None:
                cond = Condition(type=condition_type, status=ConditionStatus.UNKNOWN)
            if cond.status == ConditionStatus.FALSE and first_false is None:
                first_false = cond
            elif cond.status == ConditionStatus.UNKNOWN and first_unknown is None:
                first_unknown = cond

        source = first_false or first_unknown
        if source is None:
            happy = Condition(type=self._set.happy, status=ConditionStatus.TRUE)
        else:
            happy = Condition(
                type=self._set.happy,
                status=source.status,
                reason=source.reason,
                message=source.message,
            )
        self.set_condition(happy)