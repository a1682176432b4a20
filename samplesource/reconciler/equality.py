"""Drift detection for the receive adapter pod spec.

Two comparisons with deliberately different semantics:

``is_structural_subset``
    Fields set in the desired object must match; fields the API server
    defaulted on the existing object are ignored.  Unset (empty string,
    ``None``, empty collection) desired values match anything, and a desired
    list matches any existing list it is a prefix of.

``is_exact_env_match``
    Container environment lists must be equal element by element.  Subset
    comparison alone cannot see an entry that was removed from the desired
    list.
"""

from __future__ import annotations

from typing import Any


def is_structural_subset(desired: Any, existing: Any) -> bool:
    """True if every field set in *desired* has the same value in *existing*."""
    if desired is None:
        return True
    if isinstance(desired, str):
        return desired == "" or desired == existing
    if isinstance(desired, dict):
        if not desired:
            return True
        if not isinstance(existing, dict):
            return False
        return all(is_structural_subset(value, existing.get(key)) for key, value in desired.items())
    if isinstance(desired, list):
        if not desired:
            return True
        # A desired list may be a prefix of the existing one.
        if not isinstance(existing, list) or len(desired) > len(existing):
            return False
        return all(is_structural_subset(d, e) for d, e in zip(desired, existing, strict=False))
    if isinstance(desired, bool) != isinstance(existing, bool):
        return False
    return bool(desired == existing)


def _normalize_env(env: list[dict[str, Any]] | None) -> list[tuple[str, str, Any]]:
    # The API server omits empty values, so "" and absent are the same entry.
    return [(e.get("name", ""), e.get("value") or "", e.get("valueFrom") or None) for e in env or []]


def is_exact_env_match(desired_pod_spec: dict[str, Any], existing_pod_spec: dict[str, Any]) -> bool:
    """True if both pod specs have the same containers with identical env lists."""
    desired_containers = desired_pod_spec.get("containers") or []
    existing_containers = existing_pod_spec.get("containers") or []
    if len(desired_containers) != len(existing_containers):
        return False
    for desired, existing in zip(desired_containers, existing_containers, strict=True):
        if _normalize_env(desired.get("env")) != _normalize_env(existing.get("env")):
            return False
    return True


def pod_spec_changed(existing_pod_spec: dict[str, Any], desired_pod_spec: dict[str, Any]) -> bool:
    """True if the existing pod spec has drifted from the desired one."""
    if not is_structural_subset(desired_pod_spec, existing_pod_spec):
        return True
    return not is_exact_env_match(desired_pod_spec, existing_pod_spec)
