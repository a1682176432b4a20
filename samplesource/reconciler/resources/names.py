"""Kubernetes-safe name derivation."""

from __future__ import annotations

import re

from samplesource.models.source import Owner

DNS1123_LABEL_MAX_LENGTH = 63
DNS1123_SUBDOMAIN_MAX_LENGTH = 253

_INVALID_DNS1123 = re.compile(r"[^a-z0-9.-]+")


def generate_fixed_name(owner: Owner, prefix: str) -> str:
    """Deterministic name for a child of *owner*, short enough for a DNS-1123 label.

    The owner's uid is appended so two owners with the same name in
    different lifetimes never share a child.
    """
    uid = owner.uid
    if not uid:
        return prefix[:DNS1123_LABEL_MAX_LENGTH].rstrip("-")
    room = DNS1123_LABEL_MAX_LENGTH - len(uid) - 1
    base = prefix[: max(room, 0)].rstrip("-")
    return f"{base}-{uid}" if base else uid[:DNS1123_LABEL_MAX_LENGTH]


def to_dns1123_subdomain(value: str) -> str:
    """Lower-case *value* and replace characters a DNS-1123 subdomain cannot hold."""
    name = _INVALID_DNS1123.sub("-", value.lower())
    return name[:DNS1123_SUBDOMAIN_MAX_LENGTH].strip("-.")
