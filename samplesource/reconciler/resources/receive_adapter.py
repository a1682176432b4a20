"""Desired receive adapter Deployment for a SampleSource."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from samplesource.models.source import SampleSource, new_controller_ref
from samplesource.reconciler.resources.names import generate_fixed_name

CONTAINER_NAME = "receive-adapter"
CONTROLLER_LABEL_VALUE = "sample-source-controller"
SOURCE_LABEL = "samples.knative.dev/source"
SOURCE_NAME_LABEL = "samples.knative.dev/name"
METRICS_DOMAIN = "knative.dev/eventing"


def labels(name: str) -> dict[str, str]:
    """Labels stamped on every child of the SampleSource called *name*."""
    return {
        SOURCE_LABEL: CONTROLLER_LABEL_VALUE,
        SOURCE_NAME_LABEL: name,
    }


def deployment_name(source: SampleSource) -> str:
    return generate_fixed_name(source, f"samplesource-{source.name}")


@dataclass
class ReceiveAdapterArgs:
    """Everything needed to build the receive adapter.  Every field is required."""

    event_source: str
    image: str
    source: SampleSource
    labels: dict[str, str]
    sink_uri: str


def make_receive_adapter(args: ReceiveAdapterArgs) -> dict[str, Any]:
    """Build (but do not submit) the receive adapter Deployment."""
    pod_spec: dict[str, Any] = {
        "containers": [
            {
                "name": CONTAINER_NAME,
                "image": args.image,
                "env": make_env(args.event_source, args.sink_uri, args.source.spec.interval),
            }
        ],
    }
    if args.source.spec.service_account_name:
        pod_spec["serviceAccountName"] = args.source.spec.service_account_name

    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "namespace": args.source.namespace,
            "name": deployment_name(args.source),
            "labels": dict(args.labels),
            "ownerReferences": [new_controller_ref(args.source)],
        },
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": dict(args.labels)},
            "template": {
                "metadata": {"labels": dict(args.labels)},
                "spec": pod_spec,
            },
        },
    }


def make_env(event_source: str, sink_uri: str, interval: str) -> list[dict[str, Any]]:
    return [
        {"name": "SINK_URI", "value": sink_uri},
        {"name": "EVENT_SOURCE", "value": event_source},
        {"name": "INTERVAL", "value": interval},
        {
            "name": "NAMESPACE",
            "valueFrom": {"fieldRef": {"apiVersion": "v1", "fieldPath": "metadata.namespace"}},
        },
        {"name": "METRICS_DOMAIN", "value": METRICS_DOMAIN},
        {"name": "K_METRICS_CONFIG", "value": ""},
        {"name": "K_LOGGING_CONFIG", "value": ""},
    ]
