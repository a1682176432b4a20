"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_EVENT_TYPE = "dev.knative.sample"


@dataclass
class AdapterConfig:
    """Receive adapter deployment configuration."""

    image: str = ""
    event_types: tuple[str, ...] = (DEFAULT_EVENT_TYPE,)


@dataclass
class ControllerConfig:
    """Work queue and watch configuration."""

    namespace: str = ""
    workers: int = 2
    resync_seconds: int = 300
    retry_base_delay: float = 0.5
    retry_max_delay: float = 300.0


@dataclass
class APIConfig:
    """Health and metrics HTTP server configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class SampleSourceConfig:
    """Top-level controller configuration."""

    adapter: AdapterConfig = field(default_factory=AdapterConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
