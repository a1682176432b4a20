"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from samplesource.models.config import (
    DEFAULT_EVENT_TYPE,
    AdapterConfig,
    APIConfig,
    ControllerConfig,
    LogConfig,
    SampleSourceConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"SAMPLE_SOURCE_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float) -> float:
    val = float(_env(key, str(default)))
    if val <= 0:
        raise ValueError(f"SAMPLE_SOURCE_{key} must be positive, got {val}")
    return val


def _require(key: str) -> str:
    val = _env(key).strip()
    if not val:
        raise ValueError(f"required environment variable SAMPLE_SOURCE_{key} is not defined")
    return val


def _parse_event_types(value: str) -> tuple[str, ...]:
    # Repeats collapse to the first occurrence.
    types = tuple(dict.fromkeys(t.strip() for t in value.split(",") if t.strip()))
    if not types:
        raise ValueError("SAMPLE_SOURCE_EVENT_TYPES must name at least one event type")
    return types


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> SampleSourceConfig:
    """Load configuration from SAMPLE_SOURCE_* environment variables."""
    base_delay = _env_float("RETRY_BASE_DELAY", 0.5)
    max_delay = _env_float("RETRY_MAX_DELAY", 300.0)
    if max_delay < base_delay:
        raise ValueError("SAMPLE_SOURCE_RETRY_MAX_DELAY must not be smaller than SAMPLE_SOURCE_RETRY_BASE_DELAY")
    return SampleSourceConfig(
        adapter=AdapterConfig(
            image=_require("RA_IMAGE"),
            event_types=_parse_event_types(_env("EVENT_TYPES", DEFAULT_EVENT_TYPE)),
        ),
        controller=ControllerConfig(
            namespace=_env("NAMESPACE", ""),
            workers=_env_int("WORKERS", 2, min_val=1, max_val=32),
            resync_seconds=_env_int("RESYNC_SECONDS", 300, min_val=30),
            retry_base_delay=base_delay,
            retry_max_delay=max_delay,
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
