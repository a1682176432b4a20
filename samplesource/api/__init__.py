"""Health and metrics HTTP API.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by samplesource.app bootstrap).
"""

from samplesource.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]
