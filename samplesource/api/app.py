"""FastAPI application factory for the controller's HTTP surface.

Usage::

    from samplesource.api.app import create_app

    app = create_app(controller=controller, queue=queue)

Endpoints:
    GET /healthz  -- liveness; always 200 while the process serves HTTP.
    GET /readyz   -- 200 once the controller has started, 503 before.
    GET /metrics  -- Prometheus text exposition.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from samplesource.api.schemas import ErrorResponse, HealthResponse, ReadinessResponse

_log = structlog.get_logger(component="api.app")


def create_app(controller: Any = None, queue: Any = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        controller: Object exposing a boolean ``ready`` property.
        queue:      Optional work queue; its ``len()`` is reported by /readyz.
    """
    from samplesource import __version__

    app = FastAPI(
        title="SampleSource controller",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.controller = controller
    app.state.queue = queue

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.get("/readyz", response_model=ReadinessResponse)
    async def readyz(request: Request) -> JSONResponse:
        ctrl = request.app.state.controller
        q = request.app.state.queue
        ready = bool(ctrl is not None and ctrl.ready)
        body = ReadinessResponse(ready=ready, queue_depth=len(q) if q is not None else 0)
        return JSONResponse(status_code=200 if ready else 503, content=body.model_dump())

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error("unhandled_exception", path=str(request.url.path), error=str(exc))
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="INTERNAL_ERROR", detail="An unexpected error occurred.").model_dump(),
        )

    return app
