"""Response models for the health and metrics API."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str


class ReadinessResponse(BaseModel):
    ready: bool
    queue_depth: int = 0


class ErrorResponse(BaseModel):
    error: str
    detail: str
