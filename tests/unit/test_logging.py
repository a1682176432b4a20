"""Tests for logger binding."""

from __future__ import annotations

from structlog.testing import capture_logs

from samplesource import __version__
from samplesource.observability.logging import SERVICE_NAME, get_logger


class TestGetLogger:
    def test_binds_service_and_component(self) -> None:
        with capture_logs() as logs:
            get_logger("reconciler").info("samplesource_reconciled", key="default/src")

        (entry,) = logs
        assert entry["service"] == SERVICE_NAME == "samplesource-controller"
        assert entry["version"] == __version__
        assert entry["component"] == "reconciler"
        assert entry["key"] == "default/src"
        assert entry["event"] == "samplesource_reconciled"
