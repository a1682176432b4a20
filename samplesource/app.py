"""Application bootstrap for the SampleSource controller.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → stores → reconciler
              → work queue → watchers → controller → REST

Shutdown is graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that
a single component failure does not prevent the rest from shutting down.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from samplesource.config import load_config
from samplesource.models.config import SampleSourceConfig
from samplesource.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class SampleSourceApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already
    stopped) is safe.
    """

    def __init__(self) -> None:
        self.config: SampleSourceConfig | None = None

        self._api_client: object | None = None
        self._recorder: object | None = None
        self._reconciler: object | None = None
        self._queue: object | None = None
        self._controller: object | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        try:
            self.config = load_config()
        except ValueError as exc:
            raise _ComponentError("config", exc) from exc

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("samplesource controller starting", version=_version())

        await self._start_k8s_client()
        await self._start_reconciler()
        await self._start_controller()
        await self._start_rest()

        self._running = True
        self._log.info("samplesource controller started", port=self.config.api.port)

    async def _start_k8s_client(self) -> None:
        """Configure kubernetes-asyncio from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            try:
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            self._api_client = k8s_client.ApiClient()
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_reconciler(self) -> None:
        """Build the stores, resolver, recorder and the reconciler itself."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting reconciler")
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            from samplesource.kube import (
                KubeDeploymentStore,
                KubeEventRecorder,
                KubeEventTypeStore,
                KubeSampleSourceStore,
                KubeSinkResolver,
            )
            from samplesource.observability.metrics import PrometheusStatsReporter
            from samplesource.reconciler import Reconciler

            api_client = self._api_client
            core = k8s_client.CoreV1Api(api_client)
            apps = k8s_client.AppsV1Api(api_client)
            custom = k8s_client.CustomObjectsApi(api_client)

            recorder = KubeEventRecorder(core)
            self._recorder = recorder
            self._reconciler = Reconciler(
                receive_adapter_image=self.config.adapter.image,
                event_types=self.config.adapter.event_types,
                source_store=KubeSampleSourceStore(custom),
                deployment_store=KubeDeploymentStore(apps, api_client),
                event_type_store=KubeEventTypeStore(custom),
                sink_resolver=KubeSinkResolver(core, custom),
                recorder=recorder,
                stats_reporter=PrometheusStatsReporter(),
            )
            self._log.info(
                "reconciler started",
                image=self.config.adapter.image,
                event_types=list(self.config.adapter.event_types),
            )
        except Exception as exc:
            raise _ComponentError("reconciler", exc) from exc

    async def _start_controller(self) -> None:
        """Start the work queue, the watch loops and periodic resync."""
        assert self._log is not None
        assert self.config is not None
        assert self._reconciler is not None
        self._log.debug("starting controller")
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            from samplesource.controller import Controller, ResourceWatcher, WorkQueue, owner_key, source_key
            from samplesource.kube import label_selector
            from samplesource.models.source import GROUP, PLURAL, VERSION
            from samplesource.reconciler.resources.receive_adapter import CONTROLLER_LABEL_VALUE, SOURCE_LABEL

            cfg = self.config.controller
            queue = WorkQueue(
                reconcile_fn=self._reconciler.reconcile,  # type: ignore[attr-defined]
                workers=cfg.workers,
                base_delay=cfg.retry_base_delay,
                max_delay=cfg.retry_max_delay,
            )
            self._queue = queue

            custom = k8s_client.CustomObjectsApi(self._api_client)
            apps = k8s_client.AppsV1Api(self._api_client)
            selector = label_selector({SOURCE_LABEL: CONTROLLER_LABEL_VALUE})
            known_keys: set[str] = set()

            if cfg.namespace:
                source_watcher = ResourceWatcher(
                    "samplesources",
                    custom.list_namespaced_custom_object,
                    source_key,
                    queue,
                    list_args=(GROUP, VERSION, cfg.namespace, PLURAL),
                    known_keys=known_keys,
                )
                deployment_watcher = ResourceWatcher(
                    "deployments",
                    apps.list_namespaced_deployment,
                    owner_key,
                    queue,
                    list_args=(cfg.namespace,),
                    list_kwargs={"label_selector": selector},
                )
            else:
                source_watcher = ResourceWatcher(
                    "samplesources",
                    custom.list_cluster_custom_object,
                    source_key,
                    queue,
                    list_args=(GROUP, VERSION, PLURAL),
                    known_keys=known_keys,
                )
                deployment_watcher = ResourceWatcher(
                    "deployments",
                    apps.list_deployment_for_all_namespaces,
                    owner_key,
                    queue,
                    list_kwargs={"label_selector": selector},
                )

            controller = Controller(
                queue=queue,
                watchers=[source_watcher, deployment_watcher],
                known_keys=known_keys,
                resync_seconds=cfg.resync_seconds,
            )
            await controller.start()
            self._controller = controller
            self._log.info("controller started", namespace=cfg.namespace or "<all>", workers=cfg.workers)
        except Exception as exc:
            raise _ComponentError("controller", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn health/metrics server."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from samplesource.api import build_app

            fastapi_app = build_app(controller=self._controller, queue=self._queue)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            # Health endpoints are optional; reconciling continues without them.
            self._log.warning("rest api failed to start; health endpoints unavailable", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("samplesource controller shutting down")

        self._running = False

        server = self._rest_server
        if server is not None:
            server.should_exit = True  # type: ignore[attr-defined]

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_component("controller", self._controller)
        await self._stop_component("recorder", self._recorder)
        await self._stop_k8s_client()

        log.info("samplesource controller stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._api_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._api_client.close()  # type: ignore[attr-defined]
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._api_client = None


def _version() -> str:
    from samplesource import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = SampleSourceApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
