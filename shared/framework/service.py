"""
Base AsyncService class for long-running refresh services.

Provides lifecycle management, HTTP server, health checks,
and graceful shutdown capabilities.
"""

import asyncio
import signal
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

from aiohttp import web
import structlog

from .config import ServiceConfig
from .metrics import MetricsCollector


logger = structlog.get_logger(__name__)


class AsyncService(ABC):
    """
    Base class for async services.

    Provides common functionality:
    - HTTP API server
    - Health checks
    - Metrics collection
    - Graceful shutdown
    """

    def __init__(self, config: ServiceConfig, metrics: Optional[MetricsCollector] = None):
        self.config = config
        self.logger = structlog.get_logger(self.config.service_name).bind(service=self.config.service_name)

        # Core components
        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

        self.metrics = metrics or MetricsCollector(self.config.service_name)

        # Shutdown event
        self.shutdown_event = asyncio.Event()
        self._stopped = False

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info("Received shutdown signal", signal=signum)
            self.shutdown_event.set()

        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, signal_handler, signum)

    async def startup(self) -> None:
        """Initialize service components."""
        self.logger.info("Starting service")

        # Create web application
        self.app = web.Application()
        self._setup_routes()

        # Initialize service-specific components
        await self._startup_hook()

        self.metrics.update_service_info(
            version=getattr(self.config, "version", "1.0.0"),
            environment=self.config.environment,
        )

        # Start HTTP server
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(
            self.runner,
            host="0.0.0.0",
            port=self.config.observability.health_port
        )
        await self.site.start()

        self.logger.info(
            "Service started",
            port=self.config.observability.health_port
        )

    async def shutdown(self) -> None:
        """Gracefully shutdown service."""
        if self._stopped:
            return
        self._stopped = True
        self.logger.info("Shutting down service")

        # Stop accepting new requests
        if self.site:
            await self.site.stop()

        # Shutdown service-specific components
        await self._shutdown_hook()

        # Cleanup HTTP components
        if self.runner:
            await self.runner.cleanup()

        # Signal shutdown complete
        self.shutdown_event.set()

        self.logger.info("Service shutdown complete")

    def _setup_routes(self) -> None:
        """Setup HTTP routes."""
        if not self.app:
            return

        self.app.router.add_get("/health", self._health_handler)
        self.app.router.add_get("/health/live", self._liveness_handler)
        self.app.router.add_get("/metrics", self._metrics_handler)

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Health check handler."""
        health_status = await self.check_health()
        self.metrics.set_health_status(health_status["healthy"])
        status_code = 200 if health_status["healthy"] else 503

        return web.json_response(health_status, status=status_code)

    async def _liveness_handler(self, request: web.Request) -> web.Response:
        """Liveness check handler."""
        return web.json_response({"alive": True})

    async def _metrics_handler(self, request: web.Request) -> web.Response:
        """Metrics handler."""
        return web.Response(
            body=self.metrics.get_metrics(),
            headers={"Content-Type": self.metrics.get_content_type()},
        )

    async def check_health(self) -> Dict[str, Any]:
        """Report service health. Override in subclasses."""
        return {"healthy": True, "service": self.config.service_name}

    @abstractmethod
    async def _startup_hook(self) -> None:
        """Service-specific startup logic. Override in subclasses."""
        pass

    @abstractmethod
    async def _shutdown_hook(self) -> None:
        """Service-specific shutdown logic. Override in subclasses."""
        pass

    async def run(self) -> None:
        """Run the service until a shutdown signal arrives."""
        self._setup_signal_handlers()
        try:
            await self.startup()
            await self.shutdown_event.wait()
        except Exception as e:
            self.logger.error("Service error", error=str(e), exc_info=True)
            raise
        finally:
            await self.shutdown()
