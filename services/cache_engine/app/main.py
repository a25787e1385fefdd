"""
Entry point for the cache engine service.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import structlog

from shared.framework.service import AsyncService
from shared.storage.couchdb import CouchDBClient
from shared.utils.logging import setup_logging

from .bootstrap import ensure_databases
from .config import CacheEngineConfig
from .engine import CacheEngine

logger = structlog.get_logger(__name__)


class CacheEngineService(AsyncService):
    """Hosts the refresh engine as a background task next to the health endpoints."""

    def __init__(self, config: Optional[CacheEngineConfig] = None) -> None:
        config = config or CacheEngineConfig()
        super().__init__(config)
        self.config: CacheEngineConfig = config
        self.client: Optional[CouchDBClient] = None
        self.engine: Optional[CacheEngine] = None
        self.engine_task: Optional[asyncio.Task] = None

    async def _startup_hook(self) -> None:
        self.client = CouchDBClient(
            self.config.database.couchdb_url,
            timeout=self.config.database.couchdb_timeout,
            max_connections=self.config.database.max_connections,
        )
        await self.client.connect()
        await ensure_databases(self.client, self.config)

        self.engine = CacheEngine.from_config(self.config, self.client, metrics=self.metrics)
        self.engine_task = asyncio.create_task(self.engine.run_forever())
        self.engine_task.add_done_callback(self._on_engine_exit)

    def _on_engine_exit(self, task: asyncio.Task) -> None:
        """An engine failure stops the host; restarting is left to the supervisor."""
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error("Cache engine stopped", error=str(error), exc_info=error)
            self.metrics.set_health_status(False)
        self.shutdown_event.set()

    async def _shutdown_hook(self) -> None:
        if self.engine_task and not self.engine_task.done():
            self.engine_task.cancel()
            try:
                await self.engine_task
            except asyncio.CancelledError:
                pass
        if self.client:
            await self.client.close()

    async def check_health(self) -> Dict[str, Any]:
        engine_running = self.engine_task is not None and not self.engine_task.done()
        store_ok = await self.client.health_check() if self.client else False
        last = self.engine.last_result if self.engine else None
        return {
            "healthy": engine_running and store_ok,
            "service": self.config.service_name,
            "engine_running": engine_running,
            "store_reachable": store_ok,
            "last_cycle": {
                "cycle_id": last.context.cycle_id,
                "window": last.context.window.kind,
                "documents": last.documents,
                "duration_seconds": round(last.duration_seconds, 3),
            } if last else None,
        }

    async def run(self) -> None:
        await super().run()
        # Surface an engine failure to the host process
        if self.engine_task and self.engine_task.done() and not self.engine_task.cancelled():
            error = self.engine_task.exception()
            if error is not None:
                raise error


async def main():
    """Main entry point."""
    config = CacheEngineConfig()
    setup_logging(
        config.service_slug,
        log_level=config.observability.log_level,
        format_type=config.observability.log_format,
    )
    service = CacheEngineService(config)
    await service.run()


if __name__ == "__main__":
    asyncio.run(main())
