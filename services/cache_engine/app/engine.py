"""
Refresh engine for the transaction analytics cache.

Each cycle picks a window, walks every (app, partner, period) triple in
order, maps the analytics buckets to cache documents and writes them.
After an error-free pass the initialization marker is written if it is
still missing, then the engine sleeps and starts again.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from uuid import uuid4

import structlog

from shared.framework.metrics import MetricsCollector
from shared.schemas.models import INITIALIZED_MARKER_ID, CycleContext, TimePeriod
from shared.storage.couchdb import CouchDatabase, CouchDBClient
from shared.utils.errors import StorageError
from shared.utils.logging import bind_cycle

from .analytics import TransactionAnalytics
from .config import CacheEngineConfig
from .mapper import AggregateMapper
from .scope import AppRegistry, ScopeEnumerator
from .window import WindowCalculator
from .writer import ReconcilingWriter

logger = structlog.get_logger(__name__)


@dataclass
class CycleResult:
    """Summary of one completed pass."""
    context: CycleContext
    triples: int = 0
    skipped: int = 0
    documents: int = 0
    initialized: bool = False
    duration_seconds: float = 0.0


class CacheEngine:
    """Runs refresh cycles strictly one after another."""

    def __init__(
        self,
        window_calculator: WindowCalculator,
        scope: ScopeEnumerator,
        mapper: AggregateMapper,
        writer: ReconcilingWriter,
        marker_db: CouchDatabase,
        update_interval_seconds: float = 60 * 30,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._window = window_calculator
        self._scope = scope
        self._mapper = mapper
        self._writer = writer
        self._marker_db = marker_db
        self._interval = update_interval_seconds
        self._metrics = metrics
        self._sleep = sleep
        self.last_result: Optional[CycleResult] = None

    @classmethod
    def from_config(
        cls,
        config: CacheEngineConfig,
        client: CouchDBClient,
        metrics: Optional[MetricsCollector] = None,
    ) -> "CacheEngine":
        """Wire the engine against the configured CouchDB databases."""
        month_db = client.database(config.month_db)
        databases = {
            TimePeriod.HOUR: client.database(config.hour_db),
            TimePeriod.DAY: client.database(config.day_db),
            TimePeriod.MONTH: month_db,
        }
        registry = AppRegistry(
            client.database(config.apps_db),
            page_size=config.registry_page_size,
            limit=config.registry_query_limit,
        )
        return cls(
            window_calculator=WindowCalculator(
                month_db,
                lookback_months=config.lookback_months,
                marker_read_error_policy=config.marker_read_error_policy,
            ),
            scope=ScopeEnumerator(
                registry,
                solo_app_ids=config.solo_app_ids,
                solo_partner_ids=config.solo_partner_ids,
            ),
            mapper=AggregateMapper(
                TransactionAnalytics(
                    client.database(config.transactions_db),
                    limit=config.registry_query_limit,
                )
            ),
            writer=ReconcilingWriter(
                databases,
                batch_size=config.bulk_write_size,
                metrics=metrics,
                service_name=config.service_name,
            ),
            marker_db=month_db,
            update_interval_seconds=config.update_interval_seconds,
            metrics=metrics,
        )

    async def build_context(self) -> CycleContext:
        """Compute the window and freeze it with the cycle identity."""
        window = await self._window.compute()
        return CycleContext(cycle_id=uuid4().hex[:12], window=window, started_at=time.time())

    async def run_cycle(self) -> CycleResult:
        """One full pass; any writer failure propagates and skips the marker step."""
        started = time.perf_counter()
        try:
            context = await self.build_context()
            result = CycleResult(context=context)
            log = bind_cycle(logger, context.cycle_id)
            log.info("Refresh window selected", **context.to_log())

            async for triple in self._scope.enumerate():
                result.triples += 1
                docs = await self._mapper.map(triple, context.window)
                if docs is None:
                    result.skipped += 1
                    continue
                result.documents += await self._writer.write(triple, context.window, docs)
        except Exception:
            if self._metrics:
                self._metrics.record_cycle("failed", time.perf_counter() - started)
            raise

        result.initialized = await self.mark_initialized()
        result.duration_seconds = time.perf_counter() - started
        if self._metrics:
            self._metrics.record_cycle("success", result.duration_seconds)

        log.info(
            "Cycle complete",
            triples=result.triples,
            skipped=result.skipped,
            documents=result.documents,
            duration_seconds=round(result.duration_seconds, 3),
        )
        self.last_result = result
        return result

    async def mark_initialized(self) -> bool:
        """Insert the marker if absent; returns True only when it was created now."""
        try:
            exists = await self._window.marker_exists()
        except StorageError as e:
            logger.warning("Initialization marker unreadable", error=str(e))
            exists = False

        if exists:
            logger.info("Cache update complete")
            return False

        try:
            await self._marker_db.insert({"_id": INITIALIZED_MARKER_ID})
        except StorageError as e:
            # Next cycle sees no marker and runs another full rebuild
            logger.error("Failed to create initialized marker", error=str(e))
            if self._metrics:
                self._metrics.record_error(type(e).__name__, "marker")
            return False

        logger.info("Cache initialized")
        return True

    async def run_forever(self) -> None:
        """Cycle, sleep, repeat; returns only by raising."""
        logger.info("Starting cache engine", interval_seconds=self._interval)
        while True:
            await self.run_cycle()
            await self._sleep(self._interval)
