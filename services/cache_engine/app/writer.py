"""
Revision-reconciling batch writer for cache documents.

Existing documents get their current revision attached so the write
replaces them; new ones are inserted. Documents are committed in
fixed-size batches, one acknowledged batch at a time.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

import structlog

from shared.framework.metrics import MetricsCollector
from shared.schemas.models import CacheDocument, RefreshWindow, ScopeTriple, TimePeriod
from shared.storage.couchdb import CouchDatabase
from shared.utils.errors import DataProcessingError, create_error_context
from shared.utils.logging import bind_scope

from .config import BULK_WRITE_SIZE

logger = structlog.get_logger(__name__)


def split_batches(docs: List[CacheDocument], batch_size: int) -> List[List[CacheDocument]]:
    """Consecutive slices of at most ``batch_size`` documents."""
    return [docs[i:i + batch_size] for i in range(0, len(docs), batch_size)]


class ReconcilingWriter:
    """Persists cache documents for one triple into its period's database."""

    def __init__(
        self,
        databases: Mapping[TimePeriod, CouchDatabase],
        batch_size: int = BULK_WRITE_SIZE,
        metrics: Optional[MetricsCollector] = None,
        service_name: str = "cache_engine",
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._databases = dict(databases)
        self._batch_size = batch_size
        self._metrics = metrics
        self._service_name = service_name

    def database_for(self, period: TimePeriod) -> CouchDatabase:
        return self._databases[period]

    async def attach_revisions(self, database: CouchDatabase, docs: List[CacheDocument]) -> int:
        """Attach current revisions of live documents; returns how many matched."""
        rows = await database.fetch_revs([doc.doc_id for doc in docs])
        revisions: Dict[str, str] = {}
        for row in rows:
            value = row.get("value") or {}
            if row.get("error") is None and value.get("deleted") is not True and "rev" in value:
                revisions[row["key"]] = value["rev"]

        for doc in docs:
            doc.rev = revisions.get(doc.doc_id)
        return len(revisions)

    async def write(self, triple: ScopeTriple, window: RefreshWindow, docs: List[CacheDocument]) -> int:
        """
        Reconcile and commit ``docs``; returns the number of documents written.

        Any store failure is logged and re-raised with the scope attached
        as its error context.
        """
        database = self.database_for(triple.period)
        period = triple.period.value
        scope = f"{triple.app_id}_{triple.partner_id}"
        log = bind_scope(logger, triple.app_id, triple.partner_id, period)

        try:
            if window.reconcile_revisions and docs:
                matched = await self.attach_revisions(database, docs)
                log.debug("Revisions attached", matched=matched, count=len(docs))

            log.info(f"Update cache db {period} cache for {scope}", count=len(docs))

            written = 0
            for batch in split_batches(docs, self._batch_size):
                log.info(
                    "Bulk writing docs",
                    first=written,
                    last=written + len(batch),
                    total=len(docs),
                )
                results = await database.bulk_docs([doc.to_doc() for doc in batch])
                self._report_rejected(log, results)
                written += len(batch)
                if self._metrics:
                    self._metrics.record_batch(period, len(batch))

            log.info(f"Finished updating {period} cache for {scope}", count=written)
            return written
        except Exception as e:
            log.error("Error doing bulk cache update", error=str(e), exc_info=True)
            if self._metrics:
                self._metrics.record_error(type(e).__name__, "writer")
            if isinstance(e, DataProcessingError) and e.context is None:
                e.context = create_error_context(
                    service=self._service_name,
                    operation="bulk_cache_update",
                    app_id=triple.app_id,
                    partner_id=triple.partner_id,
                    period=period,
                    metadata={"database": getattr(database, "name", None), "count": len(docs)},
                )
            raise

    @staticmethod
    def _report_rejected(log, results) -> None:
        """Per-document rejections (e.g. conflicts) are retried by the next cycle."""
        if not isinstance(results, list):
            return
        rejected = [row.get("id") for row in results if isinstance(row, dict) and row.get("error")]
        if rejected:
            log.warning("Bulk write rejected documents", rejected=len(rejected), ids=rejected[:10])
