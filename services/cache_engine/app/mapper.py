"""Maps analytics buckets to cache documents."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Union

import structlog

from shared.schemas.models import AggregateBucket, CacheDocument, RefreshWindow, ScopeTriple

logger = structlog.get_logger(__name__)


def to_cache_document(app_id: str, partner_id: str, bucket: AggregateBucket) -> CacheDocument:
    """Revision-less cache document for one bucket."""
    return CacheDocument(
        doc_id=CacheDocument.make_id(app_id, partner_id, bucket.iso_date),
        timestamp=bucket.start,
        usd_value=bucket.usd_value,
        num_txs=bucket.num_txs,
        currency_codes=bucket.currency_codes,
        currency_pairs=bucket.currency_pairs,
    )


class AggregateMapper:
    """Fetches aggregates for one triple and shapes them for the cache."""

    def __init__(self, analytics) -> None:
        self._analytics = analytics

    async def map(self, triple: ScopeTriple, window: RefreshWindow) -> Optional[List[CacheDocument]]:
        """
        Return the cache documents for ``triple`` over ``window``.

        None means the analytics source has no data for the scope and the
        triple must be skipped.
        """
        result = await self._analytics.compute(
            window.start,
            window.end,
            triple.app_id,
            triple.partner_id,
            triple.period,
        )
        if result is None:
            logger.debug(
                "No analytics for scope",
                app_id=triple.app_id,
                partner_id=triple.partner_id,
                period=triple.period.value,
            )
            return None

        buckets: List[Union[AggregateBucket, Mapping[str, Any]]] = result.get(triple.period) or []
        return [
            to_cache_document(
                triple.app_id,
                triple.partner_id,
                bucket if isinstance(bucket, AggregateBucket) else AggregateBucket.from_dict(bucket),
            )
            for bucket in buckets
        ]
