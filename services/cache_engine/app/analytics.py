"""Transaction analytics bucketed by hour, day and month."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from shared.schemas.models import AggregateBucket, TimePeriod
from shared.storage.couchdb import CouchDatabase

from .config import REGISTRY_QUERY_LIMIT

logger = structlog.get_logger(__name__)

TRANSACTION_FIELDS = ["orderId", "depositCurrency", "payoutCurrency", "timestamp", "usdValue"]
TIMESTAMP_INDEX = "timestamp-p"

_LABEL_FORMATS = {
    TimePeriod.HOUR: "%Y-%m-%dT%H",
    TimePeriod.DAY: "%Y-%m-%d",
    TimePeriod.MONTH: "%Y-%m",
}


def bucket_start(timestamp: float, period: TimePeriod) -> datetime:
    """UTC start of the bucket containing ``timestamp``."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    moment = moment.replace(minute=0, second=0, microsecond=0)
    if period in (TimePeriod.DAY, TimePeriod.MONTH):
        moment = moment.replace(hour=0)
    if period == TimePeriod.MONTH:
        moment = moment.replace(day=1)
    return moment


def bucket_label(start: datetime, period: TimePeriod) -> str:
    """ISO label of a bucket, e.g. ``2024-05-01`` for a day."""
    return start.strftime(_LABEL_FORMATS[period])


def build_buckets(transactions: Iterable[Mapping[str, Any]], period: TimePeriod) -> List[AggregateBucket]:
    """
    Aggregate completed transactions into buckets of one period.

    Only buckets holding at least one transaction are returned, ordered
    by start. Currency codes and pairs are sorted so that repeated runs
    over the same transactions give identical buckets.
    """
    totals: Dict[datetime, Dict[str, Any]] = {}

    for tx in transactions:
        start = bucket_start(tx["timestamp"], period)
        bucket = totals.setdefault(
            start, {"usd": Decimal("0"), "count": 0, "codes": set(), "pairs": set()}
        )
        bucket["usd"] += Decimal(str(tx["usdValue"]))
        bucket["count"] += 1

        deposit = tx.get("depositCurrency")
        payout = tx.get("payoutCurrency")
        if deposit:
            bucket["codes"].add(deposit)
        if payout:
            bucket["codes"].add(payout)
        if deposit and payout:
            bucket["pairs"].add(f"{deposit}-{payout}")

    return [
        AggregateBucket(
            iso_date=bucket_label(start, period),
            start=int(start.timestamp()),
            usd_value=values["usd"],
            num_txs=values["count"],
            currency_codes=sorted(values["codes"]),
            currency_pairs=sorted(values["pairs"]),
        )
        for start, values in sorted(totals.items())
    ]


class TransactionAnalytics:
    """Computes per-bucket aggregates for one (app, partner) partition."""

    def __init__(self, transactions_db: CouchDatabase, limit: int = REGISTRY_QUERY_LIMIT) -> None:
        self._db = transactions_db
        self._limit = limit

    async def compute(
        self,
        start: float,
        end: float,
        app_id: str,
        partner_id: str,
        period: TimePeriod,
    ) -> Optional[Dict[TimePeriod, List[AggregateBucket]]]:
        """Return ``{period: buckets}``, or None when the range holds no transactions."""
        partition = f"{app_id}_{partner_id}"
        query = {
            "selector": {
                "status": {"$eq": "complete"},
                "usdValue": {"$gte": 0},
                "timestamp": {"$gte": start, "$lt": end},
            },
            "fields": TRANSACTION_FIELDS,
            "use_index": TIMESTAMP_INDEX,
            "sort": ["timestamp"],
            "limit": self._limit,
        }

        result = await self._db.partitioned_find(partition, query)
        docs = result.get("docs", [])
        if not docs:
            return None

        logger.debug("Transactions loaded", partition=partition, period=period.value, count=len(docs))
        return {period: build_buckets(docs, period)}
