"""Unit tests for transaction bucketing."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from services.cache_engine.app.analytics import (
    TIMESTAMP_INDEX,
    TransactionAnalytics,
    bucket_label,
    bucket_start,
    build_buckets,
)
from shared.schemas.models import TimePeriod
from tests.fixtures.mock_services import MockCouchDatabase


def _ts(*args) -> float:
    return datetime(*args, tzinfo=timezone.utc).timestamp()


TRANSACTIONS = [
    {"orderId": "1", "depositCurrency": "BTC", "payoutCurrency": "USD", "timestamp": _ts(2024, 5, 1, 10, 15), "usdValue": 10.1},
    {"orderId": "2", "depositCurrency": "ETH", "payoutCurrency": "USD", "timestamp": _ts(2024, 5, 1, 10, 45), "usdValue": 20.2},
    {"orderId": "3", "depositCurrency": "BTC", "payoutCurrency": "EUR", "timestamp": _ts(2024, 5, 2, 0, 5), "usdValue": 5},
    {"orderId": "4", "depositCurrency": "BTC", "payoutCurrency": "USD", "timestamp": _ts(2024, 6, 3, 8, 0), "usdValue": 1},
]


@pytest.mark.parametrize(
    "period,expected_start,expected_label",
    [
        (TimePeriod.HOUR, datetime(2024, 5, 1, 10, tzinfo=timezone.utc), "2024-05-01T10"),
        (TimePeriod.DAY, datetime(2024, 5, 1, tzinfo=timezone.utc), "2024-05-01"),
        (TimePeriod.MONTH, datetime(2024, 5, 1, tzinfo=timezone.utc), "2024-05"),
    ],
)
def test_bucket_start_and_label(period, expected_start, expected_label):
    start = bucket_start(_ts(2024, 5, 1, 10, 15, 30), period)
    assert start == expected_start
    assert bucket_label(start, period) == expected_label


def test_daily_buckets():
    buckets = build_buckets(TRANSACTIONS, TimePeriod.DAY)

    assert [b.iso_date for b in buckets] == ["2024-05-01", "2024-05-02", "2024-06-03"]
    first = buckets[0]
    assert first.start == 1714521600
    assert first.num_txs == 2
    assert first.usd_value == Decimal("30.3")
    assert first.currency_codes == ["BTC", "ETH", "USD"]
    assert first.currency_pairs == ["BTC-USD", "ETH-USD"]


def test_monthly_buckets_and_empty_periods_skipped():
    buckets = build_buckets(TRANSACTIONS, TimePeriod.MONTH)

    assert [(b.iso_date, b.num_txs) for b in buckets] == [("2024-05", 3), ("2024-06", 1)]


def test_bucketing_is_deterministic():
    assert build_buckets(TRANSACTIONS, TimePeriod.HOUR) == build_buckets(list(reversed(TRANSACTIONS)), TimePeriod.HOUR)


@pytest.mark.asyncio
async def test_compute_returns_none_without_transactions():
    db = MockCouchDatabase("reports_transactions")

    result = await TransactionAnalytics(db).compute(0, 100, "A", "P", TimePeriod.DAY)

    assert result is None


@pytest.mark.asyncio
async def test_compute_queries_partition_and_buckets():
    db = MockCouchDatabase("reports_transactions")
    db.partitions["edge_changenow"] = TRANSACTIONS

    result = await TransactionAnalytics(db, limit=500).compute(10, 20, "edge", "changenow", TimePeriod.MONTH)

    partition, query = db.partition_calls[0]
    assert partition == "edge_changenow"
    assert query["selector"]["timestamp"] == {"$gte": 10, "$lt": 20}
    assert query["selector"]["status"] == {"$eq": "complete"}
    assert query["use_index"] == TIMESTAMP_INDEX
    assert query["limit"] == 500
    assert [b.iso_date for b in result[TimePeriod.MONTH]] == ["2024-05", "2024-06"]
