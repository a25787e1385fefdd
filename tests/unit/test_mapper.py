"""Unit tests for the aggregate mapper."""

import pytest

from services.cache_engine.app.mapper import AggregateMapper
from shared.schemas.models import FullRebuildWindow, IncrementalWindow, ScopeTriple, TimePeriod
from tests.fixtures.mock_services import MockAnalytics, make_buckets


@pytest.mark.asyncio
async def test_null_result_skips_triple(analytics):
    mapper = AggregateMapper(analytics)

    docs = await mapper.map(ScopeTriple("A", "P", TimePeriod.DAY), IncrementalWindow(start=10, end=20))

    assert docs is None
    assert analytics.calls == [(10, 20, "A", "P", TimePeriod.DAY)]


@pytest.mark.asyncio
async def test_buckets_become_revisionless_documents():
    buckets = make_buckets(2, TimePeriod.HOUR)
    mapper = AggregateMapper(MockAnalytics({("A", "P", TimePeriod.HOUR): buckets}))

    docs = await mapper.map(ScopeTriple("A", "P", TimePeriod.HOUR), FullRebuildWindow(end=99))

    assert [doc.doc_id for doc in docs] == ["A_P:b0000", "A_P:b0001"]
    assert docs[1].timestamp == buckets[1].start
    assert docs[1].usd_value == buckets[1].usd_value
    assert docs[1].num_txs == 2
    assert docs[1].currency_codes == ["BTC", "USD"]
    assert docs[1].currency_pairs == ["BTC-USD"]
    assert all(doc.rev is None for doc in docs)


@pytest.mark.asyncio
async def test_full_rebuild_passes_anchor_start():
    analytics = MockAnalytics()
    window = FullRebuildWindow(end=1_800_000_000)

    await AggregateMapper(analytics).map(ScopeTriple("A", "P", TimePeriod.MONTH), window)

    assert analytics.calls[0][0] == window.start


@pytest.mark.asyncio
async def test_wire_shaped_buckets_are_accepted(sample_day_bucket):
    class DictAnalytics:
        async def compute(self, start, end, app_id, partner_id, period):
            return {"day": [sample_day_bucket]}

    docs = await AggregateMapper(DictAnalytics()).map(
        ScopeTriple("X", "Y", TimePeriod.DAY), IncrementalWindow(start=0, end=1)
    )

    assert len(docs) == 1
    assert docs[0].to_doc() == {
        "_id": "X_Y:2024-05-01",
        "timestamp": 1714521600,
        "usdValue": 100,
        "numTxs": 2,
        "currencyCodes": ["USD"],
        "currencyPairs": ["USD/EUR"],
    }
