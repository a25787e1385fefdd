"""Unit tests for schema models."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from shared.schemas.models import (
    FULL_REBUILD_ANCHOR,
    App,
    AggregateBucket,
    CacheDocument,
    CycleContext,
    FullRebuildWindow,
    IncrementalWindow,
    TimePeriod,
)
from shared.utils.errors import ValidationError


class TestApp:
    """Test registry document validation."""

    def test_from_doc_keeps_partner_order(self):
        app = App.from_doc({"_id": "a", "appId": "edge", "partnerIds": {"p2": {}, "p1": {"x": 1}}})
        assert app.app_id == "edge"
        assert app.partners == ["p2", "p1"]

    def test_missing_partners_means_no_partners(self):
        app = App.from_doc({"appId": "edge"})
        assert app.partners == []

    @pytest.mark.parametrize("app_id", [None, "", 42])
    def test_bad_app_id_is_rejected(self, app_id):
        with pytest.raises(ValidationError) as exc_info:
            App.from_doc({"_id": "doc-1", "appId": app_id, "partnerIds": {}})
        assert exc_info.value.field == "appId"
        assert exc_info.value.details["doc_id"] == "doc-1"

    def test_malformed_partner_ids_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            App.from_doc({"appId": "edge", "partnerIds": ["p1"]})
        assert exc_info.value.to_dict()["error_code"] == "VALIDATION_ERROR"


class TestCacheDocument:
    """Test cache document shape."""

    def test_identity_key(self):
        assert CacheDocument.make_id("X", "Y", "2024-05-01") == "X_Y:2024-05-01"

    def test_to_doc_without_revision(self):
        doc = CacheDocument(
            doc_id="X_Y:2024-05-01",
            timestamp=1714521600,
            usd_value=100,
            num_txs=2,
            currency_codes=["USD"],
            currency_pairs=["USD/EUR"],
        )
        assert doc.to_doc() == {
            "_id": "X_Y:2024-05-01",
            "timestamp": 1714521600,
            "usdValue": 100,
            "numTxs": 2,
            "currencyCodes": ["USD"],
            "currencyPairs": ["USD/EUR"],
        }

    def test_to_doc_with_revision_and_decimal(self):
        doc = CacheDocument(doc_id="a_b:2024-05", timestamp=1, usd_value=Decimal("10.25"), num_txs=1, rev="3-abc")
        stored = doc.to_doc()
        assert stored["_rev"] == "3-abc"
        assert stored["usdValue"] == 10.25
        assert isinstance(stored["usdValue"], float)


class TestWindows:
    """Test the two window variants."""

    def test_full_rebuild_starts_at_anchor(self):
        window = FullRebuildWindow(end=1_700_000_000.5)
        assert window.start == FULL_REBUILD_ANCHOR
        assert FULL_REBUILD_ANCHOR == int(datetime(2017, 2, 20, tzinfo=timezone.utc).timestamp())
        assert window.reconcile_revisions is False

    def test_incremental_reconciles(self):
        window = IncrementalWindow(start=1, end=2)
        assert window.reconcile_revisions is True
        assert window.kind == "incremental"

    def test_cycle_context_log_fields(self):
        context = CycleContext(cycle_id="abc", window=IncrementalWindow(start=10, end=20), started_at=0.0)
        assert context.to_log() == {"cycle_id": "abc", "window": "incremental", "start": 10, "end": 20}


def test_bucket_from_wire_shape(sample_day_bucket):
    bucket = AggregateBucket.from_dict(sample_day_bucket)
    assert bucket.iso_date == "2024-05-01"
    assert bucket.num_txs == 2


def test_time_period_values():
    assert [period.value for period in TimePeriod] == ["hour", "day", "month"]
