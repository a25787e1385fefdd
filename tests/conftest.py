"""Pytest configuration and fixtures."""

import pytest
from typing import Dict

from shared.framework.metrics import MetricsCollector
from shared.schemas.models import INITIALIZED_MARKER_ID, TimePeriod
from tests.fixtures.mock_services import MockAnalytics, MockCouchDatabase


@pytest.fixture
def apps_db():
    """Registry database fixture."""
    return MockCouchDatabase("reports_apps")


@pytest.fixture
def hour_db():
    return MockCouchDatabase("reports_hour")


@pytest.fixture
def day_db():
    return MockCouchDatabase("reports_day")


@pytest.fixture
def month_db():
    return MockCouchDatabase("reports_month")


@pytest.fixture
def initialized_month_db(month_db):
    """Monthly database already holding the initialization marker."""
    month_db.seed({"_id": INITIALIZED_MARKER_ID})
    return month_db


@pytest.fixture
def cache_databases(hour_db, day_db, month_db) -> Dict[TimePeriod, MockCouchDatabase]:
    return {
        TimePeriod.HOUR: hour_db,
        TimePeriod.DAY: day_db,
        TimePeriod.MONTH: month_db,
    }


@pytest.fixture
def analytics():
    return MockAnalytics()


@pytest.fixture
def metrics():
    """Metrics collector with its own registry."""
    return MetricsCollector("test_cache_engine")


@pytest.fixture
def sample_app_doc():
    """Registry document for the end-to-end scenario."""
    return {"_id": "X", "appId": "X", "partnerIds": {"Y": {}}}


@pytest.fixture
def sample_day_bucket():
    return {
        "isoDate": "2024-05-01",
        "start": 1714521600,
        "usdValue": 100,
        "numTxs": 2,
        "currencyCodes": ["USD"],
        "currencyPairs": ["USD/EUR"],
    }
