"""Unit tests for registry reads and scope enumeration."""

import pytest

from services.cache_engine.app.scope import AppRegistry, ScopeEnumerator
from shared.schemas.models import App, ScopeTriple, TimePeriod
from shared.utils.errors import ValidationError


async def _collect(enumerator):
    return [triple async for triple in enumerator.enumerate()]


@pytest.fixture
def two_apps(apps_db):
    apps_db.seed({"_id": "1", "appId": "A", "partnerIds": {"P1": {}, "P2": {}}})
    apps_db.seed({"_id": "2", "appId": "B", "partnerIds": {"P1": {}}})
    return apps_db


@pytest.mark.asyncio
async def test_enumeration_order(two_apps):
    triples = await _collect(ScopeEnumerator(AppRegistry(two_apps)))

    assert [(t.app_id, t.partner_id, t.period.value) for t in triples] == [
        ("A", "P1", "hour"), ("A", "P1", "day"), ("A", "P1", "month"),
        ("A", "P2", "hour"), ("A", "P2", "day"), ("A", "P2", "month"),
        ("B", "P1", "hour"), ("B", "P1", "day"), ("B", "P1", "month"),
    ]


@pytest.mark.asyncio
async def test_app_allow_list(two_apps):
    triples = await _collect(ScopeEnumerator(AppRegistry(two_apps), solo_app_ids=["A"]))

    assert {t.app_id for t in triples} == {"A"}


@pytest.mark.asyncio
async def test_partner_allow_list(two_apps):
    triples = await _collect(ScopeEnumerator(AppRegistry(two_apps), solo_partner_ids=["P1"]))

    assert {(t.app_id, t.partner_id) for t in triples} == {("A", "P1"), ("B", "P1")}
    assert len(triples) == 6


def test_app_without_surviving_partners_yields_nothing():
    enumerator = ScopeEnumerator(registry=None, solo_partner_ids=["P9"])
    app = App(app_id="A", partner_ids={"P1": {}, "P2": {}})

    assert list(enumerator.triples_for(app)) == []


def test_triples_for_single_partner():
    enumerator = ScopeEnumerator(registry=None)
    app = App(app_id="X", partner_ids={"Y": {}})

    assert list(enumerator.triples_for(app)) == [
        ScopeTriple("X", "Y", TimePeriod.HOUR),
        ScopeTriple("X", "Y", TimePeriod.DAY),
        ScopeTriple("X", "Y", TimePeriod.MONTH),
    ]


@pytest.mark.asyncio
async def test_registry_pages_through_bookmarks(apps_db):
    for index in range(5):
        apps_db.seed({"_id": f"app-{index}", "appId": f"app-{index}", "partnerIds": {}})

    apps = [app.app_id async for app in AppRegistry(apps_db, page_size=2).iter_apps()]

    assert apps == [f"app-{index}" for index in range(5)]
    assert len(apps_db.find_calls) == 3
    assert apps_db.find_calls[0]["selector"] == {"appId": {"$exists": True, "$ne": None}}
    assert "bookmark" not in apps_db.find_calls[0]
    assert apps_db.find_calls[1]["bookmark"] == "2"


@pytest.mark.asyncio
async def test_registry_respects_overall_limit(apps_db):
    for index in range(5):
        apps_db.seed({"_id": f"app-{index}", "appId": f"app-{index}", "partnerIds": {}})

    apps = [app.app_id async for app in AppRegistry(apps_db, page_size=2, limit=3).iter_apps()]

    assert apps == ["app-0", "app-1", "app-2"]
    assert apps_db.find_calls[-1]["limit"] == 1


@pytest.mark.asyncio
async def test_malformed_registry_document_is_reported(apps_db):
    apps_db.seed({"_id": "bad", "appId": "A", "partnerIds": "P1"})

    with pytest.raises(ValidationError):
        await _collect(ScopeEnumerator(AppRegistry(apps_db)))
