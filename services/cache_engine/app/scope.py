"""Enumeration of (app, partner, period) refresh work."""

from __future__ import annotations

from typing import AsyncIterator, Iterable, Iterator, List, Optional

import structlog

from shared.schemas.models import TIME_PERIODS, App, ScopeTriple, TimePeriod
from shared.storage.couchdb import CouchDatabase

from .config import REGISTRY_QUERY_LIMIT

logger = structlog.get_logger(__name__)


class AppRegistry:
    """Streams validated apps from the registry database page by page."""

    def __init__(
        self,
        apps_db: CouchDatabase,
        page_size: int = 1000,
        limit: int = REGISTRY_QUERY_LIMIT,
    ) -> None:
        self._db = apps_db
        self._page_size = page_size
        self._limit = limit

    async def iter_apps(self) -> AsyncIterator[App]:
        """Yield apps in registry order until exhausted or the limit is reached."""
        bookmark: Optional[str] = None
        fetched = 0

        while fetched < self._limit:
            page_limit = min(self._page_size, self._limit - fetched)
            query = {
                "selector": {"appId": {"$exists": True, "$ne": None}},
                "limit": page_limit,
            }
            if bookmark:
                query["bookmark"] = bookmark

            result = await self._db.find(query)
            docs = result.get("docs", [])
            for doc in docs:
                yield App.from_doc(doc)

            fetched += len(docs)
            bookmark = result.get("bookmark")
            if len(docs) < page_limit or not bookmark:
                break

        logger.debug("Registry read complete", apps=fetched)


class ScopeEnumerator:
    """Produces refresh triples honoring the optional allow-lists."""

    def __init__(
        self,
        registry: AppRegistry,
        solo_app_ids: Optional[Iterable[str]] = None,
        solo_partner_ids: Optional[Iterable[str]] = None,
        periods: Optional[List[TimePeriod]] = None,
    ) -> None:
        self._registry = registry
        self._solo_app_ids = set(solo_app_ids) if solo_app_ids is not None else None
        self._solo_partner_ids = set(solo_partner_ids) if solo_partner_ids is not None else None
        self._periods = periods or TIME_PERIODS

    def triples_for(self, app: App) -> Iterator[ScopeTriple]:
        """Triples for one app: partners in key order, then periods."""
        if self._solo_app_ids is not None and app.app_id not in self._solo_app_ids:
            return

        for partner_id in app.partners:
            if self._solo_partner_ids is not None and partner_id not in self._solo_partner_ids:
                continue
            for period in self._periods:
                yield ScopeTriple(app_id=app.app_id, partner_id=partner_id, period=period)

    async def enumerate(self) -> AsyncIterator[ScopeTriple]:
        """All triples for this cycle, apps in registry order."""
        async for app in self._registry.iter_apps():
            for triple in self.triples_for(app):
                yield triple
