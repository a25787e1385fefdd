"""Creates the databases and indexes the cache engine reads and writes."""

from __future__ import annotations

from typing import List, Tuple

import structlog

from shared.storage.couchdb import CouchDBClient

from .analytics import TIMESTAMP_INDEX
from .config import CacheEngineConfig

logger = structlog.get_logger(__name__)


def required_databases(config: CacheEngineConfig) -> List[Tuple[str, bool]]:
    """``(name, partitioned)`` for every database the engine touches."""
    return [
        (config.apps_db, False),
        (config.transactions_db, True),
        (config.hour_db, True),
        (config.day_db, True),
        (config.month_db, True),
    ]


async def ensure_databases(client: CouchDBClient, config: CacheEngineConfig) -> List[str]:
    """Create missing databases and the transaction timestamp index; returns created names."""
    created = []
    for name, partitioned in required_databases(config):
        if await client.create_database(name, partitioned=partitioned):
            created.append(name)

    result = await client.database(config.transactions_db).create_index(
        ["timestamp"],
        name=TIMESTAMP_INDEX,
        ddoc=TIMESTAMP_INDEX,
        partitioned=True,
    )
    logger.info("Databases ready", created=created, index=result.get("result"))
    return created
