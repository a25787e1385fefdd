"""
Storage abstractions for the reports cache services.

Provides async clients for:
- CouchDB (registry, transactions and cache documents)
"""

from .couchdb import CouchDBClient, CouchDBConfig, CouchDatabase

__all__ = [
    "CouchDBClient",
    "CouchDBConfig",
    "CouchDatabase",
]
