"""
CouchDB async client wrapper for the reports document store.

Provides high-level interface for CouchDB operations
with connection pooling and error handling.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import quote

import aiohttp
import structlog
from yarl import URL

from shared.utils.errors import DocumentNotFoundError, StorageError


logger = structlog.get_logger(__name__)


@dataclass
class CouchDBConfig:
    """CouchDB configuration."""
    url: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: int = 60
    max_connections: int = 4


class CouchDBClient:
    """
    Async CouchDB client with connection pooling.

    Credentials embedded in the URL are moved to basic auth so they
    never appear in request logs.
    """

    def __init__(self, config: Union[CouchDBConfig, str], **kwargs: Any):
        if isinstance(config, CouchDBConfig):
            self.config = config
        else:
            url = URL(config)
            self.config = CouchDBConfig(
                url=str(url.with_user(None)).rstrip("/"),
                username=kwargs.get("username") or url.user,
                password=kwargs.get("password") or url.password,
                timeout=kwargs.get("timeout", 60),
                max_connections=kwargs.get("max_connections", 4),
            )

        self.logger = structlog.get_logger("couchdb-client")
        self.session: Optional[aiohttp.ClientSession] = None
        self._semaphore = asyncio.Semaphore(self.config.max_connections)
        self.is_connected: bool = False

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self.is_connected:
            return

        connector = aiohttp.TCPConnector(limit=self.config.max_connections)
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        auth = None
        if self.config.username:
            auth = aiohttp.BasicAuth(self.config.username, self.config.password or "")

        self.session = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            auth=auth
        )

        self.is_connected = True
        self.logger.info("Connected to CouchDB", url=self.config.url)

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

        self.is_connected = False
        self.logger.info("Disconnected from CouchDB")

    async def close(self) -> None:
        """Alias for disconnect."""
        await self.disconnect()

    def database(self, name: str) -> "CouchDatabase":
        """Return a handle on a single database."""
        return CouchDatabase(self, name)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        operation: str = "request",
        database: Optional[str] = None,
    ) -> Tuple[int, Any]:
        """
        Issue one HTTP request and return ``(status, decoded_body)``.

        Any status of 400 or above, or a body that is not JSON, raises
        StorageError carrying the status; transport failures raise
        StorageError without one.
        """
        async with self._semaphore:
            if not self.session:
                await self.connect()

            try:
                async with self.session.request(
                    method,
                    f"{self.config.url}/{path}",
                    json=json,
                    params=params,
                ) as response:
                    status = response.status
                    try:
                        body = await response.json(content_type=None)
                    except ValueError as e:
                        # Proxies answer with HTML error pages
                        self.logger.error(
                            "CouchDB returned a non-JSON body",
                            status=status, path=path, operation=operation,
                        )
                        raise StorageError(
                            f"CouchDB {operation} returned a non-JSON body with status {status}",
                            operation=operation,
                            database=database,
                            status=status,
                        ) from e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.logger.error("CouchDB request error", error=str(e), path=path, operation=operation)
                raise StorageError(
                    f"CouchDB {operation} failed: {e}",
                    operation=operation,
                    database=database,
                ) from e

        if status >= 400:
            reason = body.get("reason") if isinstance(body, dict) else None
            raise StorageError(
                f"CouchDB {operation} error {status}: {reason or body}",
                operation=operation,
                database=database,
                status=status,
                details={"error": body.get("error") if isinstance(body, dict) else None},
            )

        return status, body

    async def create_database(self, name: str, partitioned: bool = False) -> bool:
        """Create a database; returns False when it already exists."""
        params = {"partitioned": "true"} if partitioned else None
        try:
            await self.request("PUT", quote(name, safe=""), params=params, operation="create_database", database=name)
        except StorageError as e:
            if e.status == 412:
                return False
            raise

        self.logger.info("Database created", database=name, partitioned=partitioned)
        return True

    async def health_check(self) -> bool:
        """Check CouchDB health."""
        try:
            status, _ = await self.request("GET", "_up", operation="health_check")
            return status == 200
        except StorageError as e:
            self.logger.error("CouchDB health check failed", error=str(e))
            return False

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()


class CouchDatabase:
    """Operations against one CouchDB database."""

    def __init__(self, client: CouchDBClient, name: str):
        self.client = client
        self.name = name
        self._path = quote(name, safe="")

    async def get(self, doc_id: str) -> Dict[str, Any]:
        """Point lookup by id; raises DocumentNotFoundError on 404."""
        try:
            _, body = await self.client.request(
                "GET",
                f"{self._path}/{quote(doc_id, safe='')}",
                operation="get",
                database=self.name,
            )
        except StorageError as e:
            if e.status == 404:
                raise DocumentNotFoundError(doc_id, database=self.name) from e
            raise
        return body

    async def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a single document."""
        _, body = await self.client.request(
            "POST", self._path, json=doc, operation="insert", database=self.name
        )
        return body

    async def fetch_revs(self, keys: List[str]) -> List[Dict[str, Any]]:
        """
        Bulk key lookup returning one row per key, in key order.

        Rows for missing ids carry ``error``; rows for deleted documents
        carry ``value.deleted``.
        """
        _, body = await self.client.request(
            "POST",
            f"{self._path}/_all_docs",
            json={"keys": keys},
            operation="fetch_revs",
            database=self.name,
        )
        return body.get("rows", [])

    async def bulk_docs(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Bulk upsert a batch of documents; returns per-document results."""
        _, body = await self.client.request(
            "POST",
            f"{self._path}/_bulk_docs",
            json={"docs": docs},
            operation="bulk_docs",
            database=self.name,
        )
        return body

    async def find(self, query: Dict[str, Any]) -> Dict[str, Any]:
        """Run a Mango query; returns ``docs`` and ``bookmark``."""
        _, body = await self.client.request(
            "POST", f"{self._path}/_find", json=query, operation="find", database=self.name
        )
        return body

    async def partitioned_find(self, partition: str, query: Dict[str, Any]) -> Dict[str, Any]:
        """Run a Mango query scoped to one partition."""
        _, body = await self.client.request(
            "POST",
            f"{self._path}/_partition/{quote(partition, safe='')}/_find",
            json=query,
            operation="partitioned_find",
            database=self.name,
        )
        return body

    async def create_index(
        self,
        fields: List[str],
        name: str,
        ddoc: Optional[str] = None,
        partitioned: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Create a Mango index; CouchDB reports ``exists`` when unchanged."""
        payload: Dict[str, Any] = {"index": {"fields": fields}, "name": name, "type": "json"}
        if ddoc:
            payload["ddoc"] = ddoc
        if partitioned is not None:
            payload["partitioned"] = partitioned

        _, body = await self.client.request(
            "POST", f"{self._path}/_index", json=payload, operation="create_index", database=self.name
        )
        return body
