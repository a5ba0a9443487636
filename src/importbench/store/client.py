"""Async ArangoDB HTTP client built on ``aiohttp``.

Covers the small slice of the HTTP API the benchmark needs: opening and
creating databases and collections, counting documents and submitting
document batches with an overwrite mode.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlsplit

import aiohttp

from importbench._internal.errors import (
    CollectionNotFoundError,
    ConfigError,
    ConflictError,
    DatabaseNotFoundError,
    NotFoundError,
    StoreError,
)
from importbench._internal.logging import get_logger
from importbench.store.protocol import BatchResult, OverwritePolicy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from importbench._internal.config import ImportBenchConfig

logger = get_logger("store.client")


def is_name_system_reserved(name: str) -> bool:
    """Return True if ``name`` is reserved for system databases/collections."""
    return name.startswith("_")


def _raise_for_reply(
    status: int,
    body: Any,
    what: str,
    not_found: type[NotFoundError] = NotFoundError,
) -> None:
    """Raise the StoreError subclass matching a non-2xx reply.

    Args:
        status: HTTP status code.
        body: Decoded JSON body, or None if it was not JSON.
        what: Description of the request for the error message.
        not_found: Exception class to raise on 404.

    Raises:
        StoreError: Always, unless ``status`` is 2xx.
    """
    if 200 <= status < 300:
        return

    error_num = 0
    detail = ""
    if isinstance(body, dict):
        error_num = int(body.get("errorNum", 0))
        detail = str(body.get("errorMessage", ""))

    msg = f"{what} failed: HTTP {status}"
    if detail:
        msg = f"{msg}: {detail}"

    if status == 404:
        raise not_found(msg, status=status, error_num=error_num)
    if status == 409:
        raise ConflictError(msg, status=status, error_num=error_num)
    raise StoreError(msg, status=status, error_num=error_num)


class ArangoClient:
    """Async client for one ArangoDB deployment.

    Must be used as an async context manager; it owns a single
    ``aiohttp.ClientSession`` that all workers share.

    Attributes:
        endpoints: Configured endpoints. Requests are sent to the first one.
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        *,
        username: str = "root",
        password: str = "",
        conn_limit: int = 64,
        request_timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            endpoints: Endpoint URLs, e.g. ``["http://localhost:8529"]``.
            username: User for basic authentication.
            password: Password for basic authentication.
            conn_limit: Maximum number of concurrent connections.
            request_timeout: Default timeout in seconds for each request.

        Raises:
            ConfigError: If no endpoint is given or the first one is not
                an http(s) URL.
        """
        if not endpoints:
            msg = "At least one endpoint is required"
            raise ConfigError(msg)

        first = urlsplit(endpoints[0])
        if first.scheme not in ("http", "https") or not first.netloc:
            msg = f"Can not parse endpoint: {endpoints[0]!r}"
            raise ConfigError(msg)

        self.endpoints = [e.rstrip("/") for e in endpoints]
        self._base_url = self.endpoints[0]
        # Self-signed certificates are common on test deployments
        self._verify_ssl = first.scheme != "https"
        self._auth = aiohttp.BasicAuth(username, password)
        self._conn_limit = conn_limit
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_config(cls, config: ImportBenchConfig) -> ArangoClient:
        """Build a client from an ImportBenchConfig."""
        return cls(
            config.endpoints,
            username=config.username,
            password=config.password,
            conn_limit=config.conn_limit,
            request_timeout=config.request_timeout,
        )

    async def __aenter__(self) -> ArangoClient:
        """Open the underlying aiohttp session."""
        for i, endpoint in enumerate(self.endpoints):
            logger.info("Endpoint %d: %s", i, endpoint)

        connector = aiohttp.TCPConnector(limit=self._conn_limit, ssl=self._verify_ssl)
        self._session = aiohttp.ClientSession(
            connector=connector,
            auth=self._auth,
            timeout=self._timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        what: str,
        not_found: type[NotFoundError] = NotFoundError,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: URL path appended to the first endpoint.
            what: Description of the request for error messages.
            not_found: Exception class raised on HTTP 404.
            timeout: Per-request total timeout overriding the default.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The decoded JSON body, or None if the body is not JSON.

        Raises:
            RuntimeError: If used outside of the async context manager.
            StoreError: On transport failures and non-2xx replies.
        """
        if self._session is None:
            msg = "ArangoClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = f"{self._base_url}{path}"
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

        try:
            async with self._session.request(method, url, **kwargs) as resp:
                status = resp.status
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            msg = f"{what} failed: {type(exc).__name__}: {exc}"
            raise StoreError(msg) from exc

        logger.debug("%s %s -> %d", method, url, status)
        _raise_for_reply(status, body, what, not_found)
        return body

    async def database(self, name: str) -> Database:
        """Open an existing database.

        Raises:
            DatabaseNotFoundError: If the database does not exist.
        """
        await self.request(
            "GET",
            f"/_db/{quote(name)}/_api/database/current",
            what=f"Open database {name!r}",
            not_found=DatabaseNotFoundError,
        )
        return Database(self, name)

    async def create_database(self, name: str) -> Database:
        """Create a database.

        Raises:
            ConflictError: If the database already exists.
        """
        await self.request(
            "POST",
            "/_db/_system/_api/database",
            what=f"Create database {name!r}",
            json={"name": name},
        )
        logger.info("Created database %s", name)
        return Database(self, name)


class Database:
    """Handle to one database of an ArangoClient."""

    def __init__(self, client: ArangoClient, name: str) -> None:
        self.client = client
        self.name = name

    def _path(self, suffix: str) -> str:
        return f"/_db/{quote(self.name)}{suffix}"

    async def collection(self, name: str) -> Collection:
        """Open an existing collection.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
        """
        await self.client.request(
            "GET",
            self._path(f"/_api/collection/{quote(name)}"),
            what=f"Open collection {self.name}.{name}",
            not_found=CollectionNotFoundError,
        )
        return Collection(self, name)

    async def create_collection(self, name: str) -> Collection:
        """Create a document collection.

        Raises:
            ConflictError: If the collection already exists.
        """
        await self.client.request(
            "POST",
            self._path("/_api/collection"),
            what=f"Create collection {self.name}.{name}",
            not_found=DatabaseNotFoundError,
            json={"name": name},
        )
        logger.info("Created collection %s.%s", self.name, name)
        return Collection(self, name)


class Collection:
    """Handle to one collection; satisfies the CollectionHandle protocol."""

    def __init__(self, database: Database, name: str) -> None:
        self.database = database
        self._name = name

    @property
    def name(self) -> str:
        """Return the collection name."""
        return self._name

    def _path(self, suffix: str) -> str:
        return self.database._path(f"{suffix}/{quote(self._name)}")

    async def count(self) -> int:
        """Return the current number of documents in the collection."""
        body = await self.database.client.request(
            "GET",
            f"{self._path('/_api/collection')}/count",
            what=f"Count {self.database.name}.{self._name}",
            not_found=CollectionNotFoundError,
        )
        return int(body["count"])

    async def submit_batch(
        self,
        documents: Sequence[dict[str, Any]],
        overwrite_policy: OverwritePolicy,
        deadline: float,
    ) -> BatchResult:
        """Insert a batch of documents with a single request.

        Per-document failures in an accepted reply are counted, not raised.

        Args:
            documents: JSON-serializable documents.
            overwrite_policy: Behavior for keys that already exist.
            deadline: Total timeout in seconds for this request.

        Returns:
            BatchResult with the number of submitted and rejected documents.

        Raises:
            StoreError: If the request as a whole fails.
        """
        body = await self.database.client.request(
            "POST",
            self._path("/_api/document"),
            what=f"Insert {len(documents)} documents into {self.database.name}.{self._name}",
            not_found=CollectionNotFoundError,
            timeout=deadline,
            params={"overwriteMode": overwrite_policy.value},
            json=list(documents),
        )
        errors = 0
        if isinstance(body, list):
            errors = sum(1 for entry in body if isinstance(entry, dict) and entry.get("error"))
        return BatchResult(submitted=len(documents), errors=errors)


async def create_or_get_database(client: ArangoClient, name: str) -> Database:
    """Return a handle to ``name``, creating the database if needed.

    System-reserved names are only opened, never created.
    """
    if is_name_system_reserved(name):
        return await client.database(name)

    try:
        return await client.create_database(name)
    except ConflictError:
        return await client.database(name)


async def create_or_get_collection(database: Database, name: str) -> Collection:
    """Return a handle to ``name``, creating the collection if needed."""
    try:
        return await database.create_collection(name)
    except ConflictError:
        return await database.collection(name)
