"""Shared test fixtures for the importbench test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from aiohttp import web

from importbench._internal.errors import StoreError
from importbench.store.protocol import BatchResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator, Sequence

    from importbench.store.protocol import OverwritePolicy


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# In-memory collection
# =============================================================================


class FakeCollection:
    """In-memory CollectionHandle with failure injection.

    Args:
        fail_on_call: 1-based submit call that raises StoreError; later
            calls fail too when ``keep_failing`` is set.
        delay: Seconds each submission sleeps.
    """

    def __init__(
        self,
        name: str = "batchimport",
        *,
        fail_on_call: int | None = None,
        keep_failing: bool = False,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self.fail_on_call = fail_on_call
        self.keep_failing = keep_failing
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.documents: dict[str, dict[str, Any]] = {}

    @property
    def name(self) -> str:
        return self._name

    async def count(self) -> int:
        return len(self.documents)

    async def submit_batch(
        self,
        documents: Sequence[dict[str, Any]],
        overwrite_policy: OverwritePolicy,
        deadline: float,
    ) -> BatchResult:
        call_number = len(self.calls) + 1
        self.calls.append(
            {
                "keys": [d.get("_key") for d in documents],
                "overwrite_policy": overwrite_policy,
                "deadline": deadline,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on_call is not None and (
            call_number == self.fail_on_call
            or (self.keep_failing and call_number > self.fail_on_call)
        ):
            msg = f"injected failure on call {call_number}"
            raise StoreError(msg, status=503)
        for doc in documents:
            key = doc.get("_key") or f"auto-{len(self.documents) + 1}"
            self.documents.setdefault(key, dict(doc))
        return BatchResult(submitted=len(documents))


@pytest.fixture
def fake_collection() -> FakeCollection:
    """A fresh in-memory collection that never fails."""
    return FakeCollection()


@pytest.fixture
def make_collection() -> type[FakeCollection]:
    """Return the FakeCollection class for tests that need custom options."""
    return FakeCollection


# =============================================================================
# Fake ArangoDB HTTP server
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@dataclass
class FakeArangoState:
    """Mutable state of the fake server, inspectable from tests."""

    databases: dict[str, dict[str, dict[str, dict[str, Any]]]] = field(
        default_factory=lambda: {"_system": {}}
    )
    insert_requests: list[dict[str, Any]] = field(default_factory=list)
    auth_headers: list[str] = field(default_factory=list)
    fail_inserts: bool = False


def _error(status: int, error_num: int, message: str) -> web.Response:
    return web.json_response(
        {"error": True, "code": status, "errorNum": error_num, "errorMessage": message},
        status=status,
    )


def _create_fake_arango_app(state: FakeArangoState) -> web.Application:
    """Build a fake ArangoDB app covering the endpoints the client uses."""

    @web.middleware
    async def _record_auth(request: web.Request, handler: Any) -> web.StreamResponse:
        state.auth_headers.append(request.headers.get("Authorization", ""))
        return await handler(request)

    async def _current_database(request: web.Request) -> web.Response:
        db = request.match_info["db"]
        if db not in state.databases:
            return _error(404, 1228, "database not found")
        return web.json_response({"error": False, "code": 200, "result": {"name": db}})

    async def _create_database(request: web.Request) -> web.Response:
        body = await request.json()
        name = body["name"]
        if name in state.databases:
            return _error(409, 1207, "duplicate database name")
        state.databases[name] = {}
        return web.json_response({"error": False, "code": 201, "result": True}, status=201)

    async def _get_collection(request: web.Request) -> web.Response:
        db = state.databases.get(request.match_info["db"])
        name = request.match_info["name"]
        if db is None or name not in db:
            return _error(404, 1203, "collection or view not found")
        return web.json_response({"error": False, "code": 200, "name": name, "type": 2})

    async def _create_collection(request: web.Request) -> web.Response:
        db = state.databases.get(request.match_info["db"])
        if db is None:
            return _error(404, 1228, "database not found")
        name = (await request.json())["name"]
        if name in db:
            return _error(409, 1207, "duplicate name")
        db[name] = {}
        return web.json_response({"error": False, "code": 200, "name": name, "type": 2})

    async def _count(request: web.Request) -> web.Response:
        db = state.databases.get(request.match_info["db"])
        name = request.match_info["name"]
        if db is None or name not in db:
            return _error(404, 1203, "collection or view not found")
        return web.json_response({"error": False, "code": 200, "count": len(db[name])})

    async def _insert(request: web.Request) -> web.Response:
        db = state.databases.get(request.match_info["db"])
        name = request.match_info["name"]
        if db is None or name not in db:
            return _error(404, 1203, "collection or view not found")
        mode = request.query.get("overwriteMode", "conflict")
        docs = await request.json()
        state.insert_requests.append({"mode": mode, "count": len(docs)})
        if state.fail_inserts:
            return _error(503, 503, "service unavailable")

        collection = db[name]
        results: list[dict[str, Any]] = []
        for doc in docs:
            key = doc.get("_key") or f"auto-{len(collection) + 1}"
            if key in collection and mode == "conflict":
                results.append(
                    {"error": True, "errorNum": 1210, "errorMessage": "unique constraint violated"}
                )
                continue
            if key not in collection or mode in ("replace", "update"):
                collection[key] = doc
            results.append({"_key": key, "_id": f"{name}/{key}", "_rev": "_rev1"})
        return web.json_response(results, status=202)

    app = web.Application(middlewares=[_record_auth])
    app.router.add_get("/_db/{db}/_api/database/current", _current_database)
    app.router.add_post("/_db/_system/_api/database", _create_database)
    app.router.add_get("/_db/{db}/_api/collection/{name}/count", _count)
    app.router.add_get("/_db/{db}/_api/collection/{name}", _get_collection)
    app.router.add_post("/_db/{db}/_api/collection", _create_collection)
    app.router.add_post("/_db/{db}/_api/document/{name}", _insert)
    return app


@dataclass
class FakeArangoServer:
    url: str
    state: FakeArangoState


@pytest.fixture
async def arango_server() -> AsyncIterator[FakeArangoServer]:
    """Fake ArangoDB server on the test's event loop.

    ``_system.batchimport`` exists from the start.
    """
    state = FakeArangoState()
    state.databases["_system"]["batchimport"] = {}
    port = _get_free_port()
    runner = web.AppRunner(_create_fake_arango_app(state))
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield FakeArangoServer(url=f"http://127.0.0.1:{port}", state=state)
    await runner.cleanup()


@pytest.fixture
def sync_arango_server() -> Iterator[FakeArangoServer]:
    """Fake ArangoDB server running in a background thread.

    For CLI tests, where the command runs its own event loop.
    """
    state = FakeArangoState()
    state.databases["_system"]["batchimport"] = {}
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_fake_arango_app(state))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield FakeArangoServer(url=f"http://127.0.0.1:{port}", state=state)

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)
