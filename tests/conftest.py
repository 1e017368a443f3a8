"""
Global pytest configuration and fixtures.

``FakeBackend`` stands in for ``MilvusBackend`` and hands out ``FakeMilvusClient``
instances, which record every call and return canned responses shaped like the
ones ``pymilvus.MilvusClient`` returns.
"""

import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from pymilvus import DataType

from mcp_milvus.server._types import ToolRequest
from mcp_milvus.session import BackendConnectionError, ConnectionConfig, SessionManager


def default_description(collection_name: str) -> dict[str, Any]:
    return {
        "collection_name": collection_name,
        "auto_id": False,
        "fields": [
            {"name": "id", "type": DataType.INT64, "params": {}, "is_primary": True},
            {"name": "vector", "type": DataType.FLOAT_VECTOR, "params": {"dim": 3}},
            {"name": "title", "type": DataType.VARCHAR, "params": {"max_length": 256}},
            {"name": "score", "type": DataType.FLOAT, "params": {}},
            {"name": "active", "type": DataType.BOOL, "params": {}},
        ],
    }


class FakeMilvusClient:
    """Records calls made by the tool handlers."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self.closed = False
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.databases = ["default"]
        self.collections: list[str] = []
        self.query_results: list[dict[str, Any]] = []
        self.search_results: list[list[dict[str, Any]]] = [[]]
        self.description_override: dict[str, Any] | None = None

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))

    def called(self, name: str) -> list[tuple[tuple[Any, ...], dict[str, Any]]]:
        return [(args, kwargs) for call, args, kwargs in self.calls if call == name]

    def close(self) -> None:
        self.closed = True

    def list_databases(self) -> list[str]:
        self._record("list_databases")
        return list(self.databases)

    def create_database(self, db_name: str) -> None:
        self._record("create_database", db_name)
        self.databases.append(db_name)

    def using_database(self, db_name: str) -> None:
        self._record("using_database", db_name)

    def list_collections(self) -> list[str]:
        self._record("list_collections")
        return list(self.collections)

    def create_collection(self, **kwargs: Any) -> None:
        self._record("create_collection", **kwargs)
        self.collections.append(kwargs["collection_name"])

    def drop_collection(self, collection_name: str) -> None:
        self._record("drop_collection", collection_name)

    def rename_collection(self, old_name: str, new_name: str) -> None:
        self._record("rename_collection", old_name, new_name)

    def describe_collection(self, collection_name: str) -> dict[str, Any]:
        self._record("describe_collection", collection_name)
        return self.description_override or default_description(collection_name)

    def get_load_state(self, collection_name: str) -> dict[str, Any]:
        self._record("get_load_state", collection_name)
        return {"state": "Loaded"}

    def list_indexes(self, collection_name: str) -> list[str]:
        self._record("list_indexes", collection_name)
        return ["vector"]

    def describe_index(self, collection_name: str, index_name: str) -> dict[str, Any]:
        self._record("describe_index", collection_name, index_name)
        return {"index_name": index_name, "index_type": "AUTOINDEX", "metric_type": "COSINE"}

    def load_collection(self, collection_name: str, **kwargs: Any) -> None:
        self._record("load_collection", collection_name, **kwargs)

    def release_collection(self, collection_name: str) -> None:
        self._record("release_collection", collection_name)

    def create_index(self, **kwargs: Any) -> None:
        self._record("create_index", **kwargs)

    def drop_index(self, **kwargs: Any) -> None:
        self._record("drop_index", **kwargs)

    def insert(self, **kwargs: Any) -> dict[str, Any]:
        self._record("insert", **kwargs)
        return {"insert_count": len(kwargs["data"]), "ids": []}

    def upsert(self, **kwargs: Any) -> dict[str, Any]:
        self._record("upsert", **kwargs)
        return {"upsert_count": len(kwargs["data"])}

    def delete(self, **kwargs: Any) -> dict[str, Any]:
        self._record("delete", **kwargs)
        return {"delete_count": 2}

    def query(self, **kwargs: Any) -> list[dict[str, Any]]:
        self._record("query", **kwargs)
        return list(self.query_results)

    def search(self, **kwargs: Any) -> list[list[dict[str, Any]]]:
        self._record("search", **kwargs)
        return self.search_results


class FakeBackend:
    """In-memory ``ClientBackend``; flip ``fail_connect`` / ``fail_close`` to inject faults."""

    def __init__(self) -> None:
        self.clients: list[FakeMilvusClient] = []
        self.closed: list[FakeMilvusClient] = []
        self.fail_connect = False
        self.fail_close = False
        self._lock = threading.Lock()

    def connect(self, config: ConnectionConfig) -> FakeMilvusClient:
        if self.fail_connect:
            raise BackendConnectionError(f"failed to connect to Milvus at {config.address}: refused")
        client = FakeMilvusClient(config)
        with self._lock:
            self.clients.append(client)
        return client

    def close(self, client: FakeMilvusClient) -> None:
        if self.fail_close:
            raise RuntimeError("close failed")
        client.close()
        with self._lock:
            self.closed.append(client)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions(backend: FakeBackend, clock: FakeClock) -> Iterator[SessionManager]:
    manager = SessionManager(backend, max_sessions=5, default_ttl=60.0, monitor_interval=0, clock=clock)
    yield manager
    manager.close()


@pytest.fixture
def client(sessions: SessionManager) -> FakeMilvusClient:
    """A session ``s1`` already connected to a fake Milvus."""
    sessions.set("s1", ConnectionConfig(address="http://localhost:19530"))
    return sessions.get_state("s1").client


@pytest.fixture
def make_request(sessions: SessionManager) -> Callable[..., ToolRequest]:
    def _make(name: str, /, session_id: str = "s1", **arguments: Any) -> ToolRequest:
        return ToolRequest(name=name, session_id=session_id, sessions=sessions, arguments=arguments)

    return _make


@pytest.fixture
def wait_until() -> Callable[..., None]:
    """Poll ``predicate`` until it holds; event callbacks run on worker threads."""

    def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return
            time.sleep(0.01)
        raise AssertionError("condition not met before timeout")

    return _wait
