"""Backend collaborators that open and close vector-database clients."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from pymilvus import MilvusClient

from mcp_milvus.session.config import ConnectionConfig
from mcp_milvus.session.errors import BackendConnectionError

logger = logging.getLogger(__name__)


@runtime_checkable
class ClientBackend(Protocol):
    """Opens a client for a connection config and releases it again."""

    def connect(self, config: ConnectionConfig) -> Any: ...

    def close(self, client: Any) -> None: ...


class MilvusBackend:
    """``ClientBackend`` backed by ``pymilvus.MilvusClient``."""

    def __init__(self, timeout: float | None = 10.0):
        self.timeout = timeout

    def connect(self, config: ConnectionConfig) -> MilvusClient:
        kwargs = config.to_client_kwargs()
        logger.debug(f"Connecting to Milvus at {config.address} (db={config.db_name})")
        try:
            return MilvusClient(**kwargs, timeout=self.timeout)
        except Exception as e:
            raise BackendConnectionError(
                f"failed to connect to Milvus at {config.address}: {e}"
            ) from e

    def close(self, client: MilvusClient) -> None:
        client.close()


__all__ = ["ClientBackend", "MilvusBackend"]
