from unittest.mock import MagicMock, patch

import pytest

from mcp_milvus.session import BackendConnectionError, ClientBackend, ConnectionConfig, MilvusBackend


def test_milvus_backend_satisfies_protocol() -> None:
    assert isinstance(MilvusBackend(), ClientBackend)


def test_connect_passes_client_kwargs() -> None:
    config = ConnectionConfig(address="http://milvus:19530", token="root:Milvus", db_name="books")
    with patch("mcp_milvus.session.backend.MilvusClient") as client_cls:
        client = MilvusBackend(timeout=3.0).connect(config)

    client_cls.assert_called_once_with(
        uri="http://milvus:19530",
        user="root",
        password="Milvus",
        db_name="books",
        timeout=3.0,
    )
    assert client is client_cls.return_value


def test_connect_failure_is_wrapped() -> None:
    config = ConnectionConfig(address="http://unreachable:19530")
    with patch(
        "mcp_milvus.session.backend.MilvusClient", side_effect=RuntimeError("connection refused")
    ):
        with pytest.raises(BackendConnectionError, match="failed to connect to Milvus at http://unreachable:19530"):
            MilvusBackend().connect(config)


def test_close_closes_client() -> None:
    client = MagicMock()
    MilvusBackend().close(client)
    client.close.assert_called_once_with()
