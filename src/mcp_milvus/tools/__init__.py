"""Milvus tool handlers.

Importing this package registers every tool with ``mcp_milvus.server.registry``.
"""

from . import collections, connection, data, databases, indexes  # noqa: F401

__all__ = ["collections", "connection", "data", "databases", "indexes"]
