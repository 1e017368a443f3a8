"""Session-aware MCP server exposing Milvus vector database operations."""

from mcp_milvus.version import PACKAGE_NAME, PACKAGE_VERSION

__version__ = PACKAGE_VERSION

__all__ = ["PACKAGE_NAME", "__version__"]
