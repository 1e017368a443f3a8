"""MCP hosting layer: tool registry, middleware chain and the FastMCP server.

Submodules are imported directly (``mcp_milvus.server.mcp``,
``mcp_milvus.server.registry``) so that tool modules can register themselves
without importing the FastMCP host.
"""
