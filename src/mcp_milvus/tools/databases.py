"""Database listing, creation and selection tools."""

from __future__ import annotations

from mcp_milvus.server._types import (
    ParamDefinition,
    ToolAnnotationHints,
    ToolDefinition,
    ToolRequest,
    ToolResult,
)
from mcp_milvus.server.registry import register_tool
from mcp_milvus.session.state import CURRENT_DATABASE_KEY
from mcp_milvus.tools._common import get_client, require_str, run_blocking

_DATABASE_NAME = ParamDefinition(
    name="database_name",
    description="Name of the database.",
    required=True,
)


@register_tool(
    ToolDefinition(
        name="milvus_list_databases",
        description="List all databases in the connected Milvus instance.",
        annotations=ToolAnnotationHints(read_only=True),
    )
)
async def milvus_list_databases(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    databases = await run_blocking(client.list_databases)
    return ToolResult.ok(f"Databases: {list(databases)}")


@register_tool(
    ToolDefinition(
        name="milvus_create_database",
        description="Create a new database.",
        parameters=[_DATABASE_NAME.model_copy(update={"description": "Name of the database to create."})],
    )
)
async def milvus_create_database(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    database_name = require_str(request, "database_name")
    await run_blocking(client.create_database, database_name)
    return ToolResult.ok(f"Database '{database_name}' created successfully")


@register_tool(
    ToolDefinition(
        name="milvus_use_database",
        description="Switch to a specific database.",
        parameters=[
            _DATABASE_NAME.model_copy(update={"description": "Name of the database to switch to."})
        ],
    )
)
async def milvus_use_database(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    database_name = require_str(request, "database_name")
    await run_blocking(client.using_database, database_name)
    request.sessions.set_session_metadata(request.session_id, CURRENT_DATABASE_KEY, database_name)
    return ToolResult.ok(f"Successfully switched to database: {database_name}")
