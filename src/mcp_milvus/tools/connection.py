"""Session establishment and teardown tools."""

from __future__ import annotations

import logging

from mcp_milvus.server._types import (
    ParamDefinition,
    ToolAnnotationHints,
    ToolDefinition,
    ToolRequest,
    ToolResult,
)
from mcp_milvus.server.registry import register_tool
from mcp_milvus.session.config import DEFAULT_DB_NAME, ConnectionConfig
from mcp_milvus.session.state import utcnow
from mcp_milvus.tools._common import optional_str, require_str, run_blocking

logger = logging.getLogger(__name__)

CLIENT_TYPE = "mcp_client"


@register_tool(
    ToolDefinition(
        name="milvus_connector",
        description="Connect to a Milvus server instance with authentication and database selection.",
        parameters=[
            ParamDefinition(
                name="address",
                description="The URI address of the Milvus server, e.g., 'http://localhost:19530'.",
                required=True,
            ),
            ParamDefinition(
                name="token",
                description="Authentication credentials in the format 'username:password'.",
                default="",
            ),
            ParamDefinition(
                name="db_name",
                description="The name of the database to connect to, e.g., 'default'.",
                default=DEFAULT_DB_NAME,
            ),
        ],
        annotations=ToolAnnotationHints(title="Connect to Milvus", open_world=True),
    )
)
async def milvus_connector(request: ToolRequest) -> ToolResult:
    config = ConnectionConfig(
        address=require_str(request, "address"),
        token=optional_str(request, "token"),
        db_name=optional_str(request, "db_name") or DEFAULT_DB_NAME,
    )

    # Opening the connection performs a network handshake.
    await run_blocking(request.sessions.set, request.session_id, config)

    request.sessions.set_session_metadata(
        request.session_id, "client_connected_at", utcnow().isoformat()
    )
    request.sessions.set_session_metadata(request.session_id, "client_type", CLIENT_TYPE)

    return ToolResult.ok(f"Connected to Milvus successfully, database: {config.db_name}")


@register_tool(
    ToolDefinition(
        name="milvus_disconnect",
        description="Close the Milvus connection held by this session.",
        annotations=ToolAnnotationHints(title="Disconnect from Milvus", idempotent=False),
    )
)
async def milvus_disconnect(request: ToolRequest) -> ToolResult:
    await run_blocking(request.sessions.remove, request.session_id)
    return ToolResult.ok("Disconnected from Milvus")
