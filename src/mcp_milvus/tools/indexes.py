"""Index management tools."""

from __future__ import annotations

from typing import Any

from pymilvus import MilvusClient
from pymilvus.milvus_client.index import IndexParams

from mcp_milvus.server._types import (
    ParamDefinition,
    ToolAnnotationHints,
    ToolDefinition,
    ToolRequest,
    ToolResult,
)
from mcp_milvus.server.registry import register_tool
from mcp_milvus.tools._common import (
    ToolArgumentError,
    get_client,
    json_object,
    require_str,
    run_blocking,
)


def build_index_params(
    field_name: str, index_type: str, metric_type: str, params: dict[str, Any] | None = None
) -> IndexParams:
    """Index parameters for a single field."""
    if not field_name:
        raise ToolArgumentError("index field_name must not be empty")
    index_params = MilvusClient.prepare_index_params()
    index_params.add_index(
        field_name=field_name,
        index_type=index_type,
        metric_type=metric_type,
        params=dict(params or {}),
    )
    return index_params


@register_tool(
    ToolDefinition(
        name="milvus_create_index",
        description="Create an index for a collection field.",
        parameters=[
            ParamDefinition(name="collection_name", description="Name of the collection.", required=True),
            ParamDefinition(
                name="field_name",
                description="Name of the field to create index for.",
                required=True,
            ),
            ParamDefinition(
                name="index_type",
                description="Type of the index, e.g. IVF_FLAT, HNSW, etc.",
                required=True,
            ),
            ParamDefinition(
                name="metric_type",
                description="Metric type, e.g. COSINE, L2, etc.",
                required=True,
            ),
            ParamDefinition(
                name="params",
                type="object",
                description='Index parameters as JSON, e.g. {"nlist": 128}',
            ),
        ],
    )
)
async def milvus_create_index(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    field_name = require_str(request, "field_name")
    index_params = build_index_params(
        field_name,
        require_str(request, "index_type"),
        require_str(request, "metric_type"),
        json_object(request, "params"),
    )
    await run_blocking(
        client.create_index, collection_name=collection_name, index_params=index_params
    )
    return ToolResult.ok(
        f"Index created successfully for collection '{collection_name}', field '{field_name}'"
    )


@register_tool(
    ToolDefinition(
        name="milvus_drop_index",
        description="Drop an index from a collection.",
        parameters=[
            ParamDefinition(name="collection_name", description="Name of the collection.", required=True),
            ParamDefinition(name="index_name", description="Name of the index to drop.", required=True),
        ],
        annotations=ToolAnnotationHints(destructive=True),
    )
)
async def milvus_drop_index(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    index_name = require_str(request, "index_name")
    await run_blocking(client.drop_index, collection_name=collection_name, index_name=index_name)
    return ToolResult.ok(
        f"Index '{index_name}' dropped successfully from collection '{collection_name}'"
    )
