"""Collection lifecycle tools."""

from __future__ import annotations

import logging
from typing import Any

from mcp_milvus.schema.builder import build_schema_from_map
from mcp_milvus.server._types import (
    ParamDefinition,
    ToolAnnotationHints,
    ToolDefinition,
    ToolRequest,
    ToolResult,
)
from mcp_milvus.server.registry import register_tool
from mcp_milvus.tools._common import (
    get_client,
    json_list,
    json_object,
    optional_int,
    require_str,
    run_blocking,
    to_json,
)
from mcp_milvus.tools.indexes import build_index_params

logger = logging.getLogger(__name__)


def _collection_name(description: str) -> ParamDefinition:
    return ParamDefinition(name="collection_name", description=description, required=True)


@register_tool(
    ToolDefinition(
        name="milvus_list_collections",
        description="List all collections in the database.",
        annotations=ToolAnnotationHints(read_only=True),
    )
)
async def milvus_list_collections(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collections = await run_blocking(client.list_collections)
    return ToolResult.ok(f"Collections in database:\n{', '.join(collections)}")


@register_tool(
    ToolDefinition(
        name="milvus_create_collection",
        description="Create a new collection with specified schema.",
        parameters=[
            _collection_name("Name for the new collection."),
            ParamDefinition(
                name="collection_schema",
                type="object",
                required=True,
                description=(
                    "Collection schema definition as JSON. Example: "
                    '{"auto_id": false, "enable_dynamic_field": true, "fields": ['
                    '{"name": "id", "data_type": "Int64", "is_primary": true}, '
                    '{"name": "vector", "data_type": "FloatVector", "dimension": 128}]}'
                ),
            ),
            ParamDefinition(
                name="index_params",
                type="array",
                items="object",
                description=(
                    "Optional index parameters as JSON array. Example: "
                    '[{"field_name": "vector", "index_type": "AUTOINDEX", '
                    '"metric_type": "COSINE", "params": {}}]'
                ),
            ),
        ],
    )
)
async def milvus_create_collection(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    schema_map = json_object(request, "collection_schema", required=True)
    index_configs = json_list(request, "index_params") or []

    schema = build_schema_from_map(schema_map or {})
    await run_blocking(
        client.create_collection, collection_name=collection_name, schema=schema.to_milvus()
    )

    for config in index_configs:
        if not isinstance(config, dict):
            return ToolResult.error("Invalid index_params JSON: entries must be objects")
        field_name = str(config.get("field_name", ""))
        index_params = build_index_params(
            field_name,
            str(config.get("index_type", "")),
            str(config.get("metric_type", "")),
            config.get("params") or {},
        )
        try:
            await run_blocking(
                client.create_index, collection_name=collection_name, index_params=index_params
            )
        except Exception as e:
            logger.error(f"Index creation failed for {collection_name}.{field_name}: {e}")
            return ToolResult.error(f"CreateIndex failed for field {field_name}: {e}")

    return ToolResult.ok(
        f"Collection '{collection_name}' created successfully with {len(schema.fields)} fields"
    )


@register_tool(
    ToolDefinition(
        name="milvus_drop_collection",
        description="Drop a collection and all its data from Milvus.",
        parameters=[_collection_name("Name of the collection to drop.")],
        annotations=ToolAnnotationHints(destructive=True),
    )
)
async def milvus_drop_collection(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    await run_blocking(client.drop_collection, collection_name)
    return ToolResult.ok(f"Collection '{collection_name}' dropped successfully")


@register_tool(
    ToolDefinition(
        name="milvus_rename_collection",
        description="Rename an existing collection.",
        parameters=[
            ParamDefinition(
                name="old_collection_name",
                description="Current name of the collection to rename.",
                required=True,
            ),
            ParamDefinition(
                name="new_collection_name",
                description="New name for the collection.",
                required=True,
            ),
        ],
    )
)
async def milvus_rename_collection(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    old_name = require_str(request, "old_collection_name")
    new_name = require_str(request, "new_collection_name")
    await run_blocking(client.rename_collection, old_name, new_name)
    return ToolResult.ok(f"Collection '{old_name}' renamed to '{new_name}' successfully")


def _describe(client: Any, collection_name: str) -> dict[str, Any]:
    info: dict[str, Any] = dict(client.describe_collection(collection_name))

    load_state = client.get_load_state(collection_name)
    state = load_state.get("state") if isinstance(load_state, dict) else load_state
    info["load_state"] = getattr(state, "name", str(state))

    indexes = []
    for index_name in client.list_indexes(collection_name):
        indexes.append(client.describe_index(collection_name, index_name))
    info["indexes"] = indexes
    return info


@register_tool(
    ToolDefinition(
        name="milvus_get_collection_info",
        description="Lists detailed information about a specific collection",
        parameters=[_collection_name("Name of the collection to describe.")],
        annotations=ToolAnnotationHints(read_only=True),
    )
)
async def milvus_get_collection_info(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    info = await run_blocking(_describe, client, collection_name)
    return ToolResult.ok(f"Collection information:\n{to_json(info)}")


@register_tool(
    ToolDefinition(
        name="milvus_load_collection",
        description="Load a collection into memory for search and query.",
        parameters=[
            _collection_name("Name of collection to load."),
            ParamDefinition(
                name="replica_number",
                type="integer",
                description="Number of replicas (default: 1).",
                default=1,
            ),
        ],
    )
)
async def milvus_load_collection(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    replica_number = optional_int(request, "replica_number", 1)
    await run_blocking(client.load_collection, collection_name, replica_number=replica_number)
    return ToolResult.ok(
        f"Collection '{collection_name}' loaded successfully with {replica_number} replica(s)"
    )


@register_tool(
    ToolDefinition(
        name="milvus_release_collection",
        description="Release a collection from memory.",
        parameters=[_collection_name("Name of collection to release.")],
    )
)
async def milvus_release_collection(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    await run_blocking(client.release_collection, collection_name)
    return ToolResult.ok(f"Collection '{collection_name}' released successfully.")
