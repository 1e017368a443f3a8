"""Entity read and write tools."""

from __future__ import annotations

from typing import Any

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
    coerce_rows,
    field_types,
    get_client,
    json_list,
    optional_int,
    optional_str,
    require_str,
    run_blocking,
    string_list,
    to_json,
)

DEFAULT_QUERY_LIMIT = 10
DEFAULT_SEARCH_LIMIT = 5
DEFAULT_VECTOR_FIELD = "vector"
DEFAULT_METRIC_TYPE = "COSINE"

_COLLECTION = ParamDefinition(name="collection_name", description="Name of collection.", required=True)
_OUTPUT_FIELDS = ParamDefinition(
    name="output_fields",
    type="array",
    items="string",
    description="Fields to include in results as JSON array.",
)


def _prepare_rows(client: Any, collection_name: str, rows: list[Any]) -> list[dict[str, Any]]:
    description = client.describe_collection(collection_name)
    return coerce_rows(rows, field_types(description))


async def _coerced_data(request: ToolRequest, client: Any, collection_name: str) -> list[dict[str, Any]]:
    rows = json_list(request, "data", required=True) or []
    if not rows:
        raise ToolArgumentError("Data cannot be empty")
    try:
        return await run_blocking(_prepare_rows, client, collection_name, rows)
    except ToolArgumentError as e:
        raise ToolArgumentError(f"Data transformation failed: {e}") from None


@register_tool(
    ToolDefinition(
        name="milvus_insert_data",
        description="Insert data into a collection.",
        parameters=[
            _COLLECTION,
            ParamDefinition(
                name="data",
                type="array",
                items="object",
                required=True,
                description="List of dictionaries, each representing a record.",
            ),
        ],
    )
)
async def milvus_insert_data(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    rows = await _coerced_data(request, client, collection_name)
    result = await run_blocking(client.insert, collection_name=collection_name, data=rows)
    return ToolResult.ok(f"Inserted Count: {result.get('insert_count', len(rows))}")


@register_tool(
    ToolDefinition(
        name="milvus_upsert",
        description="Upsert (insert or update) data into a collection.",
        parameters=[
            _COLLECTION.model_copy(update={"description": "Name of the collection to upsert data into."}),
            ParamDefinition(
                name="data",
                type="array",
                items="object",
                required=True,
                description="List of dictionaries, each representing a record to upsert.",
            ),
            ParamDefinition(
                name="partition_name",
                description=(
                    "Name of the partition to upsert data into "
                    "(optional, defaults to default partition)."
                ),
                default="",
            ),
        ],
    )
)
async def milvus_upsert(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    partition_name = optional_str(request, "partition_name")
    rows = await _coerced_data(request, client, collection_name)
    result = await run_blocking(
        client.upsert, collection_name=collection_name, data=rows, partition_name=partition_name
    )
    return ToolResult.ok(
        f"Upserted {len(rows)} records successfully. "
        f"Upsert count: {result.get('upsert_count', len(rows))}"
    )


@register_tool(
    ToolDefinition(
        name="milvus_delete_entities",
        description="Delete entities from a collection based on filter expression.",
        parameters=[
            _COLLECTION,
            ParamDefinition(
                name="filter_expr",
                description="Filter expression to select entities to delete.",
                required=True,
            ),
        ],
        annotations=ToolAnnotationHints(destructive=True),
    )
)
async def milvus_delete_entities(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    filter_expr = require_str(request, "filter_expr")
    result = await run_blocking(client.delete, collection_name=collection_name, filter=filter_expr)
    return ToolResult.ok(f"Delete result: {dict(result) if isinstance(result, dict) else result}")


@register_tool(
    ToolDefinition(
        name="milvus_query",
        description="Query collection using filter expressions.",
        parameters=[
            _COLLECTION.model_copy(update={"description": "Name of the collection to query."}),
            ParamDefinition(
                name="filter_expr",
                description="Filter expression (e.g. 'age > 20').",
                required=True,
            ),
            _OUTPUT_FIELDS,
            ParamDefinition(
                name="limit",
                type="integer",
                description="Maximum number of results (default: 10).",
                default=DEFAULT_QUERY_LIMIT,
            ),
        ],
        annotations=ToolAnnotationHints(read_only=True),
    )
)
async def milvus_query(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    filter_expr = require_str(request, "filter_expr")
    output_fields = string_list(request, "output_fields")
    limit = optional_int(request, "limit", DEFAULT_QUERY_LIMIT)

    results = await run_blocking(
        client.query,
        collection_name=collection_name,
        filter=filter_expr,
        output_fields=output_fields,
        limit=limit,
    )
    rows = [dict(row) for row in results]
    return ToolResult.ok(
        f"Query results for '{filter_expr}' in collection '{collection_name}':\n\n"
        f"Results: {to_json(rows)}\n"
    )


def _format_hit(hit: Any) -> dict[str, Any]:
    hit = dict(hit)
    formatted: dict[str, Any] = {"id": hit.get("id"), "score": hit.get("distance")}
    entity = hit.get("entity") or {}
    formatted.update(dict(entity))
    return formatted


@register_tool(
    ToolDefinition(
        name="milvus_vector_search",
        description="Perform vector similarity search on a collection.",
        parameters=[
            _COLLECTION.model_copy(update={"description": "Name of the collection to search."}),
            ParamDefinition(
                name="vector",
                type="array",
                items="number",
                required=True,
                description="Query vector as JSON array.",
            ),
            ParamDefinition(
                name="vector_field",
                description="Field containing vectors to search (default: 'vector').",
                default=DEFAULT_VECTOR_FIELD,
            ),
            ParamDefinition(
                name="limit",
                type="integer",
                description="Maximum number of results (default: 5).",
                default=DEFAULT_SEARCH_LIMIT,
            ),
            _OUTPUT_FIELDS,
            ParamDefinition(
                name="metric_type",
                description="Distance metric (COSINE, L2, IP) (default: 'COSINE').",
                default=DEFAULT_METRIC_TYPE,
            ),
            ParamDefinition(name="filter_expr", description="Optional filter expression.", default=""),
        ],
        annotations=ToolAnnotationHints(read_only=True),
    )
)
async def milvus_vector_search(request: ToolRequest) -> ToolResult:
    client = get_client(request)
    collection_name = require_str(request, "collection_name")
    vector = json_list(request, "vector", required=True) or []
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector):
        raise ToolArgumentError("Invalid vector JSON: expected an array of numbers")

    results = await run_blocking(
        client.search,
        collection_name=collection_name,
        data=[[float(v) for v in vector]],
        anns_field=optional_str(request, "vector_field") or DEFAULT_VECTOR_FIELD,
        limit=optional_int(request, "limit", DEFAULT_SEARCH_LIMIT),
        output_fields=string_list(request, "output_fields"),
        filter=optional_str(request, "filter_expr"),
        search_params={"metric_type": optional_str(request, "metric_type") or DEFAULT_METRIC_TYPE},
    )

    output = f"Vector search results for collection '{collection_name}':\n\n"
    hits = list(results[0]) if results else []
    if not hits:
        return ToolResult.ok(output + "No results found\n")
    for hit in hits:
        output += f"{to_json(_format_hit(hit))}\n\n"
    return ToolResult.ok(output)
