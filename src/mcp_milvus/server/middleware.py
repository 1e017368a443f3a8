"""
Tool-call middleware.

A middleware takes a ``ToolHandler`` and returns a wrapped one. ``chain``
composes them so that the first middleware listed sees the request first:

    chain(handler, logging_middleware, auth_middleware, error_boundary)
"""

from __future__ import annotations

import functools
import logging
import time

from pymilvus import MilvusException

from mcp_milvus.schema.models import SchemaError
from mcp_milvus.server._types import Middleware, ToolHandler, ToolRequest, ToolResult
from mcp_milvus.session.config import ConnectionConfigError
from mcp_milvus.session.errors import SessionError
from mcp_milvus.telemetry import record_counter, record_histogram
from mcp_milvus.tools._common import ToolArgumentError

logger = logging.getLogger(__name__)

CONNECTOR_TOOL = "milvus_connector"

MISSING_SESSION_MESSAGE = "must provide an available session id"
UNAUTHENTICATED_MESSAGE = "auth first, please call milvus_connector tool"


def logging_middleware(next_handler: ToolHandler) -> ToolHandler:
    """Log and time every tool call; error results count as failures."""

    @functools.wraps(next_handler)
    async def handler(request: ToolRequest) -> ToolResult:
        start_time = time.perf_counter()
        status = "success"
        try:
            result = await next_handler(request)
        except Exception as e:
            status = "error"
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Tool call failed, {e}: session={request.session_id} "
                f"tool={request.name} duration={duration_ms:.1f}ms"
            )
            raise
        else:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if result.is_error:
                status = "error"
                logger.error(
                    f"Tool call failed, {result.text}: session={request.session_id} "
                    f"tool={request.name} duration={duration_ms:.1f}ms"
                )
            else:
                logger.info(
                    f"Tool call completed: session={request.session_id} "
                    f"tool={request.name} duration={duration_ms:.1f}ms"
                )
            return result
        finally:
            attributes = {"tool": request.name, "status": status}
            record_counter(
                "mcp_milvus.tool.calls_total",
                attributes=attributes,
                description="Total tool calls",
            )
            record_histogram(
                "mcp_milvus.tool.duration_ms",
                (time.perf_counter() - start_time) * 1000,
                attributes=attributes,
                description="Tool call duration",
            )

    return handler


def auth_middleware(next_handler: ToolHandler) -> ToolHandler:
    """Reject calls without an established session, except the connector."""

    @functools.wraps(next_handler)
    async def handler(request: ToolRequest) -> ToolResult:
        if not request.session_id:
            return ToolResult.error(MISSING_SESSION_MESSAGE)

        if request.name == CONNECTOR_TOOL:
            return await next_handler(request)

        try:
            request.sessions.get(request.session_id)
        except SessionError as e:
            logger.debug(f"Rejected {request.name} for session {request.session_id}: {e}")
            return ToolResult.error(UNAUTHENTICATED_MESSAGE)
        return await next_handler(request)

    return handler


def error_boundary(next_handler: ToolHandler) -> ToolHandler:
    """Turn expected domain failures into error results."""

    @functools.wraps(next_handler)
    async def handler(request: ToolRequest) -> ToolResult:
        try:
            return await next_handler(request)
        except (SessionError, ConnectionConfigError, SchemaError, ToolArgumentError) as e:
            return ToolResult.error(str(e))
        except MilvusException as e:
            return ToolResult.error(f"Milvus error: {e.message or e}")

    return handler


DEFAULT_MIDDLEWARE: tuple[Middleware, ...] = (logging_middleware, auth_middleware, error_boundary)


def chain(handler: ToolHandler, *middlewares: Middleware) -> ToolHandler:
    """Wrap ``handler`` so that ``middlewares[0]`` runs outermost."""
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


__all__ = [
    "CONNECTOR_TOOL",
    "DEFAULT_MIDDLEWARE",
    "MISSING_SESSION_MESSAGE",
    "UNAUTHENTICATED_MESSAGE",
    "auth_middleware",
    "chain",
    "error_boundary",
    "logging_middleware",
]
