"""
FastMCP host for the registered Milvus tools.

Each registered tool is exposed with a generated signature so FastMCP can
derive its JSON schema. Calls are turned into ``ToolRequest`` objects, run
through the middleware chain and converted back: error results are raised as
``ToolError`` so the client receives ``isError: true``.
"""

from __future__ import annotations

import contextlib
import logging
import signal
import weakref
from collections.abc import Sequence
from typing import Annotated, Any, Literal, cast

from makefun import create_function
from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from mcp_milvus.server._types import (
    Middleware,
    ParamDefinition,
    ToolDefinition,
    ToolRequest,
)
from mcp_milvus.server.middleware import DEFAULT_MIDDLEWARE, chain
from mcp_milvus.server.registry import RegisteredTool, registered_tools
from mcp_milvus.session.errors import SessionNotFoundError
from mcp_milvus.session.manager import SessionManager
from mcp_milvus.telemetry import shutdown_metrics
from mcp_milvus.version import PACKAGE_NAME, PACKAGE_VERSION

logger = logging.getLogger(__name__)

Transport = Literal["stdio", "sse", "streamable-http"]

SESSION_HEADER = "mcp-session-id"
SSE_SESSION_PARAM = "session_id"

_PYTHON_TYPES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "object": dict[str, Any],
    "array": list[Any],
}


def param_annotation(param: ParamDefinition) -> Any:
    """Pydantic-friendly annotation for one tool parameter."""
    if param.type == "array" and param.items is not None:
        base: Any = list[_PYTHON_TYPES[param.items]]  # type: ignore[valid-type]
    else:
        base = _PYTHON_TYPES[param.type]
    if not param.required:
        base = base | None
    return Annotated[base, Field(description=param.description)]


def resolve_session_id(ctx: Context | None) -> str:
    """Identify the MCP session a call belongs to.

    Uses the transport's session id when there is one, then the
    ``mcp-session-id`` header (streamable HTTP), then the ``session_id`` query
    parameter the SSE transport adds to every message post, and finally the
    identity of the server session object (stdio).
    """
    if ctx is None:
        return ""

    with contextlib.suppress(Exception):
        session_id = getattr(ctx, "session_id", None)
        if session_id:
            return str(session_id)

    with contextlib.suppress(Exception):
        request = ctx.request_context.request
        if request is not None:
            header = request.headers.get(SESSION_HEADER)
            if header:
                return str(header)
            query_id = request.query_params.get(SSE_SESSION_PARAM)
            if query_id:
                return str(query_id)

    with contextlib.suppress(Exception):
        session = ctx.session
        if session is not None:
            return f"session-{id(session):x}"

    return ""


def release_session(sessions: SessionManager, session_id: str) -> None:
    """Close the backend session of an MCP session that has gone away."""
    if sessions.closed:
        return
    try:
        sessions.remove(session_id)
    except SessionNotFoundError:
        return
    logger.info(f"MCP session {session_id} ended, closed its Milvus connection")


class MilvusMCPServer:
    """Exposes registered tools over MCP, backed by one ``SessionManager``.

    Args:
        sessions: Session manager shared by every tool call
        host: Bind address for HTTP transports
        port: Bind port for HTTP transports
        tools: Tools to expose; defaults to everything in the registry
        middleware: Middleware applied to every handler, outermost first
    """

    def __init__(
        self,
        sessions: SessionManager,
        *,
        host: str = "0.0.0.0",
        port: int = 8080,
        tools: Sequence[RegisteredTool] | None = None,
        middleware: Sequence[Middleware] = DEFAULT_MIDDLEWARE,
    ):
        self.sessions = sessions
        self.host = host
        self.port = port
        self.middleware = tuple(middleware)
        self.transport_mode: str | None = None
        self._shutdown_called = False
        self._watched_sessions: weakref.WeakSet[Any] = weakref.WeakSet()

        if tools is None:
            import mcp_milvus.tools  # noqa: F401  (registers the built-in tools)

            tools = registered_tools()
        self.tools = tuple(tools)

        logger.info(f"Initializing FastMCP with host={host}, port={port}")
        self.mcp = FastMCP(name=PACKAGE_NAME, host=host, port=port)
        self.register_tools()

    def register_tools(self) -> None:
        for tool in self.tools:
            self._register_tool(tool)
        logger.info(f"Registered {len(self.tools)} tools")

    def _register_tool(self, tool: RegisteredTool) -> None:
        definition = tool.definition
        handler = self._build_handler(definition, chain(tool.handler, *self.middleware))
        self.mcp.tool(
            name=definition.name,
            description=definition.description,
            annotations=self._create_tool_annotations(definition),
        )(handler)
        logger.debug(f"Registered tool: {definition.name}")

    def _create_tool_annotations(self, definition: ToolDefinition) -> ToolAnnotations | None:
        hints = definition.annotations
        if hints is None:
            return None
        return ToolAnnotations(
            title=hints.title,
            readOnlyHint=hints.read_only,
            destructiveHint=hints.destructive,
            idempotentHint=hints.idempotent,
            openWorldHint=hints.open_world,
        )

    def _build_handler(self, definition: ToolDefinition, wrapped: Any) -> Any:
        # Context first so FastMCP injects it; required parameters before optional ones.
        param_annotations: dict[str, Any] = {"ctx": Context}
        param_signatures = ["ctx"]

        required = [p for p in definition.parameters if p.required]
        optional = [p for p in definition.parameters if not p.required]
        for param in required + optional:
            param_annotations[param.name] = param_annotation(param)
            if param.required:
                param_signatures.append(param.name)
            else:
                param_signatures.append(f"{param.name}={param.default!r}")

        signature = f"({', '.join(param_signatures)})"
        sessions = self.sessions
        watch_session = self._watch_session

        async def _body(**kwargs: Any) -> str:
            ctx = kwargs.pop("ctx", None)
            session_id = resolve_session_id(ctx)
            watch_session(ctx, session_id)
            request = ToolRequest(
                name=definition.name,
                session_id=session_id,
                sessions=sessions,
                arguments=kwargs,
            )
            result = await wrapped(request)
            if result.is_error:
                raise ToolError(result.text)
            return result.text

        handler = create_function(signature, _body, func_name=definition.name)
        handler.__annotations__ = {**param_annotations, "return": str}
        return handler

    def _watch_session(self, ctx: Context | None, session_id: str) -> None:
        """Release ``session_id`` once the MCP session object it arrived on is collected."""
        if ctx is None or not session_id:
            return
        session = None
        # Context.session raises ValueError outside a request.
        with contextlib.suppress(ValueError, AttributeError):
            session = ctx.session
        if session is None or session in self._watched_sessions:
            return
        self._watched_sessions.add(session)
        weakref.finalize(session, release_session, self.sessions, session_id)
        logger.debug(f"Watching MCP session {session_id} for disconnect")

    def run(self, transport: Transport = "sse") -> None:
        """Serve until the transport stops, then release every session."""
        self.transport_mode = transport
        self._register_signal_handlers()
        try:
            logger.info(f"Starting {PACKAGE_NAME} {PACKAGE_VERSION} ({transport})")
            self.mcp.run(transport=cast(Transport, transport))
        finally:
            self.shutdown()

    def _register_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_exit_signal)
        signal.signal(signal.SIGINT, self._handle_exit_signal)

    def _handle_exit_signal(self, signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        self.shutdown()
        raise SystemExit(0)

    def shutdown(self) -> None:
        """Close every session and flush metrics. Safe to call more than once."""
        if self._shutdown_called:
            return
        self._shutdown_called = True

        logger.info(f"Closing session manager ({self.sessions.size()} sessions)...")
        try:
            self.sessions.close()
        except Exception as e:
            logger.error(f"Failed to close session manager: {e}")

        try:
            shutdown_metrics()
        except Exception as e:
            logger.error(f"Error shutting down metrics: {e}")
        logger.info("Server shutdown complete")


__all__ = ["MilvusMCPServer", "param_annotation", "release_session", "resolve_session_id"]
