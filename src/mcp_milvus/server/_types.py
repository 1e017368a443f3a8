"""Type definitions shared by the tool registry, middleware and handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from mcp_milvus.models import FrozenModel

if TYPE_CHECKING:
    from mcp_milvus.session.manager import SessionManager

JsonType = Literal["string", "integer", "number", "boolean", "array", "object"]


class ParamDefinition(FrozenModel):
    """One named tool parameter."""

    name: str
    type: JsonType = "string"
    description: str = ""
    required: bool = False
    default: Any = None
    items: JsonType | None = None


class ToolAnnotationHints(FrozenModel):
    """Behaviour hints forwarded to MCP clients."""

    title: str | None = None
    read_only: bool | None = None
    destructive: bool | None = None
    idempotent: bool | None = None
    open_world: bool | None = None


class ToolDefinition(FrozenModel):
    """Declarative description of a tool: name, help text and parameters."""

    name: str
    description: str
    parameters: list[ParamDefinition] = Field(default_factory=list)
    annotations: ToolAnnotationHints | None = None

    def param(self, name: str) -> ParamDefinition | None:
        return next((p for p in self.parameters if p.name == name), None)


@dataclass(frozen=True)
class ToolRequest:
    """A single inbound tool call after the session id has been resolved."""

    name: str
    session_id: str
    sessions: SessionManager
    arguments: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        value = self.arguments.get(key, default)
        return default if value is None else value


@dataclass(frozen=True)
class ToolResult:
    """Text payload returned to the caller, flagged when it describes a failure."""

    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, text: str) -> ToolResult:
        return cls(text)

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(message, is_error=True)


ToolHandler = Callable[[ToolRequest], Awaitable[ToolResult]]
Middleware = Callable[[ToolHandler], ToolHandler]


__all__ = [
    "JsonType",
    "Middleware",
    "ParamDefinition",
    "ToolAnnotationHints",
    "ToolDefinition",
    "ToolHandler",
    "ToolRequest",
    "ToolResult",
]
