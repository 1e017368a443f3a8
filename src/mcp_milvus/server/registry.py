"""Process-wide list of tools, populated by tool modules at import time."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import NamedTuple

from mcp_milvus.server._types import ToolDefinition, ToolHandler

logger = logging.getLogger(__name__)


class RegisteredTool(NamedTuple):
    definition: ToolDefinition
    handler: ToolHandler


_tools: list[RegisteredTool] = []
_lock = threading.Lock()


def add_tool(definition: ToolDefinition, handler: ToolHandler) -> RegisteredTool:
    """Append a tool to the registry.

    Raises:
        ValueError: If a tool with the same name is already registered.
    """
    with _lock:
        if any(tool.definition.name == definition.name for tool in _tools):
            raise ValueError(f"Tool '{definition.name}' is already registered")
        tool = RegisteredTool(definition, handler)
        _tools.append(tool)
    logger.debug(f"Registered tool {definition.name}")
    return tool


def register_tool(definition: ToolDefinition) -> Callable[[ToolHandler], ToolHandler]:
    """Decorator form of ``add_tool``; returns the handler unchanged."""

    def decorator(handler: ToolHandler) -> ToolHandler:
        add_tool(definition, handler)
        return handler

    return decorator


def registered_tools() -> tuple[RegisteredTool, ...]:
    """Snapshot of every registered tool, in registration order."""
    with _lock:
        return tuple(_tools)


__all__ = ["RegisteredTool", "add_tool", "register_tool", "registered_tools"]
