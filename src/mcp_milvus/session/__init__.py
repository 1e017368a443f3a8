"""Per-caller backend sessions.

This package owns the mapping from MCP session identifiers to live Milvus
clients: connection settings, immutable session state, the bounded TTL cache,
the manager that ties them together, and lifecycle monitoring callbacks.

Quick Start:
    ```python
    from mcp_milvus.session import ConnectionConfig, SessionManager

    sessions = SessionManager(max_sessions=50, default_ttl=1800)
    sessions.set("caller-1", ConnectionConfig(address="http://localhost:19530"))
    client = sessions.get("caller-1")
    sessions.close()
    ```
"""

from .backend import ClientBackend, MilvusBackend
from .cache import EvictionReason, SessionCache
from .config import DEFAULT_DB_NAME, ConnectionConfig, ConnectionConfigError
from .errors import (
    BackendConnectionError,
    SessionError,
    SessionLimitError,
    SessionNotFoundError,
    SessionValidationError,
)
from .manager import SessionManager
from .monitoring import register_session_event_callbacks
from .state import SessionEvent, SessionEventCallback, SessionState

__all__ = [
    "BackendConnectionError",
    "ClientBackend",
    "ConnectionConfig",
    "ConnectionConfigError",
    "DEFAULT_DB_NAME",
    "EvictionReason",
    "MilvusBackend",
    "SessionCache",
    "SessionError",
    "SessionEvent",
    "SessionEventCallback",
    "SessionLimitError",
    "SessionManager",
    "SessionNotFoundError",
    "SessionState",
    "SessionValidationError",
    "register_session_event_callbacks",
]
