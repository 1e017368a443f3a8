"""Session state snapshots and lifecycle events."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from mcp_milvus.models import FrozenModel
from mcp_milvus.session.config import ConnectionConfig

# Metadata key recording the database selected after connecting.
CURRENT_DATABASE_KEY = "current_database"


class SessionEvent(str, Enum):
    """Lifecycle transitions broadcast to registered callbacks."""

    CREATED = "session_created"
    REMOVED = "session_removed"
    ACCESSED = "session_accessed"
    EXPIRED = "session_expired"


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class SessionState(FrozenModel):
    """Immutable view of one live session.

    The cache owns ``client``; borrowers must not keep it beyond one call.
    Updates go through ``model_copy(update=...)`` and replace the stored
    instance as a whole.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    session_id: str
    config: ConnectionConfig
    client: Any = Field(repr=False)
    created_at: datetime = Field(default_factory=utcnow)
    last_accessed: datetime = Field(default_factory=utcnow)
    access_count: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touched(self) -> SessionState:
        """Copy with one more access recorded."""
        return self.model_copy(
            update={
                "last_accessed": utcnow(),
                "access_count": self.access_count + 1,
            }
        )

    def with_metadata(self, key: str, value: Any) -> SessionState:
        """Copy whose metadata has ``key`` set; the original map is left alone."""
        metadata = dict(self.metadata)
        metadata[key] = value
        return self.model_copy(update={"metadata": metadata})

    @property
    def current_database(self) -> str:
        """Database the client is using, following any switch after connecting."""
        return str(self.metadata.get(CURRENT_DATABASE_KEY, self.config.db_name))

    def snapshot(self) -> SessionState:
        """Copy carrying its own metadata dict."""
        return self.model_copy(update={"metadata": dict(self.metadata)})


SessionEventCallback = Callable[[SessionEvent, str, SessionState], None]


__all__ = ["CURRENT_DATABASE_KEY", "SessionEvent", "SessionEventCallback", "SessionState", "utcnow"]
