"""Connection settings supplied by the ``milvus_connector`` tool."""

from __future__ import annotations

from typing import Any

from mcp_milvus.models import FrozenModel

DEFAULT_DB_NAME = "default"


class ConnectionConfigError(ValueError):
    """Raised when a connection config cannot be turned into client settings."""


class ConnectionConfig(FrozenModel):
    """Address, credentials and database of one backend connection.

    ``token`` is either empty or ``"username:password"``.
    """

    address: str
    token: str = ""
    db_name: str = DEFAULT_DB_NAME

    def credentials(self) -> tuple[str, str] | None:
        """Split the token into ``(user, password)``.

        Returns:
            None when no token is set.

        Raises:
            ConnectionConfigError: If the token is not exactly two colon-separated parts.
        """
        if not self.token:
            return None

        parts = self.token.split(":")
        if len(parts) != 2:
            raise ConnectionConfigError("invalid token format, e.g. username:password")
        return parts[0], parts[1]

    def to_client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``pymilvus.MilvusClient``."""
        kwargs: dict[str, Any] = {"uri": self.address, "db_name": self.db_name}
        credentials = self.credentials()
        if credentials is not None:
            kwargs["user"], kwargs["password"] = credentials
        return kwargs


__all__ = ["ConnectionConfig", "ConnectionConfigError", "DEFAULT_DB_NAME"]
