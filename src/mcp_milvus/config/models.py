"""Pydantic models for the server configuration file."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransportConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    provider: Literal["stdio", "sse", "streamable-http"] = "sse"
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class SessionsConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_sessions: int = Field(default=100, gt=0)
    ttl_seconds: float = Field(default=3600.0, gt=0)
    monitor_interval_seconds: float = Field(default=900.0, ge=0)
    event_workers: int = Field(default=4, gt=0)
    connect_timeout_seconds: float | None = Field(default=10.0, gt=0)


class LoggingConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    path: str | None = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class TelemetryConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = False
    endpoint: str | None = None
    export_interval: int = Field(default=60, gt=0)


class ServerConfigModel(BaseModel):
    """Root of ``mcp-milvus.yml``. Every section is optional."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    transport: TransportConfigModel = Field(default_factory=TransportConfigModel)
    sessions: SessionsConfigModel = Field(default_factory=SessionsConfigModel)
    logging: LoggingConfigModel = Field(default_factory=LoggingConfigModel)
    telemetry: TelemetryConfigModel = Field(default_factory=TelemetryConfigModel)


__all__ = [
    "LoggingConfigModel",
    "ServerConfigModel",
    "SessionsConfigModel",
    "TelemetryConfigModel",
    "TransportConfigModel",
]
