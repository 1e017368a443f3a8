"""Server configuration."""

from .loader import CONFIG_ENV_VAR, load_server_config
from .models import (
    LoggingConfigModel,
    ServerConfigModel,
    SessionsConfigModel,
    TelemetryConfigModel,
    TransportConfigModel,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "LoggingConfigModel",
    "ServerConfigModel",
    "SessionsConfigModel",
    "TelemetryConfigModel",
    "TransportConfigModel",
    "load_server_config",
]
