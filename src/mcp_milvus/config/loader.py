"""Loading of the YAML server configuration."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mcp_milvus.config.models import ServerConfigModel

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MCP_MILVUS_CONFIG"

ENV_VAR_PATTERN = re.compile(r"\${([A-Za-z0-9_]+)}")


def resolve_env_var(value: str) -> str:
    """Replace ``${NAME}`` references with environment values.

    Raises:
        ValueError: If a referenced variable is not set.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in os.environ:
            raise ValueError(f"Environment variable {name} is not set")
        return os.environ[name]

    return ENV_VAR_PATTERN.sub(_replace, value)


def interpolate_env(config: Any) -> Any:
    """Recursively resolve environment references in a parsed config."""
    if isinstance(config, str):
        return resolve_env_var(config)
    if isinstance(config, dict):
        return {k: interpolate_env(v) for k, v in config.items()}
    if isinstance(config, list):
        return [interpolate_env(item) for item in config]
    return config


def load_server_config(path: str | Path | None = None) -> ServerConfigModel:
    """Load the server config from ``path``, ``$MCP_MILVUS_CONFIG`` or defaults.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist.
        ValueError: If the file is not a mapping or fails validation.
    """
    if path is None and os.environ.get(CONFIG_ENV_VAR):
        path = os.environ[CONFIG_ENV_VAR]

    if path is None:
        logger.debug("No server config given, using defaults")
        return ServerConfigModel()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Server config not found at {config_path}")

    with open(config_path) as f:
        config_data = yaml.safe_load(f) or {}

    if not isinstance(config_data, dict):
        raise ValueError("Server config must be a mapping")

    config_data = interpolate_env(config_data)

    try:
        config = ServerConfigModel.model_validate(config_data)
    except ValidationError as exc:
        raise ValueError(f"Invalid server config: {exc}") from exc

    logger.info(f"Loaded server config from {config_path}")
    return config


__all__ = ["CONFIG_ENV_VAR", "interpolate_env", "load_server_config", "resolve_env_var"]
