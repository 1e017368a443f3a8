import logging
import logging.handlers
import os
import sys
from pathlib import Path

DEBUG_ENV_VAR = "MCP_MILVUS_DEBUG"


def get_env_flag(env_var: str, default: bool = False) -> bool:
    """Get a boolean flag from an environment variable.

    Args:
        env_var: Name of the environment variable
        default: Default value if environment variable is not set

    Returns:
        True if the variable is "1", "true" or "yes" (case insensitive)
    """
    value = os.environ.get(env_var, "").lower()
    return value in ("1", "true", "yes") if value else default


def configure_logging(
    debug: bool = False,
    transport: str | None = None,
    log_file: Path | None = None,
    log_level: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Configure logging for the server process.

    Args:
        debug: Force DEBUG level, overriding ``log_level``
        transport: Transport mode; stderr logging is skipped for stdio
        log_file: Optional rotating log file
        log_level: Level name such as "INFO" or "WARNING"
        max_bytes: Size at which the log file rotates
        backup_count: Number of rotated files to keep
    """
    if not debug:
        debug = get_env_flag(DEBUG_ENV_VAR)

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    simple_formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(detailed_formatter)
            root_logger.addHandler(file_handler)
        except Exception as e:
            print(f"Warning: Failed to setup file logging to {log_file}: {e}", file=sys.stderr)

    # stdio carries the MCP protocol itself
    if transport != "stdio":
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(simple_formatter)
        root_logger.addHandler(stream_handler)

    # pymilvus is chatty at DEBUG
    if not debug:
        logging.getLogger("pymilvus").setLevel(max(level, logging.WARNING))
