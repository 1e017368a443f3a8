import logging
from pathlib import Path

import click

from mcp_milvus.cli.utils import configure_logging
from mcp_milvus.config import load_server_config
from mcp_milvus.server.mcp import MilvusMCPServer
from mcp_milvus.session import (
    MilvusBackend,
    SessionManager,
    register_session_event_callbacks,
)
from mcp_milvus.telemetry import configure_metrics

logger = logging.getLogger(__name__)


@click.command(name="serve")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the server config file (defaults to $MCP_MILVUS_CONFIG)",
)
@click.option(
    "--transport",
    type=click.Choice(["sse", "streamable-http", "stdio"]),
    help="Transport protocol to use (defaults to config setting)",
)
@click.option("--host", help="Bind address for HTTP transports")
@click.option("--port", type=int, help="Port for HTTP transports")
@click.option("--max-sessions", type=click.IntRange(min=1), help="Maximum concurrent sessions")
@click.option(
    "--session-ttl",
    type=click.FloatRange(min=0, min_open=True),
    help="Idle seconds before a session expires",
)
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), help="Log file path")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def serve(
    config_path: Path | None,
    transport: str | None,
    host: str | None,
    port: int | None,
    max_sessions: int | None,
    session_ttl: float | None,
    log_file: Path | None,
    debug: bool,
) -> None:
    """Start the Milvus MCP server.

    Every MCP client session gets its own Milvus connection, created by the
    milvus_connector tool and reused by every later tool call.

    \b
    Examples:
        mcp-milvus serve                        # SSE on 0.0.0.0:8080
        mcp-milvus serve --port 9000            # Override the port
        mcp-milvus serve --transport stdio      # Serve over stdin/stdout
        mcp-milvus serve --config server.yml    # Load settings from a file
    """
    try:
        config = load_server_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    effective_transport = transport or config.transport.provider
    configure_logging(
        debug=debug,
        transport=effective_transport,
        log_file=log_file or (Path(config.logging.path) if config.logging.path else None),
        log_level=config.logging.level,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
    )

    if config.telemetry.enabled:
        configure_metrics(
            enabled=True,
            endpoint=config.telemetry.endpoint,
            export_interval=config.telemetry.export_interval,
        )

    session_config = config.sessions
    sessions = SessionManager(
        MilvusBackend(timeout=session_config.connect_timeout_seconds),
        max_sessions=max_sessions or session_config.max_sessions,
        default_ttl=session_ttl if session_ttl is not None else session_config.ttl_seconds,
        monitor_interval=session_config.monitor_interval_seconds,
        event_workers=session_config.event_workers,
    )
    register_session_event_callbacks(sessions)

    server = MilvusMCPServer(
        sessions,
        host=host or config.transport.host,
        port=port or config.transport.port,
    )
    server.run(transport=effective_transport)  # type: ignore[arg-type]
