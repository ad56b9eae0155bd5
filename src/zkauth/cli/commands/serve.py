"""Serve command for zkauth CLI.

Runs the HTTP API with uvicorn.
"""

from __future__ import annotations

__all__ = ["serve"]

import sys
from pathlib import Path

import click
import uvicorn

from zkauth.api.server import create_app
from zkauth.exceptions import ConfigurationError, RepositoryUnavailable
from zkauth.telemetry.system.system_logger import get_system_logger

from ..helpers import config_path_option, load_config_or_exit
from ..styling import style_error


@click.command()
@config_path_option
@click.option("--host", default=None, help="Bind address (default: api.host from config)")
@click.option("--port", type=int, default=None, help="Port (default: api.port from config)")
def serve(config_path: Path | None, host: str | None, port: int | None) -> None:
    """Start the authentication API server.

    Exit codes:
        0: Server stopped normally
        1: Config invalid or storage unreadable
    """
    config = load_config_or_exit(config_path)

    try:
        app = create_app(config)
    except (ConfigurationError, RepositoryUnavailable) as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)

    bind_host = host or config.api.host
    bind_port = port or config.api.port
    get_system_logger().info(
        {
            "event": "server_starting",
            "message": f"zkauth API listening on http://{bind_host}:{bind_port}",
        }
    )
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=config.logging.log_level.lower())
