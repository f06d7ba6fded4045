"""CLI commands for development utilities.

Usage:
    caseflow dev serve [--port PORT] [--reload]
"""

import click
import uvicorn

from ..config import get_settings


@click.group(name="dev")
def cli():
    """Development utility commands."""
    pass


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (default: API_HOST)")
@click.option("--port", "-p", default=None, type=int, help="Port (default: API_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "caseflow.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_config=None,
    )
