"""CLI commands for database setup.

Usage:
    caseflow db init
"""

import asyncio

import click

from ..config import get_settings


@click.group(name="db")
def cli():
    """Database commands."""
    pass


@cli.command("init")
def init_db() -> None:
    """Create the documents table in the configured SQL database."""
    from ..db import close_all_connections, init_schema

    async def _init() -> None:
        try:
            await init_schema()
        finally:
            await close_all_connections()

    settings = get_settings()
    if settings.store_backend != "sql":
        click.echo("STORE_BACKEND is not 'sql'; the tables are created anyway.", err=True)
    asyncio.run(_init())
    click.echo("Schema ready.")
