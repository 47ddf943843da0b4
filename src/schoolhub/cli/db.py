"""Database schema commands."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from schoolhub.config import get_database_url

db_app = typer.Typer(help="Manage the database schema.")
console = Console()


@db_app.command("migrate")
def migrate(
    url: Annotated[str | None, typer.Option(help="Database URL (defaults to DATABASE_URL).")] = None,
    ini: Annotated[str, typer.Option(help="Path to alembic.ini.")] = "alembic.ini",
) -> None:
    """Upgrade the database to the latest Alembic revision."""
    from schoolhub.db.migrations import run_migrations

    db_url = url or get_database_url()
    console.print("Running migrations...")
    run_migrations(db_url, ini)
    console.print("[green]Database is up to date.[/green]")


@db_app.command("create-all")
def create_all_tables(
    url: Annotated[str | None, typer.Option(help="Database URL (defaults to DATABASE_URL).")] = None,
) -> None:
    """Create every table directly from metadata, bypassing Alembic (development databases)."""
    from schoolhub.db.engine import get_engine
    from schoolhub.db.migrations import create_all

    engine = get_engine(url)

    async def _run() -> None:
        try:
            await create_all(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    console.print("[green]Tables created.[/green]")
