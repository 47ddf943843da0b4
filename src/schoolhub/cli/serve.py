from typing import Annotated

import typer
from rich.console import Console

from schoolhub.config import configure_logging

console = Console()


def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8000,
    store: Annotated[str | None, typer.Option(help="Store backend: sql or memory.")] = None,
    log_level: Annotated[str | None, typer.Option(help="Overrides LOG_LEVEL.")] = None,
) -> None:
    """Start the REST API server."""
    import uvicorn

    from schoolhub.api.app import create_app
    from schoolhub.api.dependencies import build_store

    configure_logging(log_level)
    try:
        backend = build_store(store)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    app = create_app(store=backend)
    console.print(f"[green]Starting API server on {host}:{port}[/green]")
    uvicorn.run(app, host=host, port=port)
