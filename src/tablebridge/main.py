"""
tablebridge - CLI Entry Point.

Usage:
    tablebridge serve              Start the HTTP API
    tablebridge tables             List discoverable tables
    tablebridge schema <table>     Show a table's columns and keys
    tablebridge version            Show version
"""

import logging
import sys

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="tablebridge",
    help="tablebridge - a generic JSON API over any relational database.",
    add_completion=False,
)
console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Setup logging with visible output."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Quiet down noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _introspector():
    from tablebridge.db.client import get_engine
    from tablebridge.db.introspect import SchemaIntrospector

    return SchemaIntrospector(get_engine())


@app.command()
def serve(
    port: int = typer.Option(0, "--port", "-p", help="Port to run on (default: settings.port)"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the HTTP API server."""
    import uvicorn

    from tablebridge.config import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)
    actual_port = port or settings.port

    console.print("\n[bold green]tablebridge[/bold green]")
    console.print(f"Starting server on http://{settings.host}:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "tablebridge.web.app:create_app",
        factory=True,
        host=settings.host,
        port=actual_port,
        reload=reload,
    )


@app.command()
def tables() -> None:
    """List the base tables the API can serve."""
    from tablebridge.errors import TableBridgeError

    try:
        names = _introspector().list_tables()
    except TableBridgeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    if not names:
        console.print("[dim]No tables found[/dim]")
        return
    for name in names:
        console.print(name)


@app.command()
def schema(table: str = typer.Argument(..., help="Table name")) -> None:
    """Show a table's columns as the API describes them."""
    from tablebridge.errors import TableBridgeError

    try:
        table_schema = _introspector().introspect(table)
    except TableBridgeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    output = Table(title=table_schema.table)
    output.add_column("Column")
    output.add_column("Native type")
    output.add_column("Type")
    output.add_column("Key")
    output.add_column("Foreign key")
    for col in table_schema.columns:
        output.add_row(
            col.name,
            col.native_type,
            col.semantic_type.value,
            "yes" if col.is_primary_key else "",
            col.foreign_key_constraint_name or "",
        )
    console.print(output)


@app.command()
def version() -> None:
    """Show version information."""
    from tablebridge import __version__

    console.print(f"tablebridge version {__version__}")


if __name__ == "__main__":
    app()
