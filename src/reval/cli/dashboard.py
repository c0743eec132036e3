# Copyright (c) Syntropy Systems
"""ui command - start the web dashboard."""

import typer
from rich.console import Console

from reval.config import require_reval_dir

console = Console()


def ui(
    port: int = typer.Option(8265, "--port", "-p", help="Port to run the dashboard on"),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
) -> None:
    """Start the reval dashboard web UI."""
    try:
        import uvicorn
    except ImportError as e:
        error_message = "[red]Dashboard dependencies not installed.[/red]"
        install_message = "Install with: [cyan]pip install reval[dashboard][/cyan]"
        console.print(f"{error_message}\n{install_message}")
        raise typer.Exit(1) from e

    try:
        _ = require_reval_dir()
    except RuntimeError as e:
        console.print("[red]Not in a reval project.[/red]")
        console.print("Run [cyan]reval init[/cyan] first.")
        raise typer.Exit(1) from e

    console.print("[bold]reval dashboard[/bold]")
    console.print(f"  Dashboard: [cyan]http://{host}:{port}[/cyan]")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "reval.dashboard:app",
        host=host,
        port=port,
        log_level="warning",
    )
