# Copyright (c) Syntropy Systems
"""Main CLI entry point for reval."""

import logging

import typer
from rich.logging import RichHandler

from reval.cli.dashboard import ui
from reval.cli.evals import delete, list_evals, show
from reval.cli.export import export
from reval.cli.init_cmd import init
from reval.cli.run_cmd import run

app = typer.Typer(
    name="reval",
    help=(
        "Benchmark functions across datasets and variants. "
        "Run, score and compare evals."
    ),
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logs"
    ),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


# Register commands
_ = app.command()(init)
_ = app.command()(run)
_ = app.command(name="list")(list_evals)
_ = app.command()(show)
_ = app.command(name="export")(export)
_ = app.command()(delete)
_ = app.command()(ui)


if __name__ == "__main__":
    app()
