# Copyright (c) Syntropy Systems
"""reval run command."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer
from rich.console import Console

from reval.cli.evals import print_summary
from reval.config import (
    CONFIG_FILENAME,
    find_reval_dir,
    get_db_path,
    load_config_file,
    load_settings,
)
from reval.db import get_connection
from reval.errors import RevalError
from reval.eval import run_eval
from reval.report import summarize

if TYPE_CHECKING:
    import sqlite3

console = Console()


def run(
    config_path: Path = typer.Option(
        Path(CONFIG_FILENAME),
        "--config", "-c",
        help="Path to the benchmark config file",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        help="Maximum executions in flight (overrides config)",
    ),
    retries: Optional[int] = typer.Option(
        None,
        "--retries",
        help="Extra attempts for failing executions (overrides config)",
    ),
    interval: Optional[int] = typer.Option(
        None,
        "--interval",
        help="Minimum milliseconds between execution starts (overrides config)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Run every execution without saving the eval",
    ),
) -> None:
    """Run a benchmark and save it as an eval.

    Examples:
        reval run
        reval run --config evals/qa.config.py --concurrency 4
        reval run --dry-run --interval 0

    """
    reval_dir = find_reval_dir()
    if reval_dir is None and not dry_run:
        console.print(
            "[red]Error:[/red] No .reval directory found. Run 'reval init' first."
        )
        raise typer.Exit(1)

    conn: sqlite3.Connection | None = None
    try:
        settings = load_settings(reval_dir)
        config = load_config_file(config_path)
        dry = dry_run or config.dry
        if not dry and reval_dir is not None:
            conn = get_connection(get_db_path(reval_dir))

        benchmark = run_eval(
            config,
            conn=conn,
            settings=settings,
            concurrency=concurrency,
            retries=retries,
            interval=interval,
            dry=dry,
        )
    except (RevalError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    finally:
        if conn is not None:
            conn.close()

    console.print(f"\n[bold]{benchmark.eval.name}[/bold]")
    if dry:
        console.print("  [yellow]dry run, not saved[/yellow]")
    else:
        console.print(f"  [dim]id:[/dim] {benchmark.eval.id}")
    console.print()
    print_summary(summarize(benchmark.executions))
