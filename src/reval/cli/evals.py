# Copyright (c) Syntropy Systems
"""reval list, show and delete commands."""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Optional

import typer
from rich.console import Console
from rich.table import Table

from reval.config import get_db_path, require_reval_dir
from reval.db import delete_eval, find_eval, get_connection, get_evals, get_executions
from reval.report import OVERALL, format_accuracy, format_ms, summarize, variant_label

if TYPE_CHECKING:
    import sqlite3

    from reval.models.base import JSONValue
    from reval.models.db import EvalRecord, ExecutionRecord
    from reval.report import VariantSummary

console = Console()

STATUS_STYLE = {
    "success": "green",
    "error": "red",
}
CELL_WIDTH = 40


def format_cell(value: JSONValue) -> str:
    """Compact single-line JSON for table cells."""
    text = value if isinstance(value, str) else json.dumps(value)
    if len(text) > CELL_WIDTH:
        return text[: CELL_WIDTH - 3] + "..."
    return text


def open_project_db() -> sqlite3.Connection:
    """Connect to the current project's database or exit with an error."""
    try:
        reval_dir = require_reval_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    return get_connection(get_db_path(reval_dir))


def lookup_eval(conn: sqlite3.Connection, eval_id: str) -> EvalRecord:
    """Find an eval by ID or unique prefix or exit with an error."""
    try:
        record = find_eval(conn, eval_id)
    except ValueError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1) from e

    if record is None:
        console.print(f"[red]Error:[/red] Eval '{eval_id}' not found")
        raise typer.Exit(1)
    return record


def print_summary(summaries: list[VariantSummary]) -> None:
    """Print the per-variant summary table."""
    table = Table(show_header=True, header_style="bold", title="Summary")
    table.add_column("Variants")
    table.add_column("Count", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Retries", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Mean time", justify="right")

    for summary in summaries:
        errors = f"[red]{summary.errors}[/red]" if summary.errors else "0"
        table.add_row(
            f"[bold]{summary.label}[/bold]" if summary.label == OVERALL else summary.label,
            str(summary.count),
            f"{summary.success_rate:.0%}",
            errors,
            str(summary.retries),
            format_accuracy(summary.mean_accuracy),
            format_ms(summary.mean_time_ms),
        )

    console.print(table)


def print_executions(executions: list[ExecutionRecord]) -> None:
    """Print one row per execution."""
    table = Table(show_header=True, header_style="bold", title="Executions")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Variants")
    table.add_column("Args")
    table.add_column("Result")
    table.add_column("Target")
    table.add_column("Accuracy", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Status")

    for execution in executions:
        style = STATUS_STYLE.get(execution.status, "white")
        status = f"[{style}]{execution.status}[/{style}]"
        if execution.retries:
            status += f" [dim]({execution.retries} retries)[/dim]"
        table.add_row(
            str(execution.data_index),
            variant_label(execution.variants),
            format_cell(execution.args),
            format_cell(execution.result),
            format_cell(execution.target),
            format_accuracy(execution.accuracy),
            format_ms(execution.time_ms),
            status,
        )

    console.print(table)


def list_evals(
    last: int = typer.Option(
        20,
        "--last", "-n",
        help="Number of evals to show",
    ),
) -> None:
    """List saved evals, newest first."""
    conn = open_project_db()
    try:
        records = get_evals(conn, limit=last)
    finally:
        conn.close()

    if not records:
        console.print("[dim]No evals found[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Executions", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Timestamp")

    for record in records:
        errors = f"[red]{record.error_count}[/red]" if record.error_count else "0"
        table.add_row(
            record.id[:8],
            record.name,
            str(record.execution_count),
            errors,
            format_accuracy(record.mean_accuracy),
            record.timestamp,
        )

    console.print(table)


def show(
    eval_id: str = typer.Argument(
        ...,
        help="Eval ID (or unique prefix) to show",
    ),
    status: Optional[str] = typer.Option(
        None,
        "--status", "-s",
        help="Only show executions with this status (success, error)",
    ),
    summary_only: bool = typer.Option(
        False,
        "--summary",
        help="Only show the summary table",
    ),
) -> None:
    """Show an eval's summary and executions."""
    conn = open_project_db()
    try:
        record = lookup_eval(conn, eval_id)
        executions = get_executions(conn, record.id)
    finally:
        conn.close()

    console.print(f"\n[bold]Eval {record.id}[/bold]")
    console.print(f"  [dim]name:[/dim] {record.name}")
    console.print(f"  [dim]timestamp:[/dim] {record.timestamp}")
    if record.notes:
        console.print(f"  [dim]notes:[/dim] {record.notes}")
    console.print()

    print_summary(summarize(executions))

    if not summary_only:
        if status:
            executions = [e for e in executions if e.status == status]
        print_executions(executions)


def delete(
    eval_id: str = typer.Argument(..., help="Eval ID (or unique prefix) to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete an eval and its executions."""
    conn = open_project_db()
    try:
        record = lookup_eval(conn, eval_id)
        if not yes:
            _ = typer.confirm(f"Delete eval '{record.name}' ({record.id})?", abort=True)
        delete_eval(conn, record.id)
    finally:
        conn.close()

    console.print(f"[green]Deleted eval[/green] {record.id}")
