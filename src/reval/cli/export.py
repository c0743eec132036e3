# Copyright (c) Syntropy Systems
"""Export command - export an eval's executions to CSV/JSON."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Optional

import typer
from pydantic import TypeAdapter
from rich.console import Console

from reval.cli.evals import lookup_eval, open_project_db
from reval.db import get_executions
from reval.models.base import JSONValue

console = Console()
_JSON_ADAPTER = TypeAdapter(JSONValue)
_EXPORT_ADAPTER = TypeAdapter(dict[str, JSONValue])

CSV_FIELDS = [
    "id",
    "data_index",
    "status",
    "accuracy",
    "time_ms",
    "retries",
    "args",
    "result",
    "target",
]


def _to_csv_value(value: JSONValue | None) -> str | float | int | None:
    if value is None:
        return None
    if isinstance(value, (bool, list, dict)):
        return _JSON_ADAPTER.dump_json(value).decode("utf-8")
    if isinstance(value, (int, float)):
        return value
    return str(value)


def export(
    eval_id: str = typer.Argument(..., help="Eval ID (or unique prefix) to export"),
    output: Path = typer.Argument(..., help="Output file path (.csv or .json)"),
    status: Optional[str] = typer.Option(
        None, "--status", "-s", help="Only export executions with this status"
    ),
) -> None:
    """Export an eval's executions to CSV or JSON format.

    Examples:
        reval export 3f2a runs.csv
        reval export 3f2a runs.json --status error

    """
    # Determine format from extension
    suffix = output.suffix.lower()
    if suffix not in [".csv", ".json"]:
        console.print("[red]Output must be .csv or .json[/red]")
        raise typer.Exit(1)

    conn = open_project_db()
    try:
        record = lookup_eval(conn, eval_id)
        executions = get_executions(conn, record.id, status=status)
    finally:
        conn.close()

    rows: list[dict[str, JSONValue]] = [
        execution.model_dump(mode="json", exclude={"eval_id"}) for execution in executions
    ]

    if suffix == ".json":
        payload: dict[str, JSONValue] = {
            "eval": record.model_dump(mode="json"),
            "executions": rows,
        }
        _ = output.write_bytes(_EXPORT_ADAPTER.dump_json(payload, indent=2))
    else:
        # CSV - one column per variant and feature
        variant_keys: dict[str, None] = {}
        feature_keys: dict[str, None] = {}
        for execution in executions:
            variant_keys.update(dict.fromkeys(execution.variants or {}))
            feature_keys.update(dict.fromkeys(execution.features or {}))

        fieldnames = list(CSV_FIELDS)
        fieldnames.extend(f"variants.{k}" for k in variant_keys)
        fieldnames.extend(f"features.{k}" for k in feature_keys)

        with output.open("w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
            writer.writeheader()

            for execution, row in zip(executions, rows):
                csv_row = {name: _to_csv_value(row.get(name)) for name in CSV_FIELDS}
                for k, v in (execution.variants or {}).items():
                    csv_row[f"variants.{k}"] = _to_csv_value(v)
                for k, v in (execution.features or {}).items():
                    csv_row[f"features.{k}"] = _to_csv_value(v)
                writer.writerow(csv_row)

    console.print(
        f"[green]Exported {len(executions)} execution(s) to {output}[/green]"
    )
