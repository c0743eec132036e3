# Copyright (c) Syntropy Systems
"""reval init command."""

from pathlib import Path

import typer
import yaml
from rich.console import Console

from reval.config import (
    CONFIG_FILENAME,
    DEFAULT_CONCURRENCY,
    DEFAULT_INTERVAL,
    DEFAULT_RETRIES,
    PROJECT_DIRNAME,
)
from reval.db import init_db

console = Console()

EXAMPLE_CONFIG = '''\
from reval import define_config


def ask(question, model):
    return f"{model}: {question}"


config = define_config(
    data=[
        {"question": "1+1?", "expected": "2"},
        {"question": "2+2?", "expected": "4"},
    ],
    target="expected",
    variants={"model": ["small", "large"]},
    function=ask,
    args=lambda ctx: [ctx.data.question, ctx.variants.model],
)
'''


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Initialize a new reval project.

    Creates a .reval directory with settings and database, and an example
    reval.config.py if none exists.
    """
    target = path.resolve()
    reval_dir = target / PROJECT_DIRNAME

    if reval_dir.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {reval_dir}")
        return

    reval_dir.mkdir(parents=True)

    # Create default settings
    settings = {
        "concurrency": DEFAULT_CONCURRENCY,
        "interval": DEFAULT_INTERVAL,
        "retries": DEFAULT_RETRIES,
    }

    settings_path = reval_dir / "config.yaml"
    with settings_path.open("w") as f:
        yaml.dump(settings, f, default_flow_style=False)

    # Initialize database
    db_path = reval_dir / "reval.db"
    init_db(db_path)

    config_path = target / CONFIG_FILENAME
    if not config_path.exists():
        _ = config_path.write_text(EXAMPLE_CONFIG)

    console.print(f"[green]Initialized reval project:[/green] {reval_dir}")
    console.print(f"  [dim]settings:[/dim] {settings_path}")
    console.print(f"  [dim]database:[/dim] {db_path}")
    console.print(f"  [dim]config:[/dim] {config_path}")
