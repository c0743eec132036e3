# Copyright (c) Syntropy Systems
"""Pytest fixtures for reval tests."""

import os
import sqlite3
import tempfile
from collections.abc import Generator
from typing import Callable
from pathlib import Path

import pytest

from reval.models.eval import Benchmark, Eval, Execution, Score

# Store original cwd at module load time
_original_cwd = Path.cwd()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
        os.chdir(_original_cwd)


@pytest.fixture
def reval_project(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary reval project directory."""
    from reval.db import init_db

    reval_dir = temp_dir / ".reval"
    reval_dir.mkdir()

    # Fast defaults so tests do not wait on pacing
    _ = (reval_dir / "config.yaml").write_text("concurrency: 4\ninterval: 0\nretries: 0\n")

    # Initialize database
    db_path = reval_dir / "reval.db"
    init_db(db_path)

    # Change to temp directory
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def db_connection(reval_project: Path) -> Generator[sqlite3.Connection, None, None]:
    """Get a database connection for the test project."""
    from reval.db import get_connection

    db_path = reval_project / ".reval" / "reval.db"
    conn = get_connection(db_path)
    yield conn
    conn.close()


def _make_benchmark(eval_id: str = "e1", timestamp: str = "2026-01-01T00:00:00Z") -> Benchmark:
    """Build a small benchmark whose executions are in completion order."""
    return Benchmark(
        eval=Eval(id=eval_id, name=f"ask {eval_id}", function="def ask(q): ...", timestamp=timestamp),
        executions=[
            Execution(
                id=f"{eval_id}-x1",
                eval_id=eval_id,
                status="success",
                time_ms=12.5,
                result={"output": "2", "tokens": 3},
                target="2",
                accuracy=100.0,
                score=Score(value=100.0),
                args=["1+1?", "a"],
                features={"q": "1+1?"},
                variants={"model": "a"},
                data_index=1,
            ),
            Execution(
                id=f"{eval_id}-x0",
                eval_id=eval_id,
                status="error",
                time_ms=3.0,
                retries=2,
                result={"name": "ValueError", "message": "bad", "stack": None},
                target="4",
                args=["2+2?", "a"],
                variants={"model": "a"},
                data_index=0,
            ),
            Execution(
                id=f"{eval_id}-x2",
                eval_id=eval_id,
                status="success",
                time_ms=8.0,
                result="3",
                target="4",
                accuracy=50.0,
                score=Score(value=50.0, details={"reason": "close"}),
                args=["2+2?", "b"],
                variants={"model": "b"},
                data_index=0,
            ),
        ],
    )


@pytest.fixture
def make_benchmark() -> Callable[..., Benchmark]:
    """Factory for benchmarks with three executions across two variants."""
    return _make_benchmark
