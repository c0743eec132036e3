# Copyright (c) Syntropy Systems
"""SQLite database layer with WAL mode and atomic operations."""
from __future__ import annotations

import json
import logging
import sqlite3
from typing import TYPE_CHECKING, Any, Optional

from reval.models.db import EvalRecord, ExecutionRecord

if TYPE_CHECKING:
    from pathlib import Path

    from reval.models.eval import Benchmark

logger = logging.getLogger(__name__)

# SQL schema for reval database
SCHEMA = """
-- Evals table (one row per benchmark run)
CREATE TABLE IF NOT EXISTS evals (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    notes TEXT,
    function TEXT NOT NULL,  -- Source of the benchmarked function
    timestamp TEXT NOT NULL
);

-- Executions table (one row per data row x variant combination)
CREATE TABLE IF NOT EXISTS executions (
    id TEXT PRIMARY KEY,
    eval_id TEXT NOT NULL REFERENCES evals(id) ON DELETE CASCADE,
    seq INTEGER NOT NULL,  -- Completion order within the eval
    args TEXT,  -- JSON array
    features TEXT,  -- JSON object
    variants TEXT,  -- JSON object
    target TEXT,  -- JSON
    result TEXT,  -- JSON
    score TEXT,  -- JSON {value, details}
    accuracy REAL,
    time_ms REAL NOT NULL,
    retries INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL,  -- success, error
    data_index INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_executions_eval_id ON executions(eval_id);
CREATE INDEX IF NOT EXISTS idx_evals_timestamp ON evals(timestamp);
"""


def get_connection(db_path: Path) -> sqlite3.Connection:
    """
    Get a database connection with proper settings for concurrent access.

    - isolation_level=None for explicit transaction control
    - WAL mode for concurrent readers/writers
    - busy_timeout to wait for locks instead of failing immediately
    - foreign keys on so deleting an eval removes its executions
    - Row factory for dict-like access
    """
    conn = sqlite3.connect(str(db_path), timeout=5.0, isolation_level=None)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path) -> None:
    """Initialize the database with the schema."""
    conn = get_connection(db_path)
    try:
        conn.executescript(SCHEMA)
    finally:
        conn.close()


def _dumps(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


# --- Eval Operations ---

def save_eval(conn: sqlite3.Connection, benchmark: Benchmark) -> None:
    """Persist an eval and all of its executions in one transaction."""
    eval_ = benchmark.eval
    try:
        conn.execute("BEGIN IMMEDIATE")
        conn.execute(
            """
            INSERT INTO evals (id, name, notes, function, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (eval_.id, eval_.name, eval_.notes, eval_.function, eval_.timestamp),
        )
        conn.executemany(
            """
            INSERT INTO executions (
                id, eval_id, seq, args, features, variants, target, result,
                score, accuracy, time_ms, retries, status, data_index
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    execution.id,
                    eval_.id,
                    seq,
                    json.dumps(execution.args),
                    _dumps(execution.features),
                    _dumps(execution.variants),
                    json.dumps(execution.target),
                    json.dumps(execution.result),
                    execution.score.model_dump_json() if execution.score else None,
                    execution.accuracy,
                    execution.time_ms,
                    execution.retries,
                    execution.status,
                    execution.data_index,
                )
                for seq, execution in enumerate(benchmark.executions)
            ],
        )
        conn.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logger.exception("Failed to save eval %s to database", eval_.id)
        raise

    logger.debug(
        "Saved eval %s with %d executions to database",
        eval_.id,
        len(benchmark.executions),
    )


_EVAL_SUMMARY_QUERY = """
    SELECT e.*,
        COUNT(x.id) AS execution_count,
        COALESCE(SUM(CASE WHEN x.status = 'error' THEN 1 ELSE 0 END), 0) AS error_count,
        AVG(x.accuracy) AS mean_accuracy
    FROM evals e
    LEFT JOIN executions x ON x.eval_id = e.id
"""


def get_eval(conn: sqlite3.Connection, eval_id: str) -> Optional[EvalRecord]:
    """Get an eval by ID."""
    row = conn.execute(
        _EVAL_SUMMARY_QUERY + " WHERE e.id = ? GROUP BY e.id",
        (eval_id,),
    ).fetchone()

    if row is None:
        return None

    return EvalRecord.model_validate(dict(row))


def find_eval(conn: sqlite3.Connection, id_prefix: str) -> Optional[EvalRecord]:
    """Get an eval by exact ID or unique ID prefix.

    Raises ValueError if the prefix matches more than one eval.
    """
    exact = get_eval(conn, id_prefix)
    if exact is not None:
        return exact

    rows = conn.execute(
        "SELECT id FROM evals WHERE id LIKE ? ORDER BY timestamp DESC LIMIT 2",
        (f"{id_prefix}%",),
    ).fetchall()

    if not rows:
        return None
    if len(rows) > 1:
        raise ValueError(f"Ambiguous eval ID prefix '{id_prefix}'")

    return get_eval(conn, rows[0]["id"])


def get_evals(conn: sqlite3.Connection, limit: int = 50) -> list[EvalRecord]:
    """Get the most recent evals with execution counts and mean accuracy."""
    rows = conn.execute(
        _EVAL_SUMMARY_QUERY + " GROUP BY e.id ORDER BY e.timestamp DESC LIMIT ?",
        (limit,),
    ).fetchall()
    return [EvalRecord.model_validate(dict(row)) for row in rows]


def update_eval(
    conn: sqlite3.Connection,
    eval_id: str,
    name: Optional[str] = None,
    notes: Optional[str] = None,
) -> None:
    """Rename an eval or replace its notes."""
    query = "UPDATE evals SET id = id"
    params: list[Any] = []

    if name is not None:
        query += ", name = ?"
        params.append(name)

    if notes is not None:
        query += ", notes = ?"
        params.append(notes)

    query += " WHERE id = ?"
    params.append(eval_id)

    cursor = conn.execute(query, params)
    if cursor.rowcount == 0:
        raise ValueError(f"Eval {eval_id} not found")


def delete_eval(conn: sqlite3.Connection, eval_id: str) -> None:
    """Delete an eval together with its executions."""
    cursor = conn.execute("DELETE FROM evals WHERE id = ?", (eval_id,))
    if cursor.rowcount == 0:
        raise ValueError(f"Eval {eval_id} not found")


# --- Execution Operations ---

def get_executions(
    conn: sqlite3.Connection,
    eval_id: str,
    status: Optional[str] = None,
) -> list[ExecutionRecord]:
    """Get the executions of an eval in dataset order."""
    query = "SELECT * FROM executions WHERE eval_id = ?"
    params: list[Any] = [eval_id]

    if status:
        query += " AND status = ?"
        params.append(status)

    query += " ORDER BY data_index, seq"

    rows = conn.execute(query, params).fetchall()
    return [ExecutionRecord.model_validate(dict(row)) for row in rows]
