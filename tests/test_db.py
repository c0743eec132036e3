# Copyright (c) Syntropy Systems
"""Tests for reval database operations."""

import sqlite3
from pathlib import Path
from typing import Callable

import pytest

from reval.db import (
    delete_eval,
    find_eval,
    get_connection,
    get_eval,
    get_evals,
    get_executions,
    save_eval,
    update_eval,
)
from reval.models.eval import Benchmark

BenchmarkFactory = Callable[..., Benchmark]


class TestEvalOperations:
    """Tests for eval CRUD operations."""

    def test_save_and_get(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark())

        record = get_eval(db_connection, "e1")

        assert record is not None
        assert record.name == "ask e1"
        assert record.function == "def ask(q): ..."
        assert record.execution_count == 3
        assert record.error_count == 1
        assert record.mean_accuracy == pytest.approx(75.0)

    def test_get_missing(self, db_connection: sqlite3.Connection) -> None:
        assert get_eval(db_connection, "nope") is None

    def test_get_evals_newest_first(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark("old", "2026-01-01T00:00:00Z"))
        save_eval(db_connection, make_benchmark("new", "2026-02-01T00:00:00Z"))

        evals = get_evals(db_connection)

        assert [e.id for e in evals] == ["new", "old"]
        assert [e.id for e in get_evals(db_connection, limit=1)] == ["new"]

    def test_duplicate_save_rolls_back(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark())

        with pytest.raises(sqlite3.IntegrityError):
            save_eval(db_connection, make_benchmark())

        assert len(get_executions(db_connection, "e1")) == 3

    def test_locked_database_error_surfaces(
        self,
        db_connection: sqlite3.Connection,
        reval_project: Path,
        make_benchmark: BenchmarkFactory,
    ) -> None:
        """A lock held elsewhere is reported as such, not as a rollback failure."""
        other = get_connection(reval_project / ".reval" / "reval.db")
        _ = db_connection.execute("PRAGMA busy_timeout=0")
        try:
            _ = other.execute("BEGIN IMMEDIATE")
            with pytest.raises(sqlite3.OperationalError, match="locked"):
                save_eval(db_connection, make_benchmark())
        finally:
            other.execute("ROLLBACK")
            other.close()

        assert not db_connection.in_transaction
        assert get_eval(db_connection, "e1") is None

    def test_update(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark())

        update_eval(db_connection, "e1", name="renamed", notes="baseline run")

        record = get_eval(db_connection, "e1")
        assert record is not None
        assert record.name == "renamed"
        assert record.notes == "baseline run"

    def test_update_missing(self, db_connection: sqlite3.Connection) -> None:
        with pytest.raises(ValueError, match="not found"):
            update_eval(db_connection, "nope", name="x")

    def test_delete_cascades(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark())

        delete_eval(db_connection, "e1")

        assert get_eval(db_connection, "e1") is None
        assert get_executions(db_connection, "e1") == []

    def test_delete_missing(self, db_connection: sqlite3.Connection) -> None:
        with pytest.raises(ValueError, match="not found"):
            delete_eval(db_connection, "nope")

    def test_find_by_prefix(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark("abc123"))
        save_eval(db_connection, make_benchmark("abd456"))

        record = find_eval(db_connection, "abc")
        assert record is not None
        assert record.id == "abc123"
        assert find_eval(db_connection, "zzz") is None

        with pytest.raises(ValueError, match="Ambiguous"):
            _ = find_eval(db_connection, "ab")


class TestExecutionOperations:
    """Tests for reading executions back."""

    def test_dataset_order(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark())

        executions = get_executions(db_connection, "e1")

        # data_index first, then completion order
        assert [e.id for e in executions] == ["e1-x0", "e1-x2", "e1-x1"]

    def test_json_columns_parsed(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark())

        first = get_executions(db_connection, "e1", status="success")[-1]

        assert first.result == {"output": "2", "tokens": 3}
        assert first.target == "2"
        assert first.args == ["1+1?", "a"]
        assert first.features == {"q": "1+1?"}
        assert first.variants == {"model": "a"}
        assert first.score is not None
        assert first.score.value == 100

    def test_filter_by_status(self, db_connection: sqlite3.Connection, make_benchmark: BenchmarkFactory) -> None:
        save_eval(db_connection, make_benchmark())

        errors = get_executions(db_connection, "e1", status="error")

        assert [e.id for e in errors] == ["e1-x0"]
        assert errors[0].retries == 2
        assert errors[0].accuracy is None
        assert errors[0].features is None
