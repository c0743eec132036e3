# Copyright (c) Syntropy Systems
"""Dataset loading from CSV, JSON or inline rows."""
from __future__ import annotations

import csv
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Union, cast

from typing_extensions import TypeAlias

from reval.errors import DataError
from reval.models.base import JSONObject

if TYPE_CHECKING:
    from reval.models.base import JSONValue

logger = logging.getLogger(__name__)

Row: TypeAlias = JSONObject
DataSource: TypeAlias = Union[str, Path, Sequence[Mapping[str, "JSONValue"]]]


@dataclass
class Dataset:
    """Loaded rows plus the target series split out of them."""

    rows: list[Row]
    targets: list[JSONValue] = field(default_factory=list)
    target_column: str | None = None

    @property
    def columns(self) -> list[str]:
        """Column names in first-seen order."""
        names: dict[str, None] = {}
        for row in self.rows:
            for key in row:
                names.setdefault(key, None)
        return list(names)

    def __len__(self) -> int:
        return len(self.rows)


def _read_csv(path: Path) -> list[Row]:
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        return [cast("Row", dict(row)) for row in reader]


def _read_json(path: Path) -> list[Row]:
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, Mapping) and "rows" in data:
        data = data["rows"]
    if not isinstance(data, list) or not all(isinstance(row, Mapping) for row in data):
        msg = f"JSON data file must contain a list of objects: {path}"
        raise DataError(msg)
    return [dict(row) for row in data]


def _read_jsonl(path: Path) -> list[Row]:
    rows: list[Row] = []
    with path.open(encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            row = json.loads(line)
            if not isinstance(row, Mapping):
                msg = f"Line {line_number} of {path} is not a JSON object"
                raise DataError(msg)
            rows.append(dict(row))
    return rows


def read_rows(source: DataSource) -> list[Row]:
    """Read rows from a file path or copy them from an inline sequence."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            msg = f"Data file not found: {path}"
            raise DataError(msg)

        suffix = path.suffix.lower()
        try:
            if suffix == ".csv":
                return _read_csv(path)
            if suffix == ".json":
                return _read_json(path)
            if suffix == ".jsonl":
                return _read_jsonl(path)
        except (OSError, json.JSONDecodeError, csv.Error) as e:
            msg = f"Failed to read data file {path}: {e}"
            raise DataError(msg) from e

        msg = f"Unsupported data file type '{suffix}' (expected .csv, .json or .jsonl)"
        raise DataError(msg)

    if not isinstance(source, Sequence) or not all(isinstance(row, Mapping) for row in source):
        msg = f"Invalid data: expected a file path or a list of rows, got {type(source).__name__}"
        raise DataError(msg)
    return [dict(row) for row in source]


def _target_column(columns: list[str], target: str | None) -> str | None:
    if target:
        if target not in columns:
            msg = f"Invalid target: column '{target}' not found (columns: {', '.join(columns)})"
            raise DataError(msg)
        return target
    # No target configured: the second column holds the expected output
    if len(columns) >= 2:  # noqa: PLR2004
        return columns[1]
    return None


def load_dataset(
    source: DataSource,
    *,
    target: str | None = None,
    features: Sequence[str] | None = None,
    trim: int | None = None,
) -> Dataset:
    """Load a dataset and split out its target series.

    ``features`` restricts the columns exposed to the argument builder;
    the target column is always kept. ``trim`` keeps only the first rows.
    """
    rows = read_rows(source)
    if trim is not None:
        if isinstance(trim, bool) or not isinstance(trim, int) or trim < 0:
            msg = f"Invalid trim: expected non-negative integer, got {trim!r}"
            raise DataError(msg)
        rows = rows[:trim]

    dataset = Dataset(rows=rows)
    columns = dataset.columns
    target_column = _target_column(columns, target) if rows else target or None

    if features is not None and rows:
        missing = [name for name in features if name not in columns]
        if missing:
            msg = f"Invalid features: columns not found: {', '.join(missing)}"
            raise DataError(msg)
        keep = list(features)
        if target_column is not None and target_column not in keep:
            keep.append(target_column)
        rows = [{name: row.get(name) for name in keep} for row in rows]

    targets = [row.get(target_column) for row in rows] if target_column else [None] * len(rows)
    logger.debug("Loaded %d rows (target column: %s)", len(rows), target_column)
    return Dataset(rows=rows, targets=targets, target_column=target_column)
