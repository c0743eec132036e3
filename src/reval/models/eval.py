# Copyright (c) Syntropy Systems
"""Pydantic models for evals, executions and scores."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import Field
from typing_extensions import TypeAlias

from .base import FrozenModel, JSONValue, RevalBaseModel

Status: TypeAlias = Literal["success", "error"]


class ResolvedInvocation(FrozenModel):
    """One ready-to-run call of the benchmarked function."""

    args: list[Any]
    data_index: int
    features: Optional[dict[str, JSONValue]] = None
    variants: Optional[dict[str, JSONValue]] = None


class Score(RevalBaseModel):
    """Accuracy score with a per-field breakdown."""

    value: float
    details: JSONValue = None


class ErrorPayload(RevalBaseModel):
    """Structured description of an exception raised by the function."""

    name: str
    message: str
    stack: Optional[str] = None


class Execution(FrozenModel):
    """Outcome of a single invocation (one data row x one variant combination)."""

    id: str
    eval_id: str
    status: Status
    time_ms: float
    retries: int = 0
    result: JSONValue = None
    target: JSONValue = None
    accuracy: Optional[float] = None
    score: Optional[Score] = None
    args: list[JSONValue] = Field(default_factory=list)
    features: Optional[dict[str, JSONValue]] = None
    variants: Optional[dict[str, JSONValue]] = None
    data_index: int


class Eval(RevalBaseModel):
    """Metadata for one benchmark run."""

    id: str
    name: str
    notes: str = ""
    function: str
    timestamp: str


class Benchmark(RevalBaseModel):
    """An eval together with all of its executions."""

    eval: Eval
    executions: list[Execution] = Field(default_factory=list)
