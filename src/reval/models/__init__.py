# Copyright (c) Syntropy Systems
"""Pydantic models for reval."""

from .base import JSONObject, JSONValue
from .db import EvalRecord, ExecutionRecord
from .eval import (
    Benchmark,
    ErrorPayload,
    Eval,
    Execution,
    ResolvedInvocation,
    Score,
    Status,
)

__all__ = [
    "Benchmark",
    "ErrorPayload",
    "Eval",
    "EvalRecord",
    "Execution",
    "ExecutionRecord",
    "JSONObject",
    "JSONValue",
    "ResolvedInvocation",
    "Score",
    "Status",
]
