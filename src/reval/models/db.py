# Copyright (c) Syntropy Systems
"""Pydantic models for database records."""

from __future__ import annotations

from typing import Optional, cast

from pydantic import Field, TypeAdapter, field_validator

from .base import JSONValue, RevalBaseModel
from .eval import Score

_JSON_ADAPTER: TypeAdapter[JSONValue] = TypeAdapter(JSONValue)
_LIST_ADAPTER = TypeAdapter(list[JSONValue])
_OBJECT_ADAPTER = TypeAdapter(dict[str, JSONValue])


class EvalRecord(RevalBaseModel):
    """Database eval record."""

    id: str
    name: str
    notes: Optional[str] = None
    function: str = ""
    timestamp: str
    execution_count: int = 0
    error_count: int = 0
    mean_accuracy: Optional[float] = None


class ExecutionRecord(RevalBaseModel):
    """Database execution record."""

    id: str
    eval_id: str
    status: str
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

    @field_validator("result", "target", mode="before")
    @classmethod
    def _parse_json(cls, value: object) -> JSONValue:
        if value is None:
            return None
        if isinstance(value, str):
            return _JSON_ADAPTER.validate_json(value)
        return cast("JSONValue", value)

    @field_validator("args", mode="before")
    @classmethod
    def _parse_args(cls, value: object) -> list[JSONValue]:
        if value is None:
            return []
        if isinstance(value, str):
            return _LIST_ADAPTER.validate_json(value)
        return cast("list[JSONValue]", value)

    @field_validator("features", "variants", mode="before")
    @classmethod
    def _parse_snapshot(cls, value: object) -> Optional[dict[str, JSONValue]]:
        if value is None:
            return None
        if isinstance(value, str):
            return _OBJECT_ADAPTER.validate_json(value)
        return cast("dict[str, JSONValue]", value)

    @field_validator("score", mode="before")
    @classmethod
    def _parse_score(cls, value: object) -> Optional[Score]:
        if value is None:
            return None
        if isinstance(value, str):
            return Score.model_validate_json(value)
        return Score.model_validate(value)
