# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for reval."""

from __future__ import annotations

import json
from typing import ClassVar, cast

from pydantic import BaseModel, ConfigDict, JsonValue
from typing_extensions import TypeAlias

JSONValue: TypeAlias = JsonValue
JSONObject: TypeAlias = dict[str, JSONValue]


class RevalBaseModel(BaseModel):
    """Base model with shared config for reval schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class FrozenModel(BaseModel):
    """Base model for records that must not change once created."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )


def to_json_value(value: object) -> JSONValue:
    """Coerce an arbitrary value to plain JSON, stringifying unknown objects."""
    return cast("JSONValue", json.loads(json.dumps(value, default=str)))
