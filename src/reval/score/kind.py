# Copyright (c) Syntropy Systems
"""Classification of JSON-compatible values into comparable kinds."""
from __future__ import annotations

import enum
from collections.abc import Mapping


class Kind(str, enum.Enum):
    """The comparable shape of a value."""

    NULL = "null"
    BOOL = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    OTHER = "other"


def classify(value: object) -> Kind:
    """Return the kind of a value.

    bool is checked before int because it is a subclass of it.
    """
    if value is None:
        return Kind.NULL
    if isinstance(value, bool):
        return Kind.BOOL
    if isinstance(value, (int, float)):
        return Kind.NUMBER
    if isinstance(value, str):
        return Kind.STRING
    if isinstance(value, (list, tuple)):
        return Kind.ARRAY
    if isinstance(value, Mapping):
        return Kind.OBJECT
    return Kind.OTHER
