# Copyright (c) Syntropy Systems
"""String accuracy based on edit distance."""
from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rapidfuzz.distance import Levenshtein

from .number import round2

if TYPE_CHECKING:
    from reval.models.base import JSONValue

_NOT_JSON = object()


def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character edits turning a into b."""
    return Levenshtein.distance(a, b)


def text_accuracy(expected: str, actual: str) -> float:
    """Normalized edit-distance similarity as a percentage."""
    if expected == actual:
        return 100.0

    max_length = max(len(expected), len(actual))
    if max_length == 0:
        return 100.0

    distance = levenshtein(expected, actual)
    return round2(max(0.0, (1 - distance / max_length) * 100))


def _reject_constant(name: str) -> object:
    raise ValueError(name)


def try_parse_json(text: str) -> JSONValue | object:
    """Parse text as strict JSON, returning a sentinel when it is not JSON.

    NaN and Infinity literals are rejected.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return _NOT_JSON


def is_json(value: object) -> bool:
    """Check a try_parse_json result."""
    return value is not _NOT_JSON
