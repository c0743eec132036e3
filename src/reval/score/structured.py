# Copyright (c) Syntropy Systems
"""Leaf-averaged accuracy for nested JSON values."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from .kind import Kind, classify
from .number import number_accuracy, round2
from .text import text_accuracy

if TYPE_CHECKING:
    from reval.models.base import JSONValue

_MISSING = object()


class _Leaves:
    """Leaf scores collected in pre-order."""

    def __init__(self) -> None:
        self.paths: list[str] = []
        self.values: list[float] = []

    def add(self, path: str, value: float) -> float:
        self.paths.append(path)
        self.values.append(value)
        return value

    def mean(self) -> float:
        if not self.values:
            return 100.0
        return round2(sum(self.values) / len(self.values))


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _compare(expected: object, actual: object, path: str, leaves: _Leaves) -> JSONValue:
    if expected is _MISSING or actual is _MISSING:
        return leaves.add(path, 0.0)

    expected_kind = classify(expected)
    actual_kind = classify(actual)

    if expected_kind is Kind.NULL and actual_kind is Kind.NULL:
        return leaves.add(path, 100.0)
    if expected_kind is not actual_kind:
        return leaves.add(path, 0.0)

    if expected_kind is Kind.ARRAY:
        expected_items = list(expected)  # type: ignore[call-overload]
        actual_items = list(actual)  # type: ignore[call-overload]
        details: list[JSONValue] = []
        for i in range(max(len(expected_items), len(actual_items))):
            expected_item = expected_items[i] if i < len(expected_items) else None
            actual_item = actual_items[i] if i < len(actual_items) else None
            details.append(_compare(expected_item, actual_item, f"{path}[{i}]", leaves))
        return details

    if expected_kind is Kind.OBJECT:
        expected_map = dict(expected)  # type: ignore[call-overload]
        actual_map = dict(actual)  # type: ignore[call-overload]
        keys = list(expected_map)
        keys.extend(k for k in actual_map if k not in expected_map)
        return {
            str(key): _compare(
                expected_map.get(key, _MISSING),
                actual_map.get(key, _MISSING),
                _join(path, str(key)),
                leaves,
            )
            for key in keys
        }

    if expected_kind is Kind.STRING:
        return leaves.add(path, text_accuracy(expected, actual))  # type: ignore[arg-type]
    if expected_kind is Kind.NUMBER:
        return leaves.add(path, number_accuracy(expected, actual))  # type: ignore[arg-type]

    # booleans and anything else compare by equality
    return leaves.add(path, 100.0 if expected == actual else 0.0)


def json_accuracy(
    expected: Mapping[str, object] | Sequence[object],
    actual: Mapping[str, object] | Sequence[object],
) -> tuple[float, JSONValue, dict[str, float]]:
    """Compare two JSON structures.

    Returns the mean of every leaf score, a breakdown mirroring the
    input structure, and the flat mapping of leaf path to score.
    Arrays are compared index by index, padding the shorter one with
    None. Two structures without any leaves are fully accurate.
    """
    leaves = _Leaves()
    details = _compare(expected, actual, "", leaves)
    return leaves.mean(), details, dict(zip(leaves.paths, leaves.values))
