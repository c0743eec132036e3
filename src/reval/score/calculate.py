# Copyright (c) Syntropy Systems
"""Accuracy dispatch over value kinds."""
from __future__ import annotations

from typing import TYPE_CHECKING, cast

from reval.models.eval import Score

from .kind import Kind, classify
from .number import number_accuracy
from .structured import json_accuracy
from .text import is_json, text_accuracy, try_parse_json

if TYPE_CHECKING:
    from reval.models.base import JSONValue


def _mismatch(expected_kind: Kind, actual_kind: Kind) -> Score:
    return Score(
        value=0.0,
        details={
            "reason": "type mismatch",
            "expected": expected_kind.value,
            "actual": actual_kind.value,
        },
    )


def _score(expected: object, actual: object, *, parse_strings: bool) -> Score:
    expected_kind = classify(expected)
    actual_kind = classify(actual)

    if expected_kind is Kind.NULL and actual_kind is Kind.NULL:
        return Score(value=100.0)
    if expected_kind is not actual_kind:
        return _mismatch(expected_kind, actual_kind)

    if expected_kind is Kind.NUMBER:
        return Score(value=number_accuracy(cast(float, expected), cast(float, actual)))

    if expected_kind is Kind.STRING:
        expected_text = cast(str, expected)
        actual_text = cast(str, actual)
        if expected_text == actual_text:
            return Score(value=100.0)
        if parse_strings:
            expected_json = try_parse_json(expected_text)
            actual_json = try_parse_json(actual_text)
            if is_json(expected_json) and is_json(actual_json):
                return _score(expected_json, actual_json, parse_strings=False)
        return Score(value=text_accuracy(expected_text, actual_text))

    if expected_kind in (Kind.ARRAY, Kind.OBJECT):
        value, details, _ = json_accuracy(expected, actual)  # type: ignore[arg-type]
        return Score(value=value, details=details)

    return Score(value=100.0 if expected == actual else 0.0)


def score_detailed(expected: JSONValue, actual: JSONValue) -> Score:
    """Score actual against expected with a structured breakdown.

    Values of different kinds score 0; two nulls score 100. Strings that
    both parse as JSON are compared structurally, other strings by edit
    distance.
    """
    return _score(expected, actual, parse_strings=True)


def score(expected: JSONValue, actual: JSONValue) -> float:
    """Accuracy of actual against expected as a number in [0, 100]."""
    return score_detailed(expected, actual).value
