# Copyright (c) Syntropy Systems
"""Accuracy scoring between expected and actual values."""

from .calculate import score, score_detailed
from .kind import Kind, classify
from .number import number_accuracy
from .structured import json_accuracy
from .text import levenshtein, text_accuracy, try_parse_json

__all__ = [
    "Kind",
    "classify",
    "json_accuracy",
    "levenshtein",
    "number_accuracy",
    "score",
    "score_detailed",
    "text_accuracy",
    "try_parse_json",
]
