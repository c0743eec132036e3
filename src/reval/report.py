# Copyright (c) Syntropy Systems
"""Per-variant summaries of an eval's executions."""
from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Optional, Protocol

from reval.models.base import JSONValue, RevalBaseModel
from reval.score.number import round2

OVERALL = "overall"


class _ExecutionLike(Protocol):
    status: str
    time_ms: float
    retries: int
    accuracy: Optional[float]
    variants: Optional[dict[str, JSONValue]]


class VariantSummary(RevalBaseModel):
    """Aggregated outcome of the executions sharing one variant snapshot."""

    label: str
    variants: Optional[dict[str, JSONValue]] = None
    count: int = 0
    successes: int = 0
    errors: int = 0
    retries: int = 0
    mean_accuracy: Optional[float] = None
    mean_time_ms: Optional[float] = None

    @property
    def success_rate(self) -> float:
        """Fraction of executions that succeeded."""
        return self.successes / self.count if self.count else 0.0


def variant_label(variants: Mapping[str, JSONValue] | None) -> str:
    """Human readable label for a variant snapshot, e.g. ``model=a, t=0.5``."""
    if not variants:
        return "-"
    return ", ".join(f"{key}={value}" for key, value in variants.items())


def _summarize(label: str, variants: Optional[dict[str, JSONValue]], group: list[_ExecutionLike]) -> VariantSummary:
    accuracies = [e.accuracy for e in group if e.accuracy is not None]
    times = [e.time_ms for e in group]
    return VariantSummary(
        label=label,
        variants=variants,
        count=len(group),
        successes=sum(1 for e in group if e.status == "success"),
        errors=sum(1 for e in group if e.status == "error"),
        retries=sum(e.retries for e in group),
        mean_accuracy=round2(sum(accuracies) / len(accuracies)) if accuracies else None,
        mean_time_ms=round2(sum(times) / len(times)) if times else None,
    )


def summarize(executions: Iterable[_ExecutionLike]) -> list[VariantSummary]:
    """Summarize executions per variant snapshot, plus an overall row.

    Groups appear in order of first appearance. The overall row is last.
    """
    groups: dict[str, tuple[Optional[dict[str, JSONValue]], list[_ExecutionLike]]] = {}
    everything: list[_ExecutionLike] = []
    for execution in executions:
        key = json.dumps(execution.variants, sort_keys=True)
        if key not in groups:
            groups[key] = (execution.variants, [])
        groups[key][1].append(execution)
        everything.append(execution)

    summaries = [
        _summarize(variant_label(variants), variants, group)
        for variants, group in groups.values()
    ]
    if everything:
        summaries.append(_summarize(OVERALL, None, everything))
    return summaries


def format_ms(ms: float | None) -> str:
    """Format milliseconds to human readable."""
    if ms is None:
        return "-"
    if ms < 1000:  # noqa: PLR2004
        return f"{ms:.0f}ms"
    return f"{ms / 1000:.2f}s"


def format_accuracy(accuracy: float | None) -> str:
    if accuracy is None:
        return "-"
    return f"{accuracy:.2f}%"
