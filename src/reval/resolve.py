# Copyright (c) Syntropy Systems
"""Argument resolution: dataset rows x variant combinations -> invocations."""
from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Union, cast

from typing_extensions import TypeAlias

from reval.errors import ArgsBuilderError, ConfigError
from reval.models.eval import ResolvedInvocation

if TYPE_CHECKING:
    from reval.models.base import JSONValue

logger = logging.getLogger(__name__)

VariantSpec: TypeAlias = Union[Sequence["JSONValue"], Callable[[], Sequence["JSONValue"]]]
ArgsBuilder: TypeAlias = Callable[["ArgsView"], Sequence[Any]]


class TrackedMapping(Mapping[str, Any]):
    """Read-only mapping that records which keys were read.

    Fields are available by subscript (``view["model"]``) or attribute
    (``view.model``). Iterating keys and membership tests do not count
    as reads; ``get``, ``items`` and ``values`` do.
    """

    def __init__(self, values: Mapping[str, Any], label: str) -> None:
        self._values = values
        self._label = label
        self._used: dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        value = self._values[key]
        self._used[key] = value
        return value

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            msg = f"{self._label} has no field {name!r}"
            raise AttributeError(msg) from None

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{self._label}({dict(self._values)!r})"

    def used_fields(self) -> dict[str, Any]:
        """Fields read so far, in first-read order."""
        return dict(self._used)


@dataclass(frozen=True)
class ArgsView:
    """What the argument builder sees for one (row, variant combination)."""

    data: TrackedMapping
    variants: TrackedMapping
    index: int


@dataclass(frozen=True)
class ArgsContext:
    """Columnar dataset paired with the variant declaration.

    ``data`` maps each column to its values, index-aligned with the rows
    of the dataset.
    """

    data: dict[str, list[JSONValue]]
    variants: dict[str, list[JSONValue]]
    row_count: int = field(default=0)

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Mapping[str, JSONValue]],
        variants: Mapping[str, VariantSpec],
    ) -> ArgsContext:
        """Build a context from row mappings, validating the variants."""
        columns: dict[str, list[JSONValue]] = {}
        for row in rows:
            for key in row:
                columns.setdefault(key, [])
        for row in rows:
            for key, values in columns.items():
                values.append(row.get(key))
        return cls(
            data=columns,
            variants=validate_variants(variants),
            row_count=len(rows),
        )

    def row(self, index: int) -> dict[str, JSONValue]:
        """Return one dataset row as a mapping."""
        return {key: values[index] for key, values in self.data.items()}


def validate_variants(variants: Mapping[str, VariantSpec]) -> dict[str, list[JSONValue]]:
    """Check every variant is a non-empty list, calling factories first."""
    if not isinstance(variants, Mapping):
        msg = f"Invalid variants: expected mapping, got {type(variants).__name__}"
        raise ConfigError(msg)

    validated: dict[str, list[JSONValue]] = {}
    for name, spec in variants.items():
        values = spec() if callable(spec) else spec
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            msg = f"Invalid variants.{name}: expected non-empty list, got {values!r}"
            raise ConfigError(msg)
        if len(values) == 0:
            msg = f"Invalid variants.{name}: expected non-empty list, got []"
            raise ConfigError(msg)
        validated[name] = list(values)
    return validated


def variant_combinations(
    variants: Mapping[str, Sequence[JSONValue]],
) -> list[dict[str, JSONValue]]:
    """Cartesian product of the variant values.

    Key order and value order follow the declaration. No variants yields
    a single empty combination.
    """
    names = list(variants.keys())
    values = [list(variants[name]) for name in names]
    return [dict(zip(names, combo)) for combo in itertools.product(*values)]


def _build_args(
    builder: ArgsBuilder,
    view: ArgsView,
    combo: dict[str, JSONValue],
) -> list[Any]:
    try:
        args = builder(view)
    except Exception as e:
        msg = f"Args builder failed for row {view.index} with variants {combo}: {e}"
        raise ArgsBuilderError(msg) from e

    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        msg = (
            "Args builder must return a list of positional arguments, "
            f"got {type(args).__name__} for row {view.index}"
        )
        raise ArgsBuilderError(msg)
    return list(cast("Sequence[Any]", args))


def resolve(builder: ArgsBuilder, context: ArgsContext) -> list[ResolvedInvocation]:
    """Resolve every (row, variant combination) into an invocation.

    Invocations are ordered row-major, combination-minor. When the
    builder never reads a variant field the variant dimension cannot
    change the arguments, so only the first combination of each row is
    kept.
    """
    combos = variant_combinations(context.variants)
    invocations: list[ResolvedInvocation] = []
    variants_used = False

    for index in range(context.row_count):
        row = context.row(index)
        for combo in combos:
            data_view = TrackedMapping(row, "data")
            variant_view = TrackedMapping(combo, "variants")
            args = _build_args(
                builder,
                ArgsView(data=data_view, variants=variant_view, index=index),
                combo,
            )
            used_features = data_view.used_fields()
            used_variants = variant_view.used_fields()
            variants_used = variants_used or bool(used_variants)
            invocations.append(
                ResolvedInvocation(
                    args=args,
                    data_index=index,
                    features=used_features or None,
                    variants=used_variants or None,
                )
            )

    if not variants_used and len(combos) > 1:
        logger.debug(
            "Args builder reads no variant field; collapsing %d combinations per row",
            len(combos),
        )
        invocations = invocations[:: len(combos)]

    logger.debug("Resolved %d invocations from %d rows", len(invocations), context.row_count)
    return invocations
