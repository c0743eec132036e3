# Copyright (c) Syntropy Systems
"""Tests for argument resolution."""

import pytest

from reval.errors import ArgsBuilderError, ConfigError
from reval.resolve import (
    ArgsContext,
    TrackedMapping,
    resolve,
    validate_variants,
    variant_combinations,
)

ROWS = [
    {"question": "1+1?", "expected": "2"},
    {"question": "2+2?", "expected": "4"},
    {"question": "3+3?", "expected": "6"},
]


class TestTrackedMapping:
    """Tests for field usage tracking."""

    def test_subscript_and_attribute_access_are_tracked(self) -> None:
        view = TrackedMapping({"a": 1, "b": 2, "c": 3}, "data")
        assert view["a"] == 1
        assert view.b == 2
        assert view.used_fields() == {"a": 1, "b": 2}

    def test_membership_and_iteration_are_not_tracked(self) -> None:
        view = TrackedMapping({"a": 1}, "data")
        assert "a" in view
        assert list(view) == ["a"]
        assert len(view) == 1
        assert view.used_fields() == {}

    def test_missing_attribute(self) -> None:
        view = TrackedMapping({"a": 1}, "variants")
        with pytest.raises(AttributeError, match="variants has no field 'model'"):
            _ = view.model


class TestVariants:
    """Tests for variant declarations."""

    def test_combinations_follow_declaration_order(self) -> None:
        combos = variant_combinations({"model": ["a", "b"], "t": [0, 1]})
        assert combos == [
            {"model": "a", "t": 0},
            {"model": "a", "t": 1},
            {"model": "b", "t": 0},
            {"model": "b", "t": 1},
        ]

    def test_no_variants_yields_single_empty_combination(self) -> None:
        assert variant_combinations({}) == [{}]

    def test_empty_variant_rejected(self) -> None:
        with pytest.raises(ConfigError, match=r"Invalid variants.model: expected non-empty list, got \[\]"):
            _ = validate_variants({"model": []})

    def test_string_variant_rejected(self) -> None:
        with pytest.raises(ConfigError, match="Invalid variants.model"):
            _ = validate_variants({"model": "gpt"})

    def test_callable_variant(self) -> None:
        assert validate_variants({"model": lambda: ("a", "b")}) == {"model": ["a", "b"]}

    def test_columnar_context(self) -> None:
        context = ArgsContext.from_rows(ROWS, {"model": ["a"]})
        assert context.data["question"] == ["1+1?", "2+2?", "3+3?"]
        assert context.row_count == 3
        assert context.row(1) == {"question": "2+2?", "expected": "4"}


class TestResolve:
    """Tests for the resolve operation."""

    def test_product_count_when_variants_used(self) -> None:
        context = ArgsContext.from_rows(ROWS, {"model": ["a", "b"], "t": [0, 0.5, 1]})
        invocations = resolve(lambda ctx: [ctx.data.question, ctx.variants.model, ctx.variants.t], context)

        assert len(invocations) == 3 * 2 * 3

    def test_row_major_order(self) -> None:
        context = ArgsContext.from_rows(ROWS[:2], {"model": ["a", "b"]})
        invocations = resolve(lambda ctx: [ctx.data.question, ctx.variants.model], context)

        assert [(i.data_index, i.args[1]) for i in invocations] == [
            (0, "a"),
            (0, "b"),
            (1, "a"),
            (1, "b"),
        ]

    def test_collapses_when_no_variant_read(self) -> None:
        context = ArgsContext.from_rows(ROWS, {"model": ["a", "b"], "t": [0, 1]})
        invocations = resolve(lambda ctx: [ctx.data.question], context)

        assert len(invocations) == len(ROWS)
        assert [i.data_index for i in invocations] == [0, 1, 2]
        assert all(i.variants is None for i in invocations)

    def test_no_collapse_when_any_invocation_reads_a_variant(self) -> None:
        context = ArgsContext.from_rows(ROWS, {"model": ["a", "b"]})

        def builder(ctx):
            if ctx.index == 0:
                return [ctx.data.question, ctx.variants.model]
            return [ctx.data.question]

        invocations = resolve(builder, context)

        assert len(invocations) == 6
        assert invocations[2].variants is None

    def test_used_fields_recorded_per_invocation(self) -> None:
        context = ArgsContext.from_rows(ROWS[:1], {"model": ["a", "b"], "t": [0]})
        invocations = resolve(lambda ctx: [ctx.data["question"], ctx.variants["model"]], context)

        assert invocations[0].features == {"question": "1+1?"}
        assert invocations[0].variants == {"model": "a"}
        assert invocations[1].variants == {"model": "b"}

    def test_builder_error_aborts(self) -> None:
        context = ArgsContext.from_rows(ROWS, {})

        def builder(ctx):
            return [ctx.data.missing]

        with pytest.raises(ArgsBuilderError, match="row 0") as exc_info:
            _ = resolve(builder, context)

        assert isinstance(exc_info.value.__cause__, AttributeError)

    def test_builder_non_sequence_rejected(self) -> None:
        context = ArgsContext.from_rows(ROWS, {})

        with pytest.raises(ArgsBuilderError, match="must return a list"):
            _ = resolve(lambda ctx: ctx.data.question, context)

    def test_empty_dataset(self) -> None:
        context = ArgsContext.from_rows([], {"model": ["a"]})
        assert resolve(lambda ctx: [ctx.variants.model], context) == []
