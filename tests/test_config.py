# Copyright (c) Syntropy Systems
"""Tests for reval configuration."""

from pathlib import Path

import pytest

from reval.config import (
    RevalConfig,
    RevalSettings,
    define_config,
    find_reval_dir,
    load_config_file,
    load_settings,
    resolve_options,
    validate_concurrency,
    validate_config,
    validate_interval,
    validate_retries,
)
from reval.errors import ConfigError


def _config(**overrides) -> RevalConfig:
    values = {
        "function": lambda q: q,
        "args": lambda ctx: [ctx.data.q],
        "data": [{"q": "1+1?", "target": "2"}],
    }
    values.update(overrides)
    return define_config(**values)


class TestScalarValidation:
    """Tests for concurrency, retries and interval validation."""

    def test_defaults(self) -> None:
        assert validate_concurrency(None) == 10
        assert validate_retries(None) == 0
        assert validate_interval(None) == 1000

    def test_zero_concurrency(self) -> None:
        with pytest.raises(ConfigError, match="Invalid concurrency: expected positive integer, got 0"):
            _ = validate_concurrency(0)

    def test_negative_interval(self) -> None:
        with pytest.raises(ConfigError, match="Invalid interval: expected non-negative integer, got -5"):
            _ = validate_interval(-5)

    def test_fractional_retries(self) -> None:
        with pytest.raises(ConfigError, match="Invalid retries: expected integer, got 1.5"):
            _ = validate_retries(1.5)

    def test_bool_rejected(self) -> None:
        with pytest.raises(ConfigError, match="expected number, got bool"):
            _ = validate_concurrency(True)

    def test_string_rejected(self) -> None:
        with pytest.raises(ConfigError, match="Invalid retries: expected number, got str"):
            _ = validate_retries("3")

    def test_integral_float_accepted(self) -> None:
        assert validate_interval(250.0) == 250

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            _ = validate_concurrency(-1)


class TestDefineConfig:
    """Tests for define_config and validate_config."""

    def test_unknown_field(self) -> None:
        with pytest.raises(ConfigError, match="Invalid config"):
            _ = define_config(function=print, args=list, data=[], model="x")

    def test_valid_config(self) -> None:
        validate_config(_config(variants={"model": ["a"]}, concurrency=2))

    def test_function_must_be_callable(self) -> None:
        with pytest.raises(ConfigError, match="Invalid function: expected callable"):
            validate_config(_config(function="not callable"))

    def test_empty_variant(self) -> None:
        with pytest.raises(ConfigError, match="Invalid variants.model"):
            validate_config(_config(variants={"model": []}))

    def test_invalid_scalar(self) -> None:
        with pytest.raises(ConfigError, match="Invalid concurrency"):
            validate_config(_config(concurrency=0))


class TestResolveOptions:
    """Tests for option precedence."""

    def test_override_beats_config_beats_settings(self) -> None:
        settings = RevalSettings(concurrency=3, retries=1, interval=500)
        config = _config(concurrency=5)

        options = resolve_options(config, settings, retries=4)

        assert options.concurrency == 5
        assert options.retries == 4
        assert options.interval_ms == 500

    def test_builtin_defaults(self) -> None:
        options = resolve_options(_config())
        assert (options.concurrency, options.retries, options.interval_ms) == (10, 0, 1000)

    def test_invalid_override(self) -> None:
        with pytest.raises(ConfigError, match="Invalid interval"):
            _ = resolve_options(_config(), interval=-1)


class TestProjectSettings:
    """Tests for .reval/config.yaml settings."""

    def test_find_reval_dir(self, reval_project: Path) -> None:
        nested = reval_project / "a" / "b"
        nested.mkdir(parents=True)

        found = find_reval_dir(nested)

        assert found == (reval_project / ".reval").resolve()

    def test_load_settings(self, reval_project: Path) -> None:
        settings = load_settings(reval_project / ".reval")

        assert settings.concurrency == 4
        assert settings.interval == 0
        assert settings.retries == 0

    def test_invalid_settings(self, reval_project: Path) -> None:
        _ = (reval_project / ".reval" / "config.yaml").write_text("concurrency: 0\n")

        with pytest.raises(ConfigError, match="Invalid concurrency"):
            _ = load_settings(reval_project / ".reval")


class TestLoadConfigFile:
    """Tests for importing reval.config.py files."""

    def test_load(self, temp_dir: Path) -> None:
        _ = (temp_dir / "data.csv").write_text("q,target\n1+1?,2\n")
        path = temp_dir / "reval.config.py"
        _ = path.write_text(
            "from reval import define_config\n"
            "config = define_config(\n"
            "    data='data.csv',\n"
            "    function=lambda q: q,\n"
            "    args=lambda ctx: [ctx.data.q],\n"
            ")\n"
        )

        config = load_config_file(path)

        assert isinstance(config, RevalConfig)
        assert config.data == temp_dir.resolve() / "data.csv"

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigError, match="Config file not found"):
            _ = load_config_file(temp_dir / "nope.py")

    def test_missing_config_variable(self, temp_dir: Path) -> None:
        path = temp_dir / "reval.config.py"
        _ = path.write_text("x = 1\n")

        with pytest.raises(ConfigError, match="must define"):
            _ = load_config_file(path)

    def test_import_error_wrapped(self, temp_dir: Path) -> None:
        path = temp_dir / "reval.config.py"
        _ = path.write_text("raise RuntimeError('broken config')\n")

        with pytest.raises(ConfigError, match="broken config"):
            _ = load_config_file(path)
