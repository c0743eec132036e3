# Copyright (c) Syntropy Systems
"""Configuration management for reval."""
from __future__ import annotations

import importlib.util
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, cast

import yaml

from reval.errors import ConfigError
from reval.resolve import validate_variants
from reval.scheduler import ScheduleOptions

if TYPE_CHECKING:
    from reval.data import DataSource
    from reval.resolve import ArgsBuilder, VariantSpec
    from reval.scheduler import ResultTransform

CONFIG_FILENAME = "reval.config.py"
PROJECT_DIRNAME = ".reval"

DEFAULT_CONCURRENCY = 10
DEFAULT_RETRIES = 0
DEFAULT_INTERVAL = 1000


@dataclass
class RevalConfig:
    """A benchmark: the function under test, its data and its variants."""

    function: Callable[..., Any]
    args: ArgsBuilder
    data: DataSource
    target: str | None = None
    variants: Mapping[str, VariantSpec] = field(default_factory=dict)
    result: ResultTransform | None = None
    features: Sequence[str] | None = None
    trim: int | None = None

    # Scheduling; None falls back to project settings
    concurrency: int | None = None
    retries: int | None = None
    interval: int | None = None

    # Run without saving to the database
    dry: bool = False


def define_config(**kwargs: Any) -> RevalConfig:
    """Declare a benchmark in a reval.config.py file.

    Example:
        config = define_config(
            data="data.csv",
            target="expected",
            variants={"model": ["gpt-4o", "gpt-4o-mini"]},
            function=ask,
            args=lambda ctx: [ctx.data.question, ctx.variants.model],
        )

    """
    try:
        return RevalConfig(**kwargs)
    except TypeError as e:
        msg = f"Invalid config: {e}"
        raise ConfigError(msg) from e


@dataclass
class RevalSettings:
    """Project-wide defaults from .reval/config.yaml."""

    # Maximum number of executions in flight
    concurrency: int = DEFAULT_CONCURRENCY

    # Extra attempts for a failing execution
    retries: int = DEFAULT_RETRIES

    # Minimum milliseconds between execution starts
    interval: int = DEFAULT_INTERVAL


def _validate_int(name: str, value: object, *, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"Invalid {name}: expected number, got {type(value).__name__}"
        raise ConfigError(msg)
    if isinstance(value, float) and not value.is_integer():
        msg = f"Invalid {name}: expected integer, got {value}"
        raise ConfigError(msg)
    if value < minimum:
        kind = "positive" if minimum > 0 else "non-negative"
        msg = f"Invalid {name}: expected {kind} integer, got {value}"
        raise ConfigError(msg)
    return int(value)


def validate_concurrency(value: object) -> int:
    """Validate concurrency, defaulting to 10."""
    if value is None:
        return DEFAULT_CONCURRENCY
    return _validate_int("concurrency", value, minimum=1)


def validate_retries(value: object) -> int:
    """Validate retries, defaulting to 0."""
    if value is None:
        return DEFAULT_RETRIES
    return _validate_int("retries", value, minimum=0)


def validate_interval(value: object) -> int:
    """Validate interval in milliseconds, defaulting to 1000."""
    if value is None:
        return DEFAULT_INTERVAL
    return _validate_int("interval", value, minimum=0)


def validate_config(config: RevalConfig) -> None:
    """Fail fast on anything that would break a run before it starts."""
    if not isinstance(config, RevalConfig):
        msg = f"Invalid config: expected RevalConfig, got {type(config).__name__}"
        raise ConfigError(msg)
    if not callable(config.function):
        msg = f"Invalid function: expected callable, got {type(config.function).__name__}"
        raise ConfigError(msg)
    if not callable(config.args):
        msg = f"Invalid args: expected callable, got {type(config.args).__name__}"
        raise ConfigError(msg)
    if config.result is not None and not callable(config.result):
        msg = f"Invalid result: expected callable, got {type(config.result).__name__}"
        raise ConfigError(msg)
    _ = validate_variants(config.variants)
    _ = validate_concurrency(config.concurrency)
    _ = validate_retries(config.retries)
    _ = validate_interval(config.interval)


def resolve_options(
    config: RevalConfig,
    settings: RevalSettings | None = None,
    *,
    concurrency: int | None = None,
    retries: int | None = None,
    interval: int | None = None,
) -> ScheduleOptions:
    """Merge overrides, config values and project settings.

    Precedence: explicit override, then config, then settings.
    """
    settings = settings or RevalSettings()

    def pick(override: int | None, configured: int | None, default: int) -> int:
        if override is not None:
            return override
        if configured is not None:
            return configured
        return default

    return ScheduleOptions(
        concurrency=validate_concurrency(
            pick(concurrency, config.concurrency, settings.concurrency)
        ),
        retries=validate_retries(pick(retries, config.retries, settings.retries)),
        interval_ms=validate_interval(pick(interval, config.interval, settings.interval)),
    )


def load_config_file(path: Path) -> RevalConfig:
    """Import a reval.config.py file and return its ``config``.

    Relative data paths are resolved against the config file's directory.
    """
    path = path.resolve()
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise ConfigError(msg)

    spec = importlib.util.spec_from_file_location("reval_user_config", path)
    if spec is None or spec.loader is None:
        msg = f"Cannot import config file: {path}"
        raise ConfigError(msg)

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        msg = f"Failed to load config {path}: {e}"
        raise ConfigError(msg) from e

    config = getattr(module, "config", None) or getattr(module, "default", None)
    if not isinstance(config, RevalConfig):
        msg = f"{path} must define 'config = define_config(...)'"
        raise ConfigError(msg)

    if isinstance(config.data, (str, Path)) and not Path(config.data).is_absolute():
        config.data = path.parent / config.data
    return config


def find_reval_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .reval directory by walking up from start_path.

    Returns None if no .reval directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        reval_dir = current / PROJECT_DIRNAME
        if reval_dir.is_dir():
            return reval_dir
        current = current.parent

    # Check root
    reval_dir = current / PROJECT_DIRNAME
    if reval_dir.is_dir():
        return reval_dir

    return None


def get_global_config_dir() -> Path:
    """Get the global reval config directory (~/.reval)."""
    return Path.home() / PROJECT_DIRNAME


def load_settings(reval_dir: Path | None = None) -> RevalSettings:
    """Load settings from .reval/config.yaml or defaults.

    Looks for settings in:
    1. Provided reval_dir
    2. Nearest .reval directory walking up
    3. ~/.reval/config.yaml
    4. Defaults
    """
    settings = RevalSettings()

    config_path = None

    if reval_dir is not None:
        config_path = reval_dir / "config.yaml"
    else:
        found_dir = find_reval_dir()
        if found_dir is not None:
            config_path = found_dir / "config.yaml"
        else:
            global_config = get_global_config_dir() / "config.yaml"
            if global_config.exists():
                config_path = global_config

    if config_path is not None and config_path.exists():
        with config_path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        if "concurrency" in data:
            settings.concurrency = validate_concurrency(data["concurrency"])
        if "retries" in data:
            settings.retries = validate_retries(data["retries"])
        if "interval" in data:
            settings.interval = validate_interval(data["interval"])

    return settings


def get_db_path(reval_dir: Path | None = None) -> Path:
    """Get the path to the SQLite database."""
    if reval_dir is None:
        reval_dir = require_reval_dir()
    return reval_dir / "reval.db"


def require_reval_dir() -> Path:
    """Get reval directory or raise an error if not found."""
    reval_dir = find_reval_dir()
    if reval_dir is None:
        msg = "No .reval directory found. Run 'reval init' first."
        raise RuntimeError(msg)
    return reval_dir
