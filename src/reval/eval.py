# Copyright (c) Syntropy Systems
"""Assembling a benchmark run: resolve, execute, package and save."""
from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from reval.config import RevalConfig, RevalSettings, resolve_options, validate_config
from reval.data import load_dataset
from reval.db import save_eval
from reval.models.eval import Benchmark, Eval
from reval.resolve import ArgsContext, resolve, validate_variants
from reval.scheduler import CompletionCallback, execute_async, new_id

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Mapping, Sequence

    from reval.models.base import JSONValue
    from reval.models.eval import Execution

logger = logging.getLogger(__name__)

NAME_TIME_FORMAT = "%d-%m-%Y, %H:%M"


def function_name(function: Callable[..., Any]) -> str:
    """Best-effort display name of a callable."""
    return getattr(function, "__name__", None) or type(function).__name__


def function_source(function: Callable[..., Any]) -> str:
    """Source text of the benchmarked function, or its repr if unavailable."""
    try:
        return inspect.getsource(function)
    except (OSError, TypeError):
        return repr(function)


def make_eval_name(
    function: Callable[..., Any],
    variants: Mapping[str, Sequence[JSONValue]],
    timestamp: datetime,
) -> str:
    """Name an eval after its function, variant counts and local start time.

    Example: ``ask 2 models 3 temperatures 17-10-2026, 14:05``.
    """
    parts = [function_name(function)]
    for key, values in variants.items():
        plural = key if key.endswith("s") else f"{key}s"
        parts.append(f"{len(values)} {plural}")
    parts.append(timestamp.astimezone().strftime(NAME_TIME_FORMAT))
    return " ".join(parts)


async def run_eval_async(
    config: RevalConfig,
    *,
    conn: sqlite3.Connection | None = None,
    settings: RevalSettings | None = None,
    concurrency: int | None = None,
    retries: int | None = None,
    interval: int | None = None,
    dry: bool | None = None,
    on_complete: CompletionCallback | None = None,
) -> Benchmark:
    """Run a benchmark end to end.

    Configuration problems (invalid settings, empty variants, a failing
    argument builder, unreadable data) raise ConfigError before any
    invocation starts. Individual invocation failures are recorded as
    error executions. The benchmark is saved through ``conn`` unless it
    is a dry run or no connection is given.
    """
    validate_config(config)
    options = resolve_options(
        config,
        settings,
        concurrency=concurrency,
        retries=retries,
        interval=interval,
    )
    variants = validate_variants(config.variants)
    dataset = load_dataset(
        config.data,
        target=config.target,
        features=config.features,
        trim=config.trim,
    )
    context = ArgsContext.from_rows(dataset.rows, variants)
    invocations = resolve(config.args, context)

    started = datetime.now(timezone.utc)
    eval_id = new_id()
    name = make_eval_name(config.function, variants, started)
    logger.info(
        "Starting eval %s: %d executions (concurrency=%d, interval=%dms, retries=%d)",
        name,
        len(invocations),
        options.concurrency,
        options.interval_ms,
        options.retries,
    )

    executions: list[Execution] = await execute_async(
        invocations,
        config.function,
        options,
        eval_id=eval_id,
        result=config.result,
        targets=dataset.targets,
        on_complete=on_complete,
    )

    benchmark = Benchmark(
        eval=Eval(
            id=eval_id,
            name=name,
            function=function_source(config.function),
            timestamp=started.strftime("%Y-%m-%dT%H:%M:%SZ"),
        ),
        executions=executions,
    )

    is_dry = config.dry if dry is None else dry
    if is_dry:
        logger.info("Dry run: eval %s not saved", eval_id)
    elif conn is not None:
        save_eval(conn, benchmark)

    return benchmark


def run_eval(
    config: RevalConfig,
    *,
    conn: sqlite3.Connection | None = None,
    settings: RevalSettings | None = None,
    concurrency: int | None = None,
    retries: int | None = None,
    interval: int | None = None,
    dry: bool | None = None,
    on_complete: CompletionCallback | None = None,
) -> Benchmark:
    """Blocking wrapper around run_eval_async."""
    return asyncio.run(
        run_eval_async(
            config,
            conn=conn,
            settings=settings,
            concurrency=concurrency,
            retries=retries,
            interval=interval,
            dry=dry,
            on_complete=on_complete,
        )
    )
