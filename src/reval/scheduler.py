# Copyright (c) Syntropy Systems
"""Bounded-concurrency, paced, retrying execution of resolved invocations."""
from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import time
import traceback
import uuid
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt

from reval.models.base import to_json_value
from reval.models.eval import ErrorPayload, Execution, Score, Status
from reval.score import score_detailed

if TYPE_CHECKING:
    from reval.models.base import JSONValue
    from reval.models.eval import ResolvedInvocation

logger = logging.getLogger(__name__)

ResultTransform = Callable[[Any], Any]
CompletionCallback = Callable[[Execution], None]

PROGRESS_EVERY = 10


@dataclass(frozen=True)
class ScheduleOptions:
    """Limits applied to one run.

    At most ``concurrency`` invocations are in flight, and new
    invocations start no more often than once every ``interval_ms``.
    A failing invocation is attempted up to ``retries`` more times.
    """

    concurrency: int = 10
    interval_ms: int = 1000
    retries: int = 0


class Pacer:
    """Spaces task starts at least one interval apart."""

    def __init__(self, interval_ms: int) -> None:
        self._interval = interval_ms / 1000
        self._lock = asyncio.Lock()
        self._next_start: float | None = None

    async def wait(self) -> None:
        """Block until the next start is allowed, then claim it."""
        async with self._lock:
            now = time.monotonic()
            if self._next_start is not None and now < self._next_start:
                await asyncio.sleep(self._next_start - now)
                now = time.monotonic()
            self._next_start = now + self._interval


def new_id() -> str:
    """Generate a 16 character identifier."""
    return uuid.uuid4().hex[:16]


def error_payload(error: BaseException) -> ErrorPayload:
    """Describe an exception so it can be stored and inspected later."""
    return ErrorPayload(
        name=type(error).__name__,
        message=str(error),
        stack="".join(traceback.format_exception(type(error), error, error.__traceback__)),
    )


def scored_output(result: JSONValue) -> JSONValue:
    """The part of a transformed result compared against the target.

    A mapping with an ``output`` key is scored on that value only, so
    result transforms can carry token counts or costs alongside it.
    """
    if isinstance(result, Mapping) and "output" in result:
        return result["output"]
    return result


async def call_function(
    function: Callable[..., Any],
    args: Sequence[Any],
    executor: ThreadPoolExecutor | None = None,
) -> Any:
    """Call a sync or async function; sync functions run on the executor."""
    if inspect.iscoroutinefunction(function):
        return await function(*args)
    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(executor, functools.partial(function, *args))
    if inspect.isawaitable(response):
        response = await response
    return response


def _log_failed_attempt(args: Sequence[Any], max_attempts: int) -> Callable[[RetryCallState], None]:
    def log(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome is not None else None
        logger.warning(
            "Attempt %d failed for args %r. %d retries left. Error: %s",
            state.attempt_number,
            list(args),
            max_attempts - state.attempt_number,
            error,
        )

    return log


async def run_invocation(
    invocation: ResolvedInvocation,
    function: Callable[..., Any],
    options: ScheduleOptions,
    *,
    eval_id: str = "",
    result: ResultTransform | None = None,
    targets: Sequence[JSONValue] | None = None,
    executor: ThreadPoolExecutor | None = None,
) -> Execution:
    """Run one invocation with retries and turn the outcome into an Execution.

    The elapsed time covers only the last attempt. Failures never
    propagate; they become executions with status ``error``. Sync functions
    run on ``executor``, or the loop's default executor when it is None.
    """
    max_attempts = options.retries + 1
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        after=_log_failed_attempt(invocation.args, max_attempts),
        reraise=True,
    )

    attempt_number = 0
    started = finished = time.perf_counter()
    status: Status = "success"
    output: JSONValue = None

    try:
        async for attempt in retrying:
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                started = time.perf_counter()
                try:
                    response = await call_function(function, invocation.args, executor)
                finally:
                    finished = time.perf_counter()
    except Exception as e:  # noqa: BLE001
        logger.error("Run failed for args %r. Error: %s", invocation.args, e)
        status = "error"
        output = to_json_value(error_payload(e).model_dump())
    else:
        try:
            transformed = result(response) if result is not None else response
            output = to_json_value(transformed)
        except Exception as e:  # noqa: BLE001
            logger.error("Result transform failed for args %r. Error: %s", invocation.args, e)
            status = "error"
            output = to_json_value(error_payload(e).model_dump())

    target: JSONValue = None
    if targets is not None and invocation.data_index < len(targets):
        target = targets[invocation.data_index]

    score: Score | None = None
    if status == "success":
        actual = scored_output(output)
        if actual is not None:
            score = score_detailed(target, actual)

    return Execution(
        id=new_id(),
        eval_id=eval_id,
        status=status,
        time_ms=round((finished - started) * 1000, 3),
        retries=max(attempt_number - 1, 0),
        result=output,
        target=target,
        accuracy=score.value if score is not None else None,
        score=score,
        args=[to_json_value(arg) for arg in invocation.args],
        features=invocation.features,
        variants=invocation.variants,
        data_index=invocation.data_index,
    )


async def execute_async(
    invocations: Sequence[ResolvedInvocation],
    function: Callable[..., Any],
    options: ScheduleOptions | None = None,
    *,
    eval_id: str = "",
    result: ResultTransform | None = None,
    targets: Sequence[JSONValue] | None = None,
    on_complete: CompletionCallback | None = None,
) -> list[Execution]:
    """Execute all invocations and collect executions in completion order.

    Invocations are dispatched in the order given by a fixed pool of
    workers sharing one queue and one pacer. Sync functions get a thread
    pool of ``concurrency`` threads so every worker can have a call in
    flight. An exception from ``on_complete`` is logged and does not stop
    the batch.
    """
    options = options or ScheduleOptions()
    queue: asyncio.Queue[ResolvedInvocation] = asyncio.Queue()
    for invocation in invocations:
        queue.put_nowait(invocation)

    pacer = Pacer(options.interval_ms)
    executions: list[Execution] = []
    total = len(invocations)
    executor = ThreadPoolExecutor(
        max_workers=options.concurrency,
        thread_name_prefix="reval-worker",
    )

    async def worker() -> None:
        while not queue.empty():
            await pacer.wait()
            try:
                invocation = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            execution = await run_invocation(
                invocation,
                function,
                options,
                eval_id=eval_id,
                result=result,
                targets=targets,
                executor=executor,
            )
            executions.append(execution)
            queue.task_done()
            if on_complete is not None:
                try:
                    on_complete(execution)
                except Exception:
                    logger.exception("Completion callback failed for execution %s", execution.id)
            done = len(executions)
            if done % PROGRESS_EVERY == 0 or done == total:
                logger.info("Progress: %d/%d", done, total)

    workers = [asyncio.create_task(worker()) for _ in range(min(options.concurrency, total))]
    try:
        await asyncio.gather(*workers)
    finally:
        for task in workers:
            task.cancel()
        executor.shutdown(wait=False)
    return executions


def execute(
    invocations: Sequence[ResolvedInvocation],
    function: Callable[..., Any],
    options: ScheduleOptions | None = None,
    *,
    eval_id: str = "",
    result: ResultTransform | None = None,
    targets: Sequence[JSONValue] | None = None,
    on_complete: CompletionCallback | None = None,
) -> list[Execution]:
    """Blocking wrapper around execute_async."""
    return asyncio.run(
        execute_async(
            invocations,
            function,
            options,
            eval_id=eval_id,
            result=result,
            targets=targets,
            on_complete=on_complete,
        )
    )
