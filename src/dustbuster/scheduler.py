"""Bounded-concurrency task scheduling for dustbuster."""

import asyncio
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from dustbuster.models import RuntimeOptions

T = TypeVar("T")


def concurrency_limit(options: RuntimeOptions, task_count: int) -> int:
    """
    Decide how many targets may be cleaned at once.

    Args:
        options: Runtime options
        task_count: Number of scheduled tasks

    Returns:
        min(concurrency, task_count) when concurrency is set, task_count
        when parallel is set, otherwise 1
    """
    if options.concurrency is not None and options.concurrency > 0:
        return max(1, min(options.concurrency, task_count))
    if options.parallel:
        return max(1, task_count)
    return 1


async def run_with_limit(
    factories: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
) -> list[T]:
    """
    Run task factories with at most `limit` tasks in flight.

    As soon as one task settles the next factory is started. Every started
    task is awaited before returning, even after a failure; the first
    failure in factory order is raised once all of them have settled.

    Args:
        factories: Zero-argument callables returning awaitables
        limit: Maximum number of concurrent tasks

    Returns:
        Results in factory order
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    tasks: list[asyncio.Future[Any]] = []
    running: set[asyncio.Future[Any]] = set()
    queue = iter(factories)

    def start_next() -> bool:
        factory = next(queue, None)
        if factory is None:
            return False
        try:
            task = asyncio.ensure_future(factory())
        except Exception as e:
            # A factory that fails before returning an awaitable still settles
            task = asyncio.get_running_loop().create_future()
            task.set_exception(e)
        tasks.append(task)
        running.add(task)
        return True

    while len(running) < limit and start_next():
        pass

    while running:
        done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            running.discard(task)
            start_next()

    for task in tasks:
        if task.cancelled():
            raise asyncio.CancelledError()
        error = task.exception()
        if error is not None:
            raise error

    return [task.result() for task in tasks]
