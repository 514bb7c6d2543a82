"""Tests for bounded-concurrency scheduling."""

import asyncio
import functools

import pytest

from dustbuster.models import RuntimeOptions
from dustbuster.scheduler import concurrency_limit, run_with_limit


class TestConcurrencyLimit:
    def test_sequential_by_default(self):
        assert concurrency_limit(RuntimeOptions(), 5) == 1

    def test_parallel_runs_everything(self):
        assert concurrency_limit(RuntimeOptions(parallel=True), 5) == 5

    def test_concurrency_caps_task_count(self):
        options = RuntimeOptions(parallel=True, concurrency=3)
        assert concurrency_limit(options, 10) == 3
        assert concurrency_limit(options, 2) == 2

    def test_never_below_one(self):
        assert concurrency_limit(RuntimeOptions(parallel=True), 0) == 1
        assert concurrency_limit(RuntimeOptions(concurrency=4), 0) == 1


class Tracker:
    """Records how many tasks are in flight at once."""

    def __init__(self):
        self.active = 0
        self.peak = 0
        self.started = []

    async def task(self, name, delay=0.01, fail=False):
        self.started.append(name)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(delay)
            if fail:
                raise RuntimeError(f"{name} failed")
            return name
        finally:
            self.active -= 1


class TestRunWithLimit:
    def test_results_in_factory_order(self):
        tracker = Tracker()
        delays = [0.03, 0.01, 0.02]
        factories = [functools.partial(tracker.task, i, d) for i, d in enumerate(delays)]

        results = asyncio.run(run_with_limit(factories, 3))

        assert results == [0, 1, 2]

    def test_limit_is_respected(self):
        tracker = Tracker()
        factories = [functools.partial(tracker.task, i) for i in range(10)]

        results = asyncio.run(run_with_limit(factories, 3))

        assert results == list(range(10))
        assert tracker.peak == 3

    def test_limit_one_is_sequential(self):
        tracker = Tracker()
        factories = [functools.partial(tracker.task, i) for i in range(4)]

        asyncio.run(run_with_limit(factories, 1))

        assert tracker.peak == 1
        assert tracker.started == [0, 1, 2, 3]

    def test_empty(self):
        assert asyncio.run(run_with_limit([], 2)) == []

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            asyncio.run(run_with_limit([], 0))

    def test_failure_waits_for_all_tasks(self):
        tracker = Tracker()
        factories = [
            functools.partial(tracker.task, "a", 0.01, True),
            functools.partial(tracker.task, "b", 0.03),
            functools.partial(tracker.task, "c", 0.01),
        ]

        with pytest.raises(RuntimeError, match="a failed"):
            asyncio.run(run_with_limit(factories, 2))

        assert tracker.started == ["a", "b", "c"]
        assert tracker.active == 0

    def test_first_failure_in_factory_order(self):
        tracker = Tracker()
        factories = [
            functools.partial(tracker.task, "slow", 0.03, True),
            functools.partial(tracker.task, "fast", 0.0, True),
        ]

        with pytest.raises(RuntimeError, match="slow failed"):
            asyncio.run(run_with_limit(factories, 2))

    def test_factory_raising_synchronously(self):
        tracker = Tracker()

        def broken():
            raise ValueError("no task")

        factories = [broken, functools.partial(tracker.task, "b")]

        with pytest.raises(ValueError, match="no task"):
            asyncio.run(run_with_limit(factories, 1))

        assert tracker.started == ["b"]
