"""Shared fixtures for scenebench tests."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import pytest

from scenebench.profiling import Profiler, ProfilingContext
from scenebench.suite import BenchmarkSuite, Scene


def noop() -> None:
    pass


def discard_log(message: str | None, level: str) -> None:
    pass


def default_setup(scene: Scene) -> None:
    scene.bench("Test", noop)


def make_suite(**kwargs: Any) -> BenchmarkSuite:
    kwargs.setdefault("name", "Test Suite")
    kwargs.setdefault("setup", default_setup)
    return BenchmarkSuite(**kwargs)


RunProfilers = Callable[..., Awaitable[ProfilingContext]]


@pytest.fixture
def run_profilers() -> RunProfilers:
    """Run a context with the given profilers and return it."""

    async def run(profilers: Sequence[Profiler], **suite: Any) -> ProfilingContext:
        context = ProfilingContext(make_suite(**suite), profilers, log=discard_log)
        await context.run()
        return context

    return run
