"""Execution time measurement.

Each case is measured in stages:
- Pilot: estimate the invocation count of an iteration from a target duration
- Warmup: iterations whose results are discarded
- Actual: measured iterations, one per-call time sample each
- Overhead: the same loop with an empty workload, subtracted from the result
"""

from __future__ import annotations

import dataclasses
import statistics
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from itertools import repeat
from typing import Any

from scenebench.profiling import (
    MetricAnalysis,
    MetricMeta,
    Metrics,
    Profiler,
    ProfilingContext,
)
from scenebench.stats import welch_test
from scenebench.suite import BenchCase, Workload
from scenebench.utils import format_duration, parse_duration, run_fns, unit_fraction

MIN_ITERATIONS = 4

# The first projection of the pilot stage is clamped to resist a noisy sample.
MAX_FIRST_PROJECTION = 10_000

MAX_ITERATIONS = 2**53

SIGNIFICANCE_LEVEL = 0.05

INDISTINGUISHABLE = (
    "The function duration is indistinguishable from the empty function duration."
)

LoopFn = Callable[[Workload, int], float]


@dataclass
class Looper:
    """Runs the workload in a loop and returns the elapsed milliseconds.

    Attributes:
        calls: Number of workload calls per loop step.
        iterate: Coroutine taking the number of loop steps.
    """

    calls: int
    iterate: Callable[[int], Awaitable[float]]


def _noop() -> None:
    pass


async def _async_noop() -> None:
    pass


def _loop_1(f: Workload, count: int) -> float:
    start = time.perf_counter()
    for _ in repeat(None, count):
        f()
    return (time.perf_counter() - start) * 1000


def _loop_2(f: Workload, count: int) -> float:
    start = time.perf_counter()
    for _ in repeat(None, count):
        f()
        f()
    return (time.perf_counter() - start) * 1000


def _loop_4(f: Workload, count: int) -> float:
    start = time.perf_counter()
    for _ in repeat(None, count):
        f()
        f()
        f()
        f()
    return (time.perf_counter() - start) * 1000


def _loop_8(f: Workload, count: int) -> float:
    start = time.perf_counter()
    for _ in repeat(None, count):
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
    return (time.perf_counter() - start) * 1000


def _loop_16(f: Workload, count: int) -> float:
    start = time.perf_counter()
    for _ in repeat(None, count):
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
        f()
    return (time.perf_counter() - start) * 1000


_UNROLLED: dict[int, LoopFn] = {
    1: _loop_1,
    2: _loop_2,
    4: _loop_4,
    8: _loop_8,
    16: _loop_16,
}


def unroll(factor: int) -> LoopFn:
    """Return a loop calling the workload `factor` times per step."""
    if factor in _UNROLLED:
        return _UNROLLED[factor]

    def loop(f: Workload, count: int) -> float:
        start = time.perf_counter()
        for _ in repeat(None, count):
            for _ in repeat(None, factor):
                f()
        return (time.perf_counter() - start) * 1000

    return loop


def create_looper(factor: int, case: BenchCase) -> Looper:
    """Choose how to run the case.

    Cases with iteration hooks are timed call by call, only the workload
    is measured. Async workloads are awaited once per step, they cannot
    be unrolled.
    """
    fn = case.fn
    setup_hooks = case.setup_hooks
    clean_hooks = case.clean_hooks

    if case.has_hooks:

        async def with_hooks(count: int) -> float:
            usage = 0.0
            for _ in repeat(None, count):
                await run_fns(setup_hooks)

                start = time.perf_counter()
                if case.is_async:
                    await fn()
                else:
                    fn()
                usage += time.perf_counter() - start

                await run_fns(clean_hooks)
            return usage * 1000

        return Looper(1, with_hooks)

    if case.is_async:

        async def awaiting(count: int) -> float:
            start = time.perf_counter()
            for _ in repeat(None, count):
                await fn()
            return (time.perf_counter() - start) * 1000

        return Looper(1, awaiting)

    loop = unroll(factor)

    async def unrolled(count: int) -> float:
        return loop(fn, count)

    return Looper(factor, unrolled)


def time_detail(elapsed: float, count: int) -> str:
    total = format_duration(elapsed)
    mean = format_duration(elapsed / count)
    return f"{count} operations, {total}, {mean}/op"


@dataclass
class TimingOptions:
    """Options of the time profiler.

    Attributes:
        throughput: Measure throughput (ops/<unit>) instead of time (time/op),
            the value is a duration unit like "s".
        samples: Number of measured iterations.
        warmup: Number of warmup iterations, 0 disables warmup.
        unroll_factor: How many times the workload is invoked per step of
            the generated loop.
        iterations: Invocation count of an iteration, must be a multiple of
            `unroll_factor`; or a duration string used by the pilot stage
            to estimate the count.
        evaluate_overhead: Measure the loop with an empty workload and
            subtract it from every result. Very important for nano-benchmarks.
    """

    throughput: str | None = None
    samples: int = 10
    warmup: int = 5
    unroll_factor: int = 16
    iterations: int | str = "1s"
    evaluate_overhead: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TimingOptions:
        """Build options from a mapping, e.g. a parsed YAML section."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            msg = f"Unknown timing options: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        return cls(**data)


class TimeProfiler(Profiler):
    """Measures the execution time (or throughput) of each case."""

    def __init__(self, options: TimingOptions | Mapping[str, Any] | None = None) -> None:
        if options is None:
            options = TimingOptions()
        elif not isinstance(options, TimingOptions):
            options = TimingOptions.from_mapping(options)

        self.throughput = options.throughput
        self.samples = options.samples
        self.warmup = options.warmup
        self.unroll_factor = options.unroll_factor
        self.iterations = options.iterations
        self.evaluate_overhead = options.evaluate_overhead
        self.target_ms = 0.0

        if self.unroll_factor < 1:
            msg = "The unrollFactor must be at least 1"
            raise ValueError(msg)
        if self.samples <= 0:
            msg = "The number of samples must be at least 1"
            raise ValueError(msg)
        if self.warmup < 0:
            msg = "The number of warmup iterations cannot be negative"
            raise ValueError(msg)
        if self.throughput is not None:
            unit_fraction(self.throughput)

        iterations = self.iterations
        if isinstance(iterations, str):
            self.target_ms = parse_duration(iterations)
            if self.target_ms <= 0:
                msg = "Iteration time cannot be 0"
                raise ValueError(msg)
        elif iterations <= 0:
            msg = "The number of iterations cannot be 0 or negative"
            raise ValueError(msg)
        elif iterations < self.unroll_factor:
            self.unroll_factor = iterations
        elif iterations % self.unroll_factor != 0:
            msg = "iterations must be a multiple of unrollFactor"
            raise ValueError(msg)

    async def on_start(self, ctx: ProfilingContext) -> None:
        resolution = time.get_clock_info("perf_counter").resolution
        if resolution > 1e-6:
            await ctx.note(
                "warn",
                f"The timer resolution is {resolution * 1e3:g} ms, "
                "results may be inaccurate",
            )

        if self.throughput:
            ctx.define_metric(
                MetricMeta(
                    key="throughput",
                    format=f"{{number}} ops/{self.throughput}",
                    analysis=MetricAnalysis.STATISTICS,
                    lower_is_better=False,
                )
            )
        else:
            ctx.define_metric(
                MetricMeta(
                    key="time",
                    format="{duration.ms}",
                    analysis=MetricAnalysis.STATISTICS,
                    lower_is_better=True,
                )
            )

    async def on_case(self, ctx: ProfilingContext, case: BenchCase, metrics: Metrics) -> None:
        factor = self.unroll_factor

        if isinstance(self.iterations, str):
            if case.has_hooks or case.is_async or factor == 1:
                looper, count = await self.estimate(ctx, create_looper(factor, case))
            else:
                looper, count = await self.estimate(
                    ctx,
                    create_looper(1, case),
                    create_looper(factor, case),
                )
            await ctx.info()
        else:
            looper = create_looper(factor, case)
            count = self.iterations // looper.calls

        samples = await self.measure(ctx, "Actual", looper, count)
        if self.evaluate_overhead and self.samples > 1:
            samples = await self.subtract_overhead(ctx, case, looper, count, samples)

        if not self.throughput:
            metrics["time"] = samples
        elif len(samples) > 1 or samples[0] != 0:
            metrics["throughput"] = self.to_throughput(samples)

    def to_throughput(self, samples: list[float]) -> list[float]:
        """Convert time per call to ops per throughput unit, still ascending."""
        unit_ms = unit_fraction(self.throughput or "s")
        return [round(unit_ms / ms) if ms else float("inf") for ms in reversed(samples)]

    async def subtract_overhead(
        self,
        ctx: ProfilingContext,
        case: BenchCase,
        looper: Looper,
        count: int,
        samples: list[float],
    ) -> list[float]:
        """Measure an empty workload of the same shape and subtract its median.

        If the case is not significantly slower than the empty workload, the
        result collapses to [0] with a warning note.
        """
        shadow = case.derive(case.is_async, _async_noop if case.is_async else _noop)
        overhead_looper = create_looper(looper.calls, shadow)

        await ctx.info()
        overheads = await self.measure(ctx, "Overhead", overhead_looper, count)

        if welch_test(samples, overheads, "greater") < SIGNIFICANCE_LEVEL:
            overhead = statistics.median(overheads)
            return [t - overhead for t in samples]

        await ctx.note("warn", INDISTINGUISHABLE, case)
        return [0.0]

    async def estimate(
        self,
        ctx: ProfilingContext,
        looper: Looper,
        unrolled: Looper | None = None,
    ) -> tuple[Looper, int]:
        """Pilot stage, find the count of loop steps that takes `target_ms`.

        Args:
            ctx: The profiling context.
            looper: The loop to start with.
            unrolled: Unrolled loop to switch to once the count gets large.

        Returns:
            The looper to use and its count of steps.
        """
        target = self.target_ms
        count = MIN_ITERATIONS
        first = True
        down_count = 0

        while count < MAX_ITERATIONS:
            elapsed = await looper.iterate(count)
            await ctx.info(f"Pilot: {time_detail(elapsed, count * looper.calls)}")

            if elapsed == 0:
                # Below the timer precision, re-run with a larger count.
                count *= 8
            else:
                previous = count
                count = max(MIN_ITERATIONS, round(count * target / elapsed))
                if first:
                    count = min(count, MAX_FIRST_PROJECTION)
                    first = False

                if not (unrolled and count > unrolled.calls * 100):
                    if abs(previous - count) <= 1:
                        return looper, previous
                    if count < previous:
                        down_count += 1
                        if down_count >= 3:
                            return looper, previous
                    else:
                        down_count = 0

            if unrolled and count > unrolled.calls * 100:
                count = round(count / unrolled.calls)
                looper, unrolled = unrolled, None
                down_count = 0

        msg = "Iteration time is too long and the workload runs too fast to calibrate"
        raise RuntimeError(msg)

    async def measure(
        self, ctx: ProfilingContext, name: str, looper: Looper, count: int
    ) -> list[float]:
        """Run warmup and measured iterations.

        Returns:
            Sorted time per call of each measured iteration, in milliseconds.
        """
        n = count * looper.calls

        for _ in range(self.warmup):
            elapsed = await looper.iterate(count)
            await ctx.info(f"{name} Warmup: {time_detail(elapsed, n)}")

        await ctx.info()

        samples: list[float] = []
        for _ in range(self.samples):
            elapsed = await looper.iterate(count)
            samples.append(elapsed / n)
            await ctx.info(f"{name}: {time_detail(elapsed, n)}")

        return sorted(samples)
