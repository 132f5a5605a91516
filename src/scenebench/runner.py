"""Benchmark suite execution.

Provides the suite runner that coordinates:
- Validating suite parameters and the baseline
- Choosing profilers from the suite options
- Running the profiling context and collecting results
- Wrapping errors with the parameters of the failed scene
"""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass, field
from typing import Any

from scenebench.complexity import ComplexityProfiler
from scenebench.params import BUILTIN_VARS, ParamDef, check_params, to_display_name
from scenebench.profiling import (
    LogHandler,
    MetricMeta,
    Note,
    Profiler,
    ProfilingContext,
    SceneResult,
)
from scenebench.suite import BaselineOptions, BenchCase, BenchmarkSuite, Scene
from scenebench.timing import TimeProfiler
from scenebench.utils import maybe_await
from scenebench.validate import ExecutionValidator


class DefaultEventLogger(Profiler):
    """Log the progress of the run."""

    def __init__(self) -> None:
        self.scene_index = 0
        self.case_of_scene = 0

    async def on_start(self, ctx: ProfilingContext) -> None:
        await ctx.info(f"\nSuite: {ctx.suite.name}, {ctx.scene_count} scenes.")

    async def on_scene(self, ctx: ProfilingContext, scene: Scene) -> None:
        case_count = len(scene.cases)
        self.case_of_scene = 0
        self.scene_index += 1
        i = self.scene_index

        if case_count == 0:
            await ctx.warn(f"\nNo case found from scene #{i}.")
        else:
            await ctx.info(f"\nScene #{i} of {ctx.scene_count}, {case_count} cases.")

    async def on_case(self, ctx: ProfilingContext, case: BenchCase, metrics: dict) -> None:
        self.case_of_scene += 1
        await ctx.info(
            f"\nCase #{self.case_of_scene}: {case.name} "
            f"(Async={case.is_async}, InvocationHooks={case.has_hooks})"
        )


class RunSuiteError(Exception):
    """Wrap the original error with the scene that raised it.

    The original error is available as `__cause__`.

    Attributes:
        params: Parameters of the scene that raised the error.
        param_str: JSON of the display names of `params`.
    """

    def __init__(
        self,
        message: str,
        params: dict[str, Any] | None = None,
        param_str: str | None = None,
    ) -> None:
        super().__init__(message)
        self.params = params
        self.param_str = param_str

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation, `params` is not included."""
        cause = self.__cause__
        return {
            "name": type(self).__name__,
            "message": str(self),
            "param_str": self.param_str,
            "cause": None
            if cause is None
            else {"name": type(cause).__name__, "message": str(cause)},
        }


@dataclass
class RunSuiteOptions:
    """Options of `run_suite`.

    Attributes:
        log: Function to intercept log messages, print to the logger if None.
        pattern: Only run cases with names matching the pattern.
    """

    log: LogHandler | None = None
    pattern: str | re.Pattern[str] | None = None


@dataclass
class RunSuiteResult:
    """Result of a suite, consumed by reporters.

    Attributes:
        name: Suite name.
        param_def: Parameter names and display names of their values.
        meta: Descriptions of metrics.
        notes: Notes added by profilers.
        scenes: Metrics of each case in each scene.
        baseline: Baseline with the value converted to display name.
    """

    name: str
    param_def: list[tuple[str, list[str]]]
    meta: dict[str, MetricMeta] = field(default_factory=dict)
    notes: list[Note] = field(default_factory=list)
    scenes: list[SceneResult] = field(default_factory=list)
    baseline: BaselineOptions | None = None


def check_baseline(baseline: BaselineOptions, params: ParamDef) -> BaselineOptions:
    """Check the baseline refers to an existing value.

    Returns:
        Baseline with the value replaced by its display name.
    """
    if baseline.type in BUILTIN_VARS:
        return baseline

    values = params.get(baseline.type)
    if values is not None and baseline.value in values:
        return dataclasses.replace(baseline, value=to_display_name(baseline.value))

    msg = f"Baseline ({baseline.type}={baseline.value}) is not in params"
    raise ValueError(msg)


def create_profilers(suite: BenchmarkSuite) -> list[Profiler]:
    """Build the profilers of the suite, in execution order."""
    profilers: list[Profiler] = [DefaultEventLogger()]
    profilers.extend(suite.profilers)

    if suite.validate is not None:
        profilers.append(ExecutionValidator(suite.validate))
    if suite.timing is not False:
        profilers.append(TimeProfiler(None if suite.timing is True else suite.timing))
    if suite.complexity is not None:
        profilers.append(ComplexityProfiler(suite.complexity))

    return profilers


def _wrap_error(context: ProfilingContext | None) -> RunSuiteError:
    params = context.working_params if context else None
    if not params:
        return RunSuiteError("Error occurred when running suite.")

    names = {k: to_display_name(v) for k, v in params.items()}
    param_str = json.dumps(names, ensure_ascii=False)
    return RunSuiteError(f"Error occurred in scene {param_str}", params, param_str)


async def run_suite(
    suite: BenchmarkSuite, options: RunSuiteOptions | None = None
) -> RunSuiteResult:
    """Run a benchmark suite.

    Any exception raised within this function is wrapped with RunSuiteError.

    Args:
        suite: The suite to run.
        options: Log handler and case name filter.

    Returns:
        RunSuiteResult with metrics of all cases.
    """
    options = options or RunSuiteOptions()
    context: ProfilingContext | None = None

    try:
        params = check_params(suite.params)
        baseline = check_baseline(suite.baseline, params) if suite.baseline else None
        profilers = create_profilers(suite)

        context = ProfilingContext(
            suite,
            profilers,
            pattern=options.pattern,
            log=options.log,
            params=params,
        )

        if suite.before_all:
            await maybe_await(suite.before_all())
        try:
            await context.run()
        finally:
            if suite.after_all:
                await maybe_await(suite.after_all())

        return RunSuiteResult(
            name=suite.name,
            param_def=params.display(),
            meta=context.meta,
            notes=context.notes,
            scenes=context.scenes,
            baseline=baseline,
        )
    except Exception as e:
        raise _wrap_error(context) from e
