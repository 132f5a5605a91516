"""Profiling context: drives scenes and cases through the profilers.

The context runs the suite's `setup` for each parameter combination and
calls the profiler hooks in registration order:

    on_start -> (on_scene -> on_case...)... -> on_finish
"""

from __future__ import annotations

import enum
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Union

from scenebench.logging import LogLevel, console_log_handler
from scenebench.params import ParamDef, check_params
from scenebench.suite import BenchCase, Scene
from scenebench.utils import maybe_await, resolve_pattern, run_fns

if TYPE_CHECKING:
    from scenebench.suite import BenchmarkSuite

LogHandler = Callable[[Union[str, None], LogLevel], Union[Awaitable[Any], None]]

# Any metric can be absent, reporters should be able to handle this.
MetricValue = Union[float, list[float], str, None]
Metrics = dict[str, MetricValue]
SceneResult = dict[str, Metrics]

NoteType = Literal["info", "warn"]


class MetricAnalysis(enum.IntEnum):
    """What reporters can derive from a metric."""

    NONE = 0
    # Show diff & ratio with another result, the value must be a number
    # or a non-empty list of numbers.
    COMPARE = 1
    # Show statistical indicators, implies COMPARE. The value must be a
    # non-empty list of numbers.
    STATISTICS = 2


@dataclass(frozen=True)
class MetricMeta:
    """Description of a metric.

    Attributes:
        key: Key of the metric in Metrics.
        format: Text format, e.g. "{duration.ms}" or "{number} ops/s".
        analysis: Which analysis reporters should perform.
        lower_is_better: Whether a smaller value means better performance,
            required if `analysis` is not NONE.
    """

    key: str
    format: str | None = None
    analysis: MetricAnalysis = MetricAnalysis.NONE
    lower_is_better: bool | None = None

    def __post_init__(self) -> None:
        if self.analysis != MetricAnalysis.NONE and self.lower_is_better is None:
            msg = f'Metric "{self.key}" with analysis must set lower_is_better'
            raise ValueError(msg)


@dataclass(frozen=True)
class Note:
    type: NoteType
    text: str
    case_id: int | None = None


class Profiler:
    """Base of profilers, every hook is optional and does nothing by default.

    Hooks may be coroutines or plain functions.
    """

    def on_start(self, ctx: ProfilingContext) -> Awaitable[None] | None:
        """Called once per run, the place to define metrics."""

    def on_scene(self, ctx: ProfilingContext, scene: Scene) -> Awaitable[None] | None:
        """Called for each scene, after the suite's `setup`."""

    def on_case(
        self, ctx: ProfilingContext, case: BenchCase, metrics: Metrics
    ) -> Awaitable[None] | None:
        """Called for each case, add metrics into `metrics`."""

    def on_finish(self, ctx: ProfilingContext) -> Awaitable[None] | None:
        """Called at the end of the run."""


class ProfilingContext:
    """State of a profiling run, results are saved in `scenes`, `notes` and `meta`.

    A context can only be run once.
    """

    def __init__(
        self,
        suite: BenchmarkSuite,
        profilers: Sequence[Profiler],
        pattern: str | re.Pattern[str] | None = None,
        log: LogHandler | None = None,
        params: ParamDef | None = None,
    ) -> None:
        self.suite = suite
        self.profilers = list(profilers)
        self.pattern = resolve_pattern(pattern)
        self.log_handler: LogHandler = log or console_log_handler
        self.params = params if params is not None else check_params(suite.params)

        # Results of each case in each scene, indexed by scene then case name.
        self.scenes: list[SceneResult] = []
        self.notes: list[Note] = []
        self.meta: dict[str, MetricMeta] = {}

        # The combination of the running scene, for error reporting.
        self.working_params: dict[str, Any] | None = None

        self._has_run = False
        self._case_index = 0

    @property
    def scene_count(self) -> int:
        return self.params.scene_count

    def define_metric(self, meta: MetricMeta) -> None:
        """Add the description of a metric to be reported.

        Metrics without description are not shown in reports, but are
        still kept in the result.
        """
        self.meta[meta.key] = meta

    async def log(self, message: str | None, level: LogLevel) -> None:
        await maybe_await(self.log_handler(message, level))

    async def info(self, message: str | None = None) -> None:
        await self.log(message, "info")

    async def warn(self, message: str | None = None) -> None:
        await self.log(message, "warn")

    async def note(self, type: NoteType, text: str, case: BenchCase | None = None) -> None:
        """Add a note to the result and print it as a log.

        Notes are relevant to the result, while logs can record anything.
        """
        self.notes.append(Note(type, text, case.id if case else None))
        await self.log(text, type)

    def new_workflow(
        self,
        profilers: Sequence[Profiler],
        pattern: str | re.Pattern[str] | None = None,
        log: LogHandler | None = None,
    ) -> ProfilingContext:
        """Create a new context for the same suite, profilers are not inherited."""
        return ProfilingContext(
            self.suite,
            profilers,
            pattern or self.pattern,
            log or self.log_handler,
            self.params,
        )

    async def run(self) -> None:
        """Run the profiling."""
        if self._has_run:
            msg = "A ProfilingContext can only be run once."
            raise RuntimeError(msg)
        self._has_run = True

        await self._run_hooks("on_start")
        for combination in self.params.combinations():
            self.working_params = combination
            await self._run_scene(combination)
            self.working_params = None
        await self._run_hooks("on_finish")

    async def _run_scene(self, params: dict[str, Any]) -> None:
        scene: Scene = Scene(params, self.pattern)
        await maybe_await(self.suite.setup(scene))
        try:
            await self._run_hooks("on_scene", scene)

            results: SceneResult = {}
            self.scenes.append(results)

            for case in scene.cases:
                case.id = self._case_index
                self._case_index += 1
                metrics: Metrics = {}
                results[case.name] = metrics
                await self._run_hooks("on_case", case, metrics)
        finally:
            await run_fns(scene.teardown_hooks)

    async def _run_hooks(self, name: str, *args: Any) -> None:
        for profiler in self.profilers:
            hook = getattr(profiler, name, None)
            if hook is not None:
                await maybe_await(hook(self, *args))
