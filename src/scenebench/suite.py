"""Benchmark suite, scenes and cases.

A scene is one combination of the suite parameters, the suite's `setup`
function registers cases and hooks on it.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from scenebench.utils import RE_ANY, HookFn, maybe_await, run_fns

if TYPE_CHECKING:
    from scenebench.complexity import ComplexityOptions
    from scenebench.profiling import Profiler
    from scenebench.timing import TimingOptions
    from scenebench.validate import ValidateOptions

P = TypeVar("P")

Workload = Callable[[], Any]


class BenchCase:
    """A named workload with the iteration hooks of its scene.

    Attributes:
        name: Case name, unique within the scene.
        fn: The workload.
        is_async: True if the case was added by `bench_async`.
        setup_hooks: Hooks called before each invocation.
        clean_hooks: Hooks called after each invocation.
        id: Unique number within a suite execution, assigned at run time.
    """

    def __init__(
        self,
        name: str,
        fn: Workload,
        is_async: bool = False,
        setup_hooks: list[HookFn] | None = None,
        clean_hooks: list[HookFn] | None = None,
    ) -> None:
        self.name = name
        self.fn = fn
        self.is_async = is_async
        # Shared with the scene, hooks added after the case still apply.
        self.setup_hooks = setup_hooks if setup_hooks is not None else []
        self.clean_hooks = clean_hooks if clean_hooks is not None else []
        self.id = -1

    def __repr__(self) -> str:
        return f"BenchCase(name={self.name!r}, id={self.id}, is_async={self.is_async})"

    @property
    def has_hooks(self) -> bool:
        return bool(self.setup_hooks or self.clean_hooks)

    def derive(self, is_async: bool, fn: Workload) -> BenchCase:
        """Create a case with the same name and id, a new workload and no hooks."""
        derived = BenchCase(self.name, fn, is_async)
        derived.id = self.id
        return derived

    async def invoke(self) -> Any:
        """Call the workload and each iteration hook once.

        After-iteration hooks run even if the workload raises.
        """
        await run_fns(self.setup_hooks)
        try:
            return await maybe_await(self.fn())
        finally:
            await run_fns(self.clean_hooks)


class Scene(Generic[P]):
    """Cases and hooks of one parameter combination."""

    def __init__(self, params: P, include: re.Pattern[str] = RE_ANY) -> None:
        self.params = params
        self.include = include
        self.setup_iteration: list[HookFn] = []
        self.clean_iteration: list[HookFn] = []
        self.teardown_hooks: list[HookFn] = []
        self.cases: list[BenchCase] = []
        self._names: set[str] = set()

    def before_iteration(self, fn: HookFn) -> None:
        """Register a callback to be called once before each invocation.

        It's not recommended in microbenchmarks, it spoils the unrolled loop.
        """
        self.setup_iteration.append(fn)

    def after_iteration(self, fn: HookFn) -> None:
        """Register a callback to be called once after each invocation."""
        self.clean_iteration.append(fn)

    def teardown(self, fn: HookFn) -> None:
        """Register a callback to run after all cases of the scene."""
        self.teardown_hooks.append(fn)

    def bench(self, name: str, fn: Workload) -> None:
        self._add(name, fn, False)

    def bench_async(self, name: str, fn: Workload) -> None:
        """Add a case whose workload returns an awaitable.

        A plain function returning a coroutine must be registered here,
        `bench` does not await the return value while measuring.
        """
        self._add(name, fn, True)

    def _add(self, name: str, fn: Workload, is_async: bool) -> None:
        if not name or name.isspace():
            msg = "Case name cannot be blank."
            raise ValueError(msg)
        if name != name.strip():
            msg = f'Case name "{name}" has leading or trailing whitespace.'
            raise ValueError(msg)
        if name in self._names:
            msg = f'Case "{name}" already exists.'
            raise ValueError(msg)

        self._names.add(name)
        if self.include.search(name):
            self.cases.append(
                BenchCase(
                    name,
                    fn,
                    is_async,
                    self.setup_iteration,
                    self.clean_iteration,
                )
            )


@dataclass
class BaselineOptions:
    """Mark a variable value as the baseline to scale results.

    Attributes:
        type: "Name", "Builder", "Executor" or a key of the suite params.
        value: The value of that variable which is the baseline.
    """

    type: str
    value: Any


@dataclass
class BenchmarkSuite(Generic[P]):
    """A parameterized collection of benchmark cases.

    Attributes:
        name: Suite name.
        setup: Called with each scene to add cases and hooks.
        params: Values of each parameter, one scene per combination.
        before_all: Runs before the suite.
        after_all: Runs after the suite has finished, even on failure.
        timing: False to disable, True for defaults, or timing options.
        validate: Run every case once to check them before profiling.
        complexity: Fit the asymptotic complexity over a parameter.
        profilers: Extra profilers.
        baseline: Variable used to scale the results.
    """

    name: str
    setup: Callable[[Scene[P]], Any]
    params: Mapping[str, Iterable[Any]] = field(default_factory=dict)
    before_all: HookFn | None = None
    after_all: HookFn | None = None
    timing: bool | TimingOptions | Mapping[str, Any] = True
    validate: ValidateOptions | None = None
    complexity: ComplexityOptions | None = None
    profilers: list[Profiler] = field(default_factory=list)
    baseline: BaselineOptions | None = None
