"""Check that every case runs, and returns valid and equal values.

Validation runs all scenes in a separate pass before the profiling, so
errors are caught before spending time on measurements.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from scenebench.profiling import Profiler, ProfilingContext
from scenebench.suite import BenchCase, Scene
from scenebench.utils import maybe_await

EqualityFn = Callable[[Any, Any], bool]

CheckFn = Callable[[Any, Mapping[str, Any]], Any]

_NONE = object()


class ValidationError(Exception):
    """Raised when cases in a scene return different values."""


def _always_true(a: Any, b: Any) -> bool:
    return True


def _no_check(value: Any, params: Mapping[str, Any]) -> None:
    pass


@dataclass
class ValidateOptions:
    """Options of the execution validator.

    Attributes:
        check: Called with the return value of each case and the scene
            params, raise an error if the value is invalid.
        equality: Check that all cases in a scene return equal values.
            True compares with `is`, a function compares with that function.
    """

    check: CheckFn | None = None
    equality: bool | EqualityFn | None = None


class _PreValidateProfiler(Profiler):

    def __init__(self, check: CheckFn, is_equal: EqualityFn) -> None:
        self.check = check
        self.is_equal = is_equal
        self.scene: Scene | None = None
        self.name_a = ""
        self.value_a: Any = _NONE

    def on_scene(self, ctx: ProfilingContext, scene: Scene) -> None:
        self.scene = scene
        self.value_a = _NONE

    async def on_case(self, ctx: ProfilingContext, case: BenchCase, metrics: dict) -> None:
        value = await case.invoke()
        await maybe_await(self.check(value, self.scene.params))

        if self.value_a is _NONE:
            self.value_a = value
            self.name_a = case.name
        elif not self.is_equal(self.value_a, value):
            msg = f'"{self.name_a}" and "{case.name}" returns different value'
            raise ValidationError(msg)


class ExecutionValidator(Profiler):
    """Run every case once before other profilers measure them."""

    def __init__(self, options: ValidateOptions | None = None) -> None:
        options = options or ValidateOptions()
        self.check = options.check or _no_check

        if options.equality is True:
            self.is_equal = operator.is_
        elif callable(options.equality):
            self.is_equal = options.equality
        else:
            self.is_equal = _always_true

    async def on_start(self, ctx: ProfilingContext) -> None:
        await ctx.info("Validating benchmarks...")
        validator = _PreValidateProfiler(self.check, self.is_equal)
        workflow = ctx.new_workflow([validator])
        try:
            await workflow.run()
        finally:
            ctx.working_params = workflow.working_params
