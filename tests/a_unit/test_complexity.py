"""Unit tests for scenebench.complexity module."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

import pytest
from conftest import noop

from scenebench.complexity import ComplexityOptions, ComplexityProfiler
from scenebench.profiling import MetricMeta, Profiler, ProfilingContext
from scenebench.suite import Scene

X_VALUES = [10, 50, 200, 520, 3000, 7500, 10000]

SERIES = [
    ("O(1)", [66] * 7),
    ("O(N)", [9, 57, 221, 498, 2997, 8964, 10086]),
    ("O(logN)", [0.5 * math.log2(n) for n in X_VALUES]),
    ("O(NlogN)", [n * math.log2(n) for n in X_VALUES]),
    (
        "O(N^2)",
        [
            0.0002953256049001,
            0.00590669962202318,
            0.06208956928343995,
            0.35493970454548207,
            10.945971978021912,
            68.72572928571432,
            126.28999250000015,
        ],
    ),
    ("O(N^3)", [2e-9 * n**3 for n in X_VALUES]),
]


class MockTimeProfiler(Profiler):
    """Writes prepared values as the time metric."""

    def __init__(self, get_time: Callable[[MockTimeProfiler], Any]) -> None:
        self.get_time = get_time
        self.scene: Scene | None = None
        self.scene_index = -1
        self.case_index = -1

    def on_scene(self, ctx: ProfilingContext, scene: Scene) -> None:
        self.scene = scene
        self.scene_index += 1
        self.case_index = -1

    def on_case(self, ctx, case, metrics) -> None:
        self.case_index += 1
        metrics["time"] = self.get_time(self)


def complexity(**options: Any) -> ComplexityProfiler:
    options.setdefault("param", "x")
    options.setdefault("metric", "time")
    return ComplexityProfiler(ComplexityOptions(**options))


class TestComplexityProfiler:
    """Tests for ComplexityProfiler class."""

    @pytest.mark.asyncio
    async def test_param_not_exists(self, run_profilers) -> None:
        with pytest.raises(ValueError, match="x is not in params"):
            await run_profilers([complexity()])

    @pytest.mark.asyncio
    async def test_param_must_be_numbers(self, run_profilers) -> None:
        with pytest.raises(ValueError, match="Param x must be finite numbers"):
            await run_profilers([complexity()], params={"x": [1, False]})

    @pytest.mark.asyncio
    async def test_string_metric(self, run_profilers) -> None:
        with pytest.raises(TypeError, match='Metric "time" has string type'):
            await run_profilers(
                [MockTimeProfiler(lambda _: "foobar"), complexity()],
                params={"x": X_VALUES},
            )

    @pytest.mark.parametrize(("expected", "values"), SERIES)
    @pytest.mark.asyncio
    async def test_fit(self, run_profilers, expected: str, values: list[float]) -> None:
        context = await run_profilers(
            [MockTimeProfiler(lambda p: values[p.scene_index]), complexity()],
            params={"x": X_VALUES},
        )

        assert context.meta["complexity"] == MetricMeta(key="complexity")
        for scene in context.scenes:
            assert scene["Test"]["complexity"] == expected

    @pytest.mark.asyncio
    async def test_array_metric_uses_mean(self, run_profilers) -> None:
        def get_time(p: MockTimeProfiler) -> list[float]:
            n = X_VALUES[p.scene_index]
            return [n * 0.9, n, n * 1.1]

        context = await run_profilers(
            [MockTimeProfiler(get_time), complexity()],
            params={"x": X_VALUES},
        )
        assert context.scenes[0]["Test"]["complexity"] == "O(N)"

    @pytest.mark.asyncio
    async def test_skip_without_enough_points(self, run_profilers) -> None:
        def setup(scene: Scene) -> None:
            if scene.params["x"] <= 10:
                scene.bench("Test", noop)

        context = await run_profilers(
            [MockTimeProfiler(lambda _: 11), complexity()],
            params={"x": X_VALUES},
            setup=setup,
        )

        assert context.meta["complexity"] == MetricMeta(key="complexity")
        assert "complexity" not in context.scenes[0]["Test"]

    @pytest.mark.asyncio
    async def test_all_zero_is_constant(self, run_profilers) -> None:
        context = await run_profilers(
            [MockTimeProfiler(lambda _: [0]), complexity()],
            params={"x": [10, 100, 1000]},
        )
        labels = [scene["Test"]["complexity"] for scene in context.scenes]
        assert labels == ["O(1)"] * 3

    @pytest.mark.asyncio
    async def test_ignores_absent_and_non_finite(self, run_profilers) -> None:
        def get_time(p: MockTimeProfiler) -> Any:
            if p.scene_index == 0:
                return None
            if p.scene_index == 1:
                return math.inf
            return X_VALUES[p.scene_index] ** 2

        context = await run_profilers(
            [MockTimeProfiler(get_time), complexity()],
            params={"x": X_VALUES},
        )
        assert context.scenes[0]["Test"]["complexity"] == "O(N^2)"

    @pytest.mark.asyncio
    async def test_groups_by_other_params(self, run_profilers) -> None:
        def get_time(p: MockTimeProfiler) -> float:
            params = p.scene.params
            n = params["x"]
            if params["data_set"] == 0:
                value = 66.0
            else:
                value = float(n)
            return value * n if params["multiple_n"] else value

        context = await run_profilers(
            [MockTimeProfiler(get_time), complexity()],
            params={
                "data_set": [0, 1],
                "x": X_VALUES,
                "multiple_n": [False, True],
            },
        )

        for i in range(0, 14, 2):
            assert context.scenes[i]["Test"]["complexity"] == "O(1)"
            assert context.scenes[i + 1]["Test"]["complexity"] == "O(N)"
        for i in range(14, 28, 2):
            assert context.scenes[i]["Test"]["complexity"] == "O(N)"
            assert context.scenes[i + 1]["Test"]["complexity"] == "O(N^2)"

    @pytest.mark.asyncio
    async def test_custom_curves(self, run_profilers) -> None:
        def setup(scene: Scene) -> None:
            scene.bench("foo", noop)
            scene.bench("bar", noop)

        def get_time(p: MockTimeProfiler) -> float:
            n = p.scene.params["x"]
            return math.log(math.log(n)) if p.case_index == 0 else n**1.5

        profiler = complexity(
            curves={
                "typeA": lambda n: math.log(math.log(n)),
                "typeB": lambda n: n**1.5,
            }
        )
        context = await run_profilers(
            [MockTimeProfiler(get_time), profiler],
            params={"multiple_n": [False, True], "x": X_VALUES},
            setup=setup,
        )

        assert context.scenes[0]["foo"]["complexity"] == "typeA"
        assert context.scenes[0]["bar"]["complexity"] == "typeB"
