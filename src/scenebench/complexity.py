"""Asymptotic complexity of cases over a numeric parameter.

Metrics are collected from every scene first, the curves are fitted once
at the end of the run and the label is written back into the metrics of
each case.
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Mapping
from dataclasses import dataclass
from numbers import Real

from scenebench.profiling import MetricMeta, Profiler, ProfilingContext
from scenebench.stats import CurveFn, minimal_least_square


def _log2(n: float) -> float:
    return math.log2(n) if n > 0 else math.nan


DEFAULT_CURVES: dict[str, CurveFn] = {
    "O(1)": lambda n: 1,
    "O(N)": lambda n: n,
    "O(logN)": _log2,
    "O(NlogN)": lambda n: n * _log2(n),
    "O(N^2)": lambda n: n * n,
    "O(N^3)": lambda n: n**3,
}


@dataclass
class ComplexityOptions:
    """Options of the complexity profiler.

    Attributes:
        param: Name of the parameter used as input size.
        metric: Key of the metric to fit, e.g. "time".
        curves: Labels and shape functions replacing the defaults.
    """

    param: str
    metric: str = "time"
    curves: Mapping[str, CurveFn] | None = None


def _is_finite_number(value: object) -> bool:
    return (
        isinstance(value, Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


class ComplexityProfiler(Profiler):
    """Fits the metric of each case against the input size parameter."""

    def __init__(self, options: ComplexityOptions) -> None:
        self.param = options.param
        self.metric = options.metric
        self.curves = dict(options.curves) if options.curves else DEFAULT_CURVES
        self.index = -1
        self.weights: list[int] = []

    def on_start(self, ctx: ProfilingContext) -> None:
        ctx.define_metric(MetricMeta(key="complexity"))

        params = ctx.params
        if self.param not in params.keys:
            msg = f"{self.param} is not in params"
            raise ValueError(msg)

        self.index = params.index(self.param)
        if not all(_is_finite_number(v) for v in params.values[self.index]):
            msg = f"Param {self.param} must be finite numbers"
            raise ValueError(msg)

        # Scene index of a combination is the dot product with the weights.
        self.weights = [0] * len(params)
        weight = 1
        for i in range(len(params) - 1, -1, -1):
            self.weights[i] = weight
            weight *= len(params.values[i])

    def on_finish(self, ctx: ProfilingContext) -> None:
        params = ctx.params
        for base in self._group_offsets(params.values):
            self._fit_group(ctx, base)

    def _group_offsets(self, values: list[list]) -> list[int]:
        """Scene index of the first scene of each group."""
        offsets = [0]
        for depth, weight in enumerate(self.weights):
            if depth == self.index:
                continue
            offsets = [k + weight * i for k in offsets for i in range(len(values[depth]))]
        return offsets

    def _fit_group(self, ctx: ProfilingContext, base: int) -> None:
        sizes = ctx.params.values[self.index]
        stride = self.weights[self.index]

        # Scene indexes of each case, metrics are looked up by (scene, case).
        scene_map: dict[str, list[int]] = {}
        points_map: dict[str, list[tuple[float, float]]] = {}

        for i, size in enumerate(sizes):
            scene_index = base + i * stride

            for name, metrics in ctx.scenes[scene_index].items():
                scene_map.setdefault(name, []).append(scene_index)
                points = points_map.setdefault(name, [])

                value = metrics.get(self.metric)
                if isinstance(value, str):
                    msg = (
                        f'Metric "{self.metric}" has string type '
                        "and cannot be used to calculate complexity"
                    )
                    raise TypeError(msg)
                if isinstance(value, list):
                    value = statistics.fmean(value) if value else None
                if _is_finite_number(value):
                    points.append((size, value))

        for name, points in points_map.items():
            # Minimum require 2 points.
            if len(points) < 2:
                continue

            xs = [x for x, _ in points]
            ys = [y for _, y in points]

            # A series no curve can score, e.g. all zeros, gets the first label.
            best_fit = math.inf
            complexity = next(iter(self.curves))
            for label, fn in self.curves.items():
                rms = minimal_least_square(xs, ys, fn)
                if rms < best_fit:
                    best_fit = rms
                    complexity = label

            for scene_index in scene_map[name]:
                ctx.scenes[scene_index][name]["complexity"] = complexity

