"""Micro-benchmarking engine for parameterized suites.

This package provides statistically rigorous benchmarking with:
- Adaptive invocation counts calibrated to a target iteration time
- Loop unrolling and overhead subtraction for nano-benchmarks
- Validation of return values before measuring
- Asymptotic complexity fitting over a numeric parameter
"""

from __future__ import annotations

from scenebench.complexity import ComplexityOptions, ComplexityProfiler
from scenebench.config import RunConfig, load_run_config
from scenebench.params import check_params, to_display_name
from scenebench.profiling import (
    MetricAnalysis,
    MetricMeta,
    Metrics,
    Note,
    Profiler,
    ProfilingContext,
)
from scenebench.runner import RunSuiteError, RunSuiteOptions, RunSuiteResult, run_suite
from scenebench.stats import TukeyOutlierDetector, minimal_least_square, welch_test
from scenebench.suite import BaselineOptions, BenchCase, BenchmarkSuite, Scene
from scenebench.timing import TimeProfiler, TimingOptions
from scenebench.validate import ExecutionValidator, ValidateOptions, ValidationError

__all__ = [
    "BaselineOptions",
    "BenchCase",
    "BenchmarkSuite",
    "ComplexityOptions",
    "ComplexityProfiler",
    "ExecutionValidator",
    "MetricAnalysis",
    "MetricMeta",
    "Metrics",
    "Note",
    "Profiler",
    "ProfilingContext",
    "RunConfig",
    "RunSuiteError",
    "RunSuiteOptions",
    "RunSuiteResult",
    "Scene",
    "TimeProfiler",
    "TimingOptions",
    "TukeyOutlierDetector",
    "ValidateOptions",
    "ValidationError",
    "check_params",
    "load_run_config",
    "minimal_least_square",
    "run_suite",
    "to_display_name",
    "welch_test",
]
