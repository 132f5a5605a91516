"""Run configuration loaded from YAML.

Example `bench.yaml`:

    pattern: "^sort"
    log_level: warn
    timing:
      samples: 20
      iterations: 500ms
    complexity:
      param: size
      metric: time
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from scenebench.complexity import ComplexityOptions
from scenebench.logging import LEVELS, console_log_handler, level_filter
from scenebench.profiling import LogHandler
from scenebench.runner import RunSuiteOptions
from scenebench.suite import BenchmarkSuite
from scenebench.timing import TimingOptions


@dataclass
class RunConfig:
    """Overrides applied to suites by a driver.

    Attributes:
        pattern: Only run cases with names matching this regex.
        log_level: Minimum level of log messages to print.
        timing: None keeps the suite's option, otherwise replaces it.
        complexity: None keeps the suite's option, otherwise replaces it.
    """

    pattern: str | None = None
    log_level: str = "info"
    timing: bool | TimingOptions | None = None
    complexity: ComplexityOptions | None = None

    def apply(self, suite: BenchmarkSuite) -> BenchmarkSuite:
        """Return a copy of the suite with the overrides."""
        changes: dict[str, Any] = {}
        if self.timing is not None:
            changes["timing"] = self.timing
        if self.complexity is not None:
            changes["complexity"] = self.complexity
        return dataclasses.replace(suite, **changes)

    def run_options(self, log: LogHandler | None = None) -> RunSuiteOptions:
        """Build run options, logs below `log_level` are dropped.

        Args:
            log: Log sink, the console logger if None.
        """
        handler = level_filter(log or console_log_handler, self.log_level)
        return RunSuiteOptions(log=handler, pattern=self.pattern)


def parse_run_config(data: Mapping[str, Any] | None) -> RunConfig:
    """Build a RunConfig from parsed YAML data.

    Args:
        data: Mapping of the configuration, None for an empty file.

    Returns:
        RunConfig with validated values.
    """
    data = data or {}

    log_level = data.get("log_level", "info")
    if log_level not in LEVELS:
        msg = f"Invalid log_level: {log_level!r}"
        raise ValueError(msg)

    timing = data.get("timing")
    if isinstance(timing, Mapping):
        timing = TimingOptions.from_mapping(timing)
    elif timing is not None and not isinstance(timing, bool):
        msg = "timing must be a boolean or a mapping"
        raise ValueError(msg)

    complexity = None
    complexity_data = data.get("complexity")
    if complexity_data is not None:
        if "param" not in complexity_data:
            msg = "complexity requires a param"
            raise ValueError(msg)
        complexity = ComplexityOptions(
            param=complexity_data["param"],
            metric=complexity_data.get("metric", "time"),
        )

    return RunConfig(
        pattern=data.get("pattern"),
        log_level=log_level,
        timing=timing,
        complexity=complexity,
    )


def load_run_config(config_path: Path | str) -> RunConfig:
    """Load run configuration from YAML.

    Args:
        config_path: Path to the YAML file.

    Returns:
        RunConfig loaded from the file.
    """
    with Path(config_path).open() as f:
        data = yaml.safe_load(f)
    return parse_run_config(data)
