"""Unit tests for scenebench.config module."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import make_suite

from scenebench.complexity import ComplexityOptions
from scenebench.config import RunConfig, load_run_config, parse_run_config
from scenebench.timing import TimingOptions


class TestLoadRunConfig:
    """Tests for loading run configuration from YAML."""

    def test_full(self, tmp_path: Path) -> None:
        path = tmp_path / "bench.yaml"
        path.write_text(
            "pattern: '^sort'\n"
            "log_level: warn\n"
            "timing:\n"
            "  samples: 20\n"
            "  iterations: 500ms\n"
            "complexity:\n"
            "  param: size\n"
        )
        config = load_run_config(path)

        assert config.pattern == "^sort"
        assert config.log_level == "warn"
        assert config.timing == TimingOptions(samples=20, iterations="500ms")
        assert config.complexity == ComplexityOptions(param="size", metric="time")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_run_config(path) == RunConfig()

    def test_timing_disabled(self) -> None:
        assert parse_run_config({"timing": False}).timing is False

    @pytest.mark.parametrize(
        ("data", "message"),
        [
            ({"log_level": "verbose"}, "Invalid log_level"),
            ({"timing": "fast"}, "timing must be"),
            ({"timing": {"unroll": 4}}, "Unknown timing options"),
            ({"complexity": {"metric": "time"}}, "requires a param"),
        ],
    )
    def test_invalid(self, data: dict, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            parse_run_config(data)


class TestRunConfig:
    """Tests for RunConfig class."""

    def test_apply(self) -> None:
        suite = make_suite(timing={"samples": 3})
        config = RunConfig(timing=False, complexity=ComplexityOptions(param="n"))

        applied = config.apply(suite)

        assert applied.timing is False
        assert applied.complexity == ComplexityOptions(param="n")
        assert suite.timing == {"samples": 3}

    def test_apply_keeps_suite_options(self) -> None:
        suite = make_suite(timing={"samples": 3})
        assert RunConfig().apply(suite).timing == {"samples": 3}

    def test_run_options(self) -> None:
        logs: list[tuple[str | None, str]] = []

        options = RunConfig(pattern="foo").run_options(lambda m, lv: logs.append((m, lv)))
        options.log("Pilot", "info")
        options.log("Slow", "warn")

        assert options.pattern == "foo"
        assert logs == [("Pilot", "info"), ("Slow", "warn")]

    def test_run_options_log_level(self) -> None:
        logs: list[tuple[str | None, str]] = []

        config = RunConfig(log_level="warn")
        options = config.run_options(lambda m, lv: logs.append((m, lv)))
        options.log("Pilot", "info")
        options.log(None, "debug")
        options.log("Slow", "warn")
        options.log("Failed", "error")

        assert logs == [("Slow", "warn"), ("Failed", "error")]
