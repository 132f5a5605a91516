"""Shared helpers: hook execution, durations and name patterns."""

from __future__ import annotations

import asyncio
import inspect
import re
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

HookFn = Callable[[], Any]

RE_ANY = re.compile("")

# Milliseconds per unit.
DURATION_UNITS: dict[str, float] = {
    "ns": 1e-6,
    "us": 1e-3,
    "ms": 1.0,
    "s": 1e3,
    "m": 60e3,
    "h": 3600e3,
    "d": 86400e3,
}

_DURATION_PART = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-z]+)")


async def maybe_await(value: Any) -> Any:
    """Await the value if it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


async def run_fns(hooks: Iterable[HookFn]) -> None:
    """Call all hooks, then wait for those returning awaitables jointly.

    If a hook raises, the awaitables already returned are still awaited
    before the error propagates.
    """
    pending: list[Awaitable[Any]] = []
    try:
        for hook in hooks:
            result = hook()
            if inspect.isawaitable(result):
                pending.append(result)
    except Exception:
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        raise
    if pending:
        await asyncio.gather(*pending)


def resolve_pattern(pattern: str | re.Pattern[str] | None) -> re.Pattern[str]:
    """Build the case name filter, None or empty string matches all names."""
    if not pattern:
        return RE_ANY
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


def parse_duration(text: str, unit: str = "ms") -> float:
    """Parse a duration string like "1s", "10ms" or "1m30s".

    Args:
        text: Duration string.
        unit: Unit of the returned value.

    Returns:
        The duration expressed in `unit`.
    """
    total = 0.0
    pos = 0
    text = text.strip()

    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match or match.group(2) not in DURATION_UNITS:
            msg = f"Invalid duration: {text!r}"
            raise ValueError(msg)
        total += float(match.group(1)) * DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0:
        msg = f"Invalid duration: {text!r}"
        raise ValueError(msg)

    return total / unit_fraction(unit)


def unit_fraction(unit: str) -> float:
    """Return how many milliseconds a duration unit has."""
    try:
        return DURATION_UNITS[unit]
    except KeyError:
        msg = f"Unknown duration unit: {unit!r}"
        raise ValueError(msg) from None


def format_duration(ms: float) -> str:
    """Format milliseconds with the most readable unit, e.g. "1.23 us"."""
    value = abs(ms)
    for unit in ("d", "h", "m", "s", "ms", "us"):
        if value >= DURATION_UNITS[unit]:
            return f"{ms / DURATION_UNITS[unit]:.2f} {unit}"
    return f"{ms / DURATION_UNITS['ns']:.2f} ns"
