"""Suite parameters: validation, display names and combinations."""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

NAME_LENGTH = 16

# Variables added by the host side, can't be used as parameter names.
BUILTIN_VARS = ("Name", "Builder", "Executor")


def ellipsis(text: str, length: int) -> str:
    """Truncate the text to `length` characters, ending with "…"."""
    if len(text) <= length:
        return text
    return text[: length - 1] + "…"


def to_display_name(value: Any) -> str:
    """Convert the value to a short (length <= 16) display string."""
    if isinstance(value, (list, tuple)):
        inner = ",".join(str(v) for v in value)
        return "[" + ellipsis(inner, NAME_LENGTH - 2) + "]"
    if value is None:
        return "None"
    if callable(value) and hasattr(value, "__name__"):
        name = value.__name__
        if not name or name == "<lambda>":
            return "Anonymous fn"
        return ellipsis(name, NAME_LENGTH)
    return ellipsis(str(value), NAME_LENGTH)


@dataclass
class ParamDef:
    """Resolved suite parameters.

    Attributes:
        keys: Parameter names, in definition order.
        values: Raw values of each parameter.
        names: Display names of each parameter, parallel to `values`.
    """

    keys: list[str] = field(default_factory=list)
    values: list[list[Any]] = field(default_factory=list)
    names: list[list[str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.keys)

    def index(self, key: str) -> int:
        return self.keys.index(key)

    def get(self, key: str) -> list[Any] | None:
        if key in self.keys:
            return self.values[self.keys.index(key)]
        return None

    @property
    def scene_count(self) -> int:
        """Number of combinations, 1 for a suite without parameters."""
        count = 1
        for values in self.values:
            count *= len(values)
        return count

    def combinations(self) -> Iterator[dict[str, Any]]:
        """Yield every combination, the last parameter varies fastest."""
        for combination in itertools.product(*self.values):
            yield dict(zip(self.keys, combination))

    def display(self) -> list[tuple[str, list[str]]]:
        """Return (name, display names) pairs for reporters."""
        return [(k, list(n)) for k, n in zip(self.keys, self.names)]


def check_params(params: Mapping[str, Iterable[Any]] | None) -> ParamDef:
    """Validate suite parameters and build their display names.

    Args:
        params: Mapping of parameter name to its values.

    Returns:
        The resolved parameter definition.
    """
    resolved = ParamDef()
    if not params:
        return resolved

    for key, raw in params.items():
        if not isinstance(key, str):
            msg = "Only string keys are allowed in param"
            raise TypeError(msg)
        if key in BUILTIN_VARS:
            msg = f"'{key}' is a builtin parameter"
            raise ValueError(msg)

        values = list(raw)
        names: list[str] = []
        seen: dict[str, Any] = {}

        for value in values:
            name = to_display_name(value)
            if name in seen:
                msg = (
                    "Parameter display name conflict "
                    f"({key}: {seen[name]!r} and {value!r} -> {name})"
                )
                raise ValueError(msg)
            seen[name] = value
            names.append(name)

        if not values:
            msg = f'Suite parameter "{key}" must have a value'
            raise ValueError(msg)

        resolved.keys.append(key)
        resolved.values.append(values)
        resolved.names.append(names)

    return resolved
