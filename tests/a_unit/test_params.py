"""Unit tests for scenebench.params module."""

from __future__ import annotations

import pytest

from scenebench.params import check_params, ellipsis, to_display_name


class TestToDisplayName:
    """Tests for to_display_name function."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (123, "123"),
            (1.5, "1.5"),
            ("short", "short"),
            ("a string longer than sixteen", "a string longer…"),
            (None, "None"),
            (True, "True"),
            ([1, 2, 3], "[1,2,3]"),
            ((4, 5), "[4,5]"),
            (list(range(20)), "[0,1,2,3,4,5,6…]"),
        ],
    )
    def test_values(self, value: object, expected: str) -> None:
        assert to_display_name(value) == expected

    def test_function(self) -> None:
        def sort_in_place() -> None:
            pass

        assert to_display_name(sort_in_place) == "sort_in_place"
        assert to_display_name(lambda: None) == "Anonymous fn"

    def test_length_limit(self) -> None:
        assert len(to_display_name("x" * 100)) == 16
        assert len(to_display_name(["x" * 100])) == 16

    def test_ellipsis(self) -> None:
        assert ellipsis("abcdef", 6) == "abcdef"
        assert ellipsis("abcdefg", 6) == "abcde…"


class TestCheckParams:
    """Tests for check_params function."""

    def test_empty(self) -> None:
        resolved = check_params({})

        assert resolved.display() == []
        assert resolved.scene_count == 1
        assert list(resolved.combinations()) == [{}]

    def test_display_names(self) -> None:
        resolved = check_params({"size": [10, 100], "mode": ("fast", None)})

        assert resolved.display() == [
            ("size", ["10", "100"]),
            ("mode", ["fast", "None"]),
        ]
        assert resolved.values == [[10, 100], ["fast", None]]

    def test_builtin_name(self) -> None:
        with pytest.raises(ValueError, match="'Name' is a builtin parameter"):
            check_params({"Name": [1]})

    def test_non_string_key(self) -> None:
        with pytest.raises(TypeError, match="Only string keys"):
            check_params({1: [1]})  # type: ignore[dict-item]

    def test_empty_values(self) -> None:
        with pytest.raises(ValueError, match='"size" must have a value'):
            check_params({"size": []})

    def test_display_name_conflict(self) -> None:
        values = ["a" * 20 + "1", "a" * 20 + "2"]
        with pytest.raises(ValueError, match="display name conflict") as info:
            check_params({"text": values})
        message = str(info.value)
        assert f"(text: '{values[0]}' and '{values[1]}' -> {'a' * 15}…)" in message

    def test_scene_count(self) -> None:
        resolved = check_params({"a": [1, 2], "b": [1, 2, 3], "c": [0]})
        assert resolved.scene_count == 6
        assert len(list(resolved.combinations())) == 6

    def test_last_parameter_varies_fastest(self) -> None:
        resolved = check_params({"a": [1, 2], "b": ["x", "y"]})

        assert list(resolved.combinations()) == [
            {"a": 1, "b": "x"},
            {"a": 1, "b": "y"},
            {"a": 2, "b": "x"},
            {"a": 2, "b": "y"},
        ]

    def test_accepts_generators(self) -> None:
        resolved = check_params({"n": (i * 10 for i in range(3))})
        assert resolved.get("n") == [0, 10, 20]
        assert resolved.get("missing") is None
