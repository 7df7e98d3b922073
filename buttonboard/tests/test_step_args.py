"""
Unit tests for step argument extraction.
"""

import math

import pytest

from buttonboard.errors import ArgumentInvalid
from buttonboard.step_args import (
    get_bool,
    get_double,
    get_int,
    get_node,
    get_required_int,
    get_required_string,
    get_string,
)


class TestOptionalGetters:
    """Test fallback semantics of the optional getters."""

    def test_int_from_numeric_string(self):
        """Test numeric string is parsed."""
        assert get_int({"n": "42"}, "n", 0) == 42
        assert get_int({"n": " -7 "}, "n", 0) == -7

    def test_int_unparsable_returns_fallback(self):
        """Test non-numeric string yields fallback."""
        assert get_int({"n": "abc"}, "n", -1) == -1
        assert get_int({"n": "4.5"}, "n", -1) == -1

    def test_int_from_json_number(self):
        """Test JSON integer returned as-is."""
        assert get_int({"n": 17}, "n") == 17

    def test_int_rejects_fraction_and_overflow(self):
        """Test values that do not fit a 32-bit integer."""
        assert get_int({"n": 1.5}, "n", 9) == 9
        assert get_int({"n": 2**31}, "n", 9) == 9
        assert get_int({"n": str(2**31)}, "n", 9) == 9
        assert get_int({"n": -(2**31)}, "n", 9) == -(2**31)

    def test_int_rejects_bool(self):
        """Test JSON boolean is not a number."""
        assert get_int({"n": True}, "n", 3) == 3

    def test_nil_bag_and_missing_key(self):
        """Test None bag and missing key both yield fallback."""
        assert get_int(None, "n", 5) == 5
        assert get_string(None, "s", "x") == "x"
        assert get_bool({}, "flag", True) is True
        assert get_double({}, "d", 1.25) == 1.25

    def test_double_parsing(self):
        """Test invariant float parsing."""
        assert get_double({"d": "3.5"}, "d") == 3.5
        assert get_double({"d": "1e3"}, "d") == 1000.0
        assert get_double({"d": 2}, "d") == 2.0
        assert get_double({"d": "1,5"}, "d", -1.0) == -1.0
        assert math.isinf(get_double({"d": "Infinity"}, "d"))

    def test_bool_parsing(self):
        """Test boolean literal parsing is case-insensitive."""
        assert get_bool({"b": "TRUE"}, "b") is True
        assert get_bool({"b": "False"}, "b", True) is False
        assert get_bool({"b": False}, "b", True) is False
        assert get_bool({"b": "yes"}, "b", True) is True
        assert get_bool({"b": 1}, "b", False) is False

    def test_string_coercion(self):
        """Test numbers and booleans are stringified."""
        assert get_string({"s": "hello"}, "s") == "hello"
        assert get_string({"s": 12}, "s") == "12"
        assert get_string({"s": 2.5}, "s") == "2.5"
        assert get_string({"s": True}, "s") == "true"
        assert get_string({"s": {"a": 1}}, "s", "fb") == "fb"
        assert get_string({"s": None}, "s", "fb") == "fb"

    def test_node(self):
        """Test only objects and arrays are returned as nodes."""
        assert get_node({"p": {"a": 1}}, "p") == {"a": 1}
        assert get_node({"p": [1, 2]}, "p") == [1, 2]
        assert get_node({"p": "text"}, "p") is None
        assert get_node(None, "p") is None


class TestRequiredGetters:
    """Test required getters raise ArgumentInvalid."""

    def test_required_int_unparsable(self):
        """Test incompatible value raises naming the key."""
        with pytest.raises(ArgumentInvalid) as excinfo:
            get_required_int({"n": "x"}, "n")
        assert excinfo.value.key == "n"

    def test_required_missing(self):
        """Test missing key and None bag raise."""
        with pytest.raises(ArgumentInvalid):
            get_required_string({}, "topic")
        with pytest.raises(ArgumentInvalid):
            get_required_int(None, "n")

    def test_required_string_wrong_kind(self):
        """Test object value is not a string."""
        with pytest.raises(ArgumentInvalid, match="topic"):
            get_required_string({"topic": ["a"]}, "topic")

    def test_required_values(self):
        """Test coerced values are returned."""
        assert get_required_int({"n": "12"}, "n") == 12
        assert get_required_string({"s": 3}, "s") == "3"
