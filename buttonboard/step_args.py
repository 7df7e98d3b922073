"""
Typed extraction of scenario step arguments.

A step's ``args`` is the decoded JSON object of the asset file (or the value
bag built by the scene DSL): keys map to str, int, float, bool, None, dict
or list. The optional getters never raise; they return the fallback when the
bag is None, the key is absent or the value cannot be coerced. The required
getters apply the same coercion but raise ArgumentInvalid instead.
"""

import math
import re
from typing import Any, Mapping, Optional, Union

from buttonboard.errors import ArgumentInvalid

StepArgs = Optional[Mapping[str, Any]]
JsonNode = Union[dict, list]

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Invariant-culture numeric literals: ASCII digits only, no grouping separators
_INT_RE = re.compile(r"^\s*[+-]?[0-9]+\s*$")
_FLOAT_RE = re.compile(r"^\s*[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?\s*$")
_FLOAT_SPECIALS = {"nan": math.nan, "infinity": math.inf, "+infinity": math.inf, "-infinity": -math.inf}

_MISSING = object()


def _lookup(args: StepArgs, key: str) -> Any:
    if args is None:
        return _MISSING
    return args.get(key, _MISSING)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but a distinct JSON kind
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return str(value)
    return None


def _to_int(value: Any) -> Optional[int]:
    if _is_number(value):
        if isinstance(value, float):
            return None
        return value if INT32_MIN <= value <= INT32_MAX else None
    if isinstance(value, str) and _INT_RE.match(value):
        parsed = int(value.strip())
        return parsed if INT32_MIN <= parsed <= INT32_MAX else None
    return None


def _to_float(value: Any) -> Optional[float]:
    if _is_number(value):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in _FLOAT_SPECIALS:
            return _FLOAT_SPECIALS[text.lower()]
        if _FLOAT_RE.match(text):
            return float(text)
    return None


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    return None


def get_string(args: StepArgs, key: str, fallback: str = "") -> str:
    """
    Get a string argument.

    Strings are returned verbatim, numbers and booleans are stringified
    (booleans as ``true``/``false``).

    Args:
        args: Step argument bag (may be None).
        key: Argument name.
        fallback: Value returned when the argument is missing or not coercible.

    Returns:
        Coerced string or fallback.
    """
    value = _lookup(args, key)
    if value is _MISSING:
        return fallback
    result = _to_string(value)
    return fallback if result is None else result


def get_int(args: StepArgs, key: str, fallback: int = 0) -> int:
    """
    Get a 32-bit integer argument from a JSON integer or a numeric string.

    Args:
        args: Step argument bag (may be None).
        key: Argument name.
        fallback: Value returned when the argument is missing or not coercible.

    Returns:
        Coerced integer or fallback.
    """
    value = _lookup(args, key)
    if value is _MISSING:
        return fallback
    result = _to_int(value)
    return fallback if result is None else result


def get_double(args: StepArgs, key: str, fallback: float = 0.0) -> float:
    """
    Get a floating-point argument from a JSON number or a numeric string.

    Args:
        args: Step argument bag (may be None).
        key: Argument name.
        fallback: Value returned when the argument is missing or not coercible.

    Returns:
        Coerced float or fallback.
    """
    value = _lookup(args, key)
    if value is _MISSING:
        return fallback
    result = _to_float(value)
    return fallback if result is None else result


def get_bool(args: StepArgs, key: str, fallback: bool = False) -> bool:
    """
    Get a boolean argument from a JSON boolean or a "true"/"false" string.

    Args:
        args: Step argument bag (may be None).
        key: Argument name.
        fallback: Value returned when the argument is missing or not coercible.

    Returns:
        Coerced boolean or fallback.
    """
    value = _lookup(args, key)
    if value is _MISSING:
        return fallback
    result = _to_bool(value)
    return fallback if result is None else result


def get_node(args: StepArgs, key: str) -> Optional[JsonNode]:
    """Return the raw value if it is a JSON object or array, else None."""
    value = _lookup(args, key)
    if isinstance(value, (dict, list)):
        return value
    return None


def get_required_string(args: StepArgs, key: str) -> str:
    """
    Get a string argument that must be present.

    Raises:
        ArgumentInvalid: If the bag is None, the key is absent or the value
            is not coercible to a string.
    """
    value = _lookup(args, key)
    if value is _MISSING:
        raise ArgumentInvalid(key, "missing")
    result = _to_string(value)
    if result is None:
        raise ArgumentInvalid(key, f"expected a string, got {type(value).__name__}")
    return result


def get_required_int(args: StepArgs, key: str) -> int:
    """
    Get an integer argument that must be present.

    Raises:
        ArgumentInvalid: If the bag is None, the key is absent or the value
            is not coercible to a 32-bit integer.
    """
    value = _lookup(args, key)
    if value is _MISSING:
        raise ArgumentInvalid(key, "missing")
    result = _to_int(value)
    if result is None:
        raise ArgumentInvalid(key, f"expected an integer, got {value!r}")
    return result
