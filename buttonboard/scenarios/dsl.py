"""
Scene DSL parser.

A ``.scene`` file is a compact timeline::

    name: Opening
    group lights = kitchen/light, hall/light,
                   porch/light
    # time   action       target          args
    00       gpio.on      SystemGreen
    02       mqtt.publish lights[1-2]     payload=ON
    01:30    video.next   Mediaplayer1

Time is ``ss`` or ``mm:ss``. A target naming a group, or a 1-based inclusive
slice ``group[a-b]``, expands into one step per item.
"""

import re
import shlex
from typing import Any, Dict, List, Optional, Tuple

from buttonboard.actions.keys import normalize_action
from buttonboard.model import ScenarioStep

_NAME_RE = re.compile(r"^\s*name\s*:\s*(?P<name>.+)$")
_GROUP_RE = re.compile(r"^\s*group\s+(?P<name>[A-Za-z0-9_\-]+)\s*=\s*(?P<rest>.+)$")
_SLICE_RE = re.compile(r"^(?P<group>[A-Za-z0-9_\-]+)\[(?P<a>\d+)\s*-\s*(?P<b>\d+)\]$")
_INT_RE = re.compile(r"^[+-]?\d+$")

# Argument that receives the expanded target item, per domain
_TARGET_ARG = {"mqtt": "topic", "video": "player", "gpio": "led"}
_OVERRIDES_ARG = {"mqtt", "video"}


def _join_continuations(text: str) -> List[Tuple[int, str]]:
    """Join lines ending in a comma with the next one, keeping the first line number."""
    lines: List[Tuple[int, str]] = []
    for lineno, raw in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
        if lines and lines[-1][1].rstrip().endswith(","):
            first, joined = lines[-1]
            lines[-1] = (first, f"{joined.rstrip()} {raw.strip()}")
        else:
            lines.append((lineno, raw))
    return lines


def parse_time_ms(token: str) -> int:
    """
    Parse ``ss`` or ``mm:ss`` into milliseconds.

    Raises:
        ValueError: If the token is neither form.
    """
    if _INT_RE.match(token):
        return int(token) * 1000
    parts = token.split(":")
    if len(parts) == 2 and all(_INT_RE.match(p) for p in parts):
        return (int(parts[0]) * 60 + int(parts[1])) * 1000
    raise ValueError(f"Invalid time format '{token}', use 'ss' or 'mm:ss'")


def parse_value(text: str) -> Any:
    """Parse an argument value as int, bool, null or string."""
    if _INT_RE.match(text):
        value = int(text)
        if -(2**31) <= value < 2**31:
            return value
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered == "null":
        return None
    return text


def _parse_args(tokens: List[str]) -> Dict[str, Any]:
    args: Dict[str, Any] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key.strip():
            continue
        args[key.strip()] = parse_value(value.strip())
    return args


def _expand_target(token: Optional[str], groups: Dict[str, List[str]]) -> List[str]:
    if not token:
        return []
    if token.lower() in groups:
        return groups[token.lower()]
    match = _SLICE_RE.match(token)
    if match:
        name = match.group("group")
        items = groups.get(name.lower())
        if items is None:
            raise ValueError(f"Unknown group '{name}' in slice")
        a, b = int(match.group("a")), int(match.group("b"))
        if a < 1 or b < a or b > len(items):
            raise ValueError(f"Invalid slice {token} for group '{name}' with {len(items)} items")
        return items[a - 1 : b]
    return [token]


def _step_name(action: str, item: Optional[str]) -> str:
    if not item:
        return action
    domain, _, verb = action.partition(".")
    if domain == "video":
        return f"{item}: {verb.upper()}"
    if domain == "mqtt":
        return f"{action} -> {item}"
    return f"{action} {item}"


def parse_scene(text: str) -> Tuple[Optional[str], List[ScenarioStep]]:
    """
    Parse scene DSL text.

    Args:
        text: File content.

    Returns:
        Tuple of (title from the ``name:`` header or None, steps sorted by
        time).

    Raises:
        ValueError: On a bad time, quote or slice.
    """
    title: Optional[str] = None
    groups: Dict[str, List[str]] = {}
    steps: List[ScenarioStep] = []

    for lineno, raw in _join_continuations(text):
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith("//"):
            continue

        match = _NAME_RE.match(line)
        if match:
            title = match.group("name").strip()
            continue

        match = _GROUP_RE.match(line)
        if match:
            items = [item.strip() for item in match.group("rest").split(",")]
            groups[match.group("name").lower()] = [item for item in items if item]
            continue

        try:
            tokens = shlex.split(line)
        except ValueError as e:
            raise ValueError(f"line {lineno}: {e}") from e
        if len(tokens) < 2:
            continue

        try:
            at_ms = parse_time_ms(tokens[0])
        except ValueError as e:
            raise ValueError(f"line {lineno}: {e}") from e
        action = normalize_action(tokens[1])
        rest = tokens[2:]
        target = None
        if rest and "=" not in rest[0]:
            target, rest = rest[0], rest[1:]
        args = _parse_args(rest)

        items = _expand_target(target, groups)
        if not items:
            steps.append(ScenarioStep(action=action, args=args, name=action, at_ms=at_ms))
            continue

        domain = action.partition(".")[0]
        arg_name = _TARGET_ARG.get(domain, "target")
        for item in items:
            item_args = dict(args)
            if domain in _OVERRIDES_ARG or arg_name not in item_args:
                item_args[arg_name] = item
            steps.append(
                ScenarioStep(action=action, args=item_args, name=_step_name(action, item), at_ms=at_ms)
            )

    steps.sort(key=lambda step: step.at_ms)
    return title, steps
