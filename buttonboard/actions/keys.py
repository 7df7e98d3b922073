"""
Action key parsing.

``"  GPIO.Blink "`` and ``"gpio.blink"`` parse to the same key: the text is
trimmed and lowercased before matching ``<domain>[.<verb>]``.
"""

import re
from dataclasses import dataclass
from typing import Optional

_KEY_RE = re.compile(r"^(?P<domain>[a-z0-9_-]+)(?:\.(?P<verb>[a-z0-9_-]+))?$")


@dataclass(frozen=True)
class ActionKey:
    """
    Parsed action key.

    Attributes:
        domain: Router domain, e.g. ``gpio``.
        verb: Operation within the domain (empty if the key has none).
    """

    domain: str
    verb: str = ""

    def __str__(self) -> str:
        return f"{self.domain}.{self.verb}" if self.verb else self.domain


def normalize_action(action: Optional[str]) -> str:
    """Trim and lowercase an action key (None becomes empty)."""
    return (action or "").strip().lower()


def parse_action_key(action: Optional[str]) -> Optional[ActionKey]:
    """
    Parse an action key.

    Args:
        action: Raw action text from a step.

    Returns:
        ActionKey, or None if the text is blank or malformed.
    """
    match = _KEY_RE.match(normalize_action(action))
    if match is None:
        return None
    return ActionKey(domain=match.group("domain"), verb=match.group("verb") or "")
