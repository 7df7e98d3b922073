"""
Scenario data model.

A scenario asset is an ordered sequence of steps; each step names an action
``<domain>.<verb>`` and carries a JSON argument bag.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple


class AssetKind(Enum):
    """Role of a scenario asset."""

    SETUP = "setup"
    SCENE = "scene"


class OnError(str, Enum):
    """Per-step failure policy applied by the scenario runtime."""

    CONTINUE = "continue"
    ABORT = "abort"

    @classmethod
    def parse(cls, value: Optional[str]) -> "OnError":
        """Anything other than ``abort`` means continue."""
        if value is not None and value.strip().lower() == cls.ABORT.value:
            return cls.ABORT
        return cls.CONTINUE


@dataclass(frozen=True)
class ScenarioStep:
    """
    One instruction inside a scenario.

    Attributes:
        action: Dotted action key, e.g. ``gpio.blink``.
        args: Argument bag (None when the step has no arguments).
        name: Display name for logs.
        at_ms: Offset from scenario start in milliseconds.
        on_error: Failure policy for this step.
    """

    action: str
    args: Optional[Mapping[str, Any]] = None
    name: str = ""
    at_ms: int = 0
    on_error: OnError = OnError.CONTINUE

    def __post_init__(self) -> None:
        if self.args is not None and not isinstance(self.args, MappingProxyType):
            object.__setattr__(self, "args", MappingProxyType(dict(self.args)))

    @property
    def label(self) -> str:
        """Name if set, else the action key."""
        return self.name or self.action


@dataclass(frozen=True)
class ScenarioAsset:
    """
    Named, ordered, non-empty step sequence.

    Attributes:
        key: Asset key (file name without extension).
        kind: SETUP or SCENE.
        steps: Steps sorted by ``at_ms``.
        name: Human-readable title.
        version: Asset format version.
    """

    key: str
    kind: AssetKind
    steps: Tuple[ScenarioStep, ...] = field(default_factory=tuple)
    name: str = ""
    version: int = 1

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError(f"Scenario asset '{self.key}' has no steps")
        object.__setattr__(self, "steps", tuple(self.steps))
