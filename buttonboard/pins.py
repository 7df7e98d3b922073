"""
Button board pin map.

Each LED and button is an enum member whose value is its BCM GPIO number,
so a logical name cannot exist without a physical address. ``@unique``
rejects two names sharing a pin at class creation, and the module refuses to
import if an LED and a button claim the same pin.
"""

from enum import Enum, unique
from typing import Type, TypeVar, Union


@unique
class Led(Enum):
    """Board LEDs (BCM numbering)."""

    # Process-indicator bar: three columns, three rows
    PROCESS_RED_1 = 23
    PROCESS_RED_2 = 22
    PROCESS_RED_3 = 12
    PROCESS_YELLOW_1 = 20
    PROCESS_YELLOW_2 = 19
    PROCESS_YELLOW_3 = 24
    PROCESS_GREEN_1 = 25
    PROCESS_GREEN_2 = 5
    PROCESS_GREEN_3 = 6

    # Button backlights
    BUTTON_TOP_CENTER = 16
    BUTTON_BOTTOM_LEFT = 9
    BUTTON_BOTTOM_CENTER = 26
    BUTTON_BOTTOM_RIGHT = 10

    # System status
    SYSTEM_YELLOW = 17
    SYSTEM_GREEN = 18

    @property
    def pin(self) -> int:
        """BCM pin number."""
        return self.value


@unique
class Button(Enum):
    """Board push buttons (BCM numbering)."""

    TOP_CENTER = 13
    BOTTOM_LEFT = 27
    BOTTOM_CENTER = 4
    BOTTOM_RIGHT = 21

    @property
    def pin(self) -> int:
        """BCM pin number."""
        return self.value


PROCESS_LEDS = (
    Led.PROCESS_RED_1,
    Led.PROCESS_RED_2,
    Led.PROCESS_RED_3,
    Led.PROCESS_YELLOW_1,
    Led.PROCESS_YELLOW_2,
    Led.PROCESS_YELLOW_3,
    Led.PROCESS_GREEN_1,
    Led.PROCESS_GREEN_2,
    Led.PROCESS_GREEN_3,
)

_shared = {led.pin for led in Led} & {button.pin for button in Button}
if _shared:
    raise ImportError(f"Pins assigned to both an LED and a button: {sorted(_shared)}")


E = TypeVar("E", Led, Button)


def _normalize(name: str) -> str:
    return name.replace("_", "").replace("-", "").strip().lower()


def parse_name(enum_type: Type[E], name: str) -> E:
    """
    Parse a logical name, ignoring case and underscores.

    ``"SystemGreen"``, ``"system_green"`` and ``"SYSTEM_GREEN"`` all resolve
    to ``Led.SYSTEM_GREEN``.

    Args:
        enum_type: Led or Button.
        name: Logical name as written in an asset or config file.

    Returns:
        Matching enum member.

    Raises:
        ValueError: If no member matches.
    """
    wanted = _normalize(name)
    for member in enum_type:
        if _normalize(member.name) == wanted:
            return member
    raise ValueError(f"Unknown {enum_type.__name__} '{name}'")


def resolve_pin(name: Union[Led, Button]) -> int:
    """Resolve a logical LED or button to its BCM pin."""
    return name.pin
