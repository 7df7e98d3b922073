"""
Buttonboard - Scenario host for a physical button board

Runs multi-step scenarios triggered by the board's push buttons: LEDs and
the process bar via GPIO, state over MQTT, audio on Lyrion players and
video on VLC players. Every integration has a simulated counterpart
selected by the configured operation mode.
"""

__version__ = "0.1.0"
__author__ = "Buttonboard Project Contributors"

from buttonboard.actions import ActionExecutor, ActionRouterRegistry
from buttonboard.model import ScenarioAsset, ScenarioStep

__all__ = [
    "ActionExecutor",
    "ActionRouterRegistry",
    "ScenarioAsset",
    "ScenarioStep",
    "__version__",
]
