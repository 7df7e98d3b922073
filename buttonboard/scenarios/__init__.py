"""
Scenario assets, runtime and the button board panel loop.
"""

from buttonboard.scenarios.assets import ScenarioAssetsLoader
from buttonboard.scenarios.panel import PanelLoop, SceneTrigger
from buttonboard.scenarios.runtime import ScenarioAssetRuntime, ScenarioState

__all__ = [
    "PanelLoop",
    "ScenarioAssetRuntime",
    "ScenarioAssetsLoader",
    "ScenarioState",
    "SceneTrigger",
]
