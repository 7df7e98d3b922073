"""
Scenario action dispatch: key parsing, domain routers, registry and executor.
"""

from buttonboard.actions.audio_router import AudioActionRouter
from buttonboard.actions.executor import ActionExecutor
from buttonboard.actions.gpio_router import GpioActionRouter
from buttonboard.actions.keys import ActionKey, parse_action_key
from buttonboard.actions.mqtt_router import MqttActionRouter
from buttonboard.actions.registry import ActionRouterRegistry
from buttonboard.actions.router import ActionRouter
from buttonboard.actions.video_router import VideoActionRouter

__all__ = [
    "ActionExecutor",
    "ActionKey",
    "ActionRouter",
    "ActionRouterRegistry",
    "AudioActionRouter",
    "GpioActionRouter",
    "MqttActionRouter",
    "VideoActionRouter",
    "parse_action_key",
]
