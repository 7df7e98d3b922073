"""
Service composition.

Every capability is bound to its real or simulated implementation with the
``operation_mode`` predicate; nothing is constructed until first use.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from buttonboard.actions import (
    ActionExecutor,
    ActionRouterRegistry,
    AudioActionRouter,
    GpioActionRouter,
    MqttActionRouter,
    VideoActionRouter,
)
from buttonboard.binding import ModeBinding, bind
from buttonboard.config import Config
from buttonboard.gpio import ButtonboardGpio, GpioController, SimulatedGpio
from buttonboard.lyrion import LyrionCliClient, LyrionClient, SimulatedLyrionClient
from buttonboard.mqtt import MessagingClient, ResilientMqttClient, SimulatedMqttClient
from buttonboard.pins import Led
from buttonboard.scenarios import (
    PanelLoop,
    ScenarioAssetRuntime,
    ScenarioAssetsLoader,
    SceneTrigger,
)
from buttonboard.vlc import SimulatedVlcClient, VlcClient, VlcHttpClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Wired application services."""

    config: Config
    gpio: ModeBinding[GpioController]
    mqtt: ModeBinding[MessagingClient]
    vlc: ModeBinding[VlcClient]
    lyrion: ModeBinding[LyrionClient]
    registry: ActionRouterRegistry
    executor: ActionExecutor
    loader: ScenarioAssetsLoader
    runtime: ScenarioAssetRuntime
    panel: PanelLoop

    def start(self) -> None:
        """Initialize GPIO and start the messaging session (non-blocking)."""
        self.gpio().initialize()
        self.mqtt().start()

    async def close(self) -> None:
        """Cancel any running scene and release every resolved capability."""
        await self.runtime.cancel()

        if _usable(self.mqtt):
            await self.mqtt().stop()
        if _usable(self.vlc):
            await self.vlc().aclose()
        if _usable(self.gpio):
            try:
                self.gpio().close()
            except Exception as e:
                logger.warning(f"GPIO close failed: {e}")
        logger.info("Services closed")


def _usable(binding: ModeBinding) -> bool:
    if not binding.is_resolved:
        return False
    try:
        binding.resolve()
    except Exception:
        return False
    return True


def build_services(
    config: Config,
    pin_factory: Any = None,
    mqtt_client_factory: Optional[Callable[[], Any]] = None,
) -> Services:
    """
    Wire all capabilities, routers and the scenario runtime.

    Args:
        config: Application configuration.
        pin_factory: gpiozero pin factory for the real GPIO controller.
        mqtt_client_factory: paho client factory for the real MQTT client.

    Returns:
        Services with unresolved capability bindings.
    """

    def simulated() -> bool:
        return config.simulated

    gpio: ModeBinding[GpioController] = bind(
        "gpio", simulated, lambda: ButtonboardGpio(pin_factory=pin_factory), SimulatedGpio
    )
    mqtt: ModeBinding[MessagingClient] = bind(
        "mqtt",
        simulated,
        lambda: ResilientMqttClient(config.mqtt, client_factory=mqtt_client_factory),
        SimulatedMqttClient,
    )

    def vlc_fault() -> None:
        gpio().led_on(Led.SYSTEM_YELLOW)

    vlc: ModeBinding[VlcClient] = bind(
        "vlc",
        simulated,
        lambda: VlcHttpClient(config.vlc.players, on_failure=vlc_fault),
        SimulatedVlcClient,
    )
    lyrion: ModeBinding[LyrionClient] = bind(
        "lyrion", simulated, lambda: LyrionCliClient(config.lyrion), SimulatedLyrionClient
    )

    registry = ActionRouterRegistry(
        [
            GpioActionRouter(gpio),
            MqttActionRouter(mqtt),
            AudioActionRouter(lyrion),
            VideoActionRouter(vlc, config.vlc.players.keys()),
        ]
    )
    executor = ActionExecutor(registry)
    loader = ScenarioAssetsLoader(
        config.application.scenario_assets_folder, config.scenario.setup_key
    )
    runtime = ScenarioAssetRuntime(loader, executor)
    panel = PanelLoop(
        gpio,
        runtime,
        [
            SceneTrigger(scene.key, scene.button, scene.required_stage)
            for scene in config.scenario.scenes
        ],
        setup_key=config.scenario.setup_key,
        disable_scene_order=config.application.disable_scene_order,
    )

    return Services(
        config=config,
        gpio=gpio,
        mqtt=mqtt,
        vlc=vlc,
        lyrion=lyrion,
        registry=registry,
        executor=executor,
        loader=loader,
        runtime=runtime,
        panel=panel,
    )
