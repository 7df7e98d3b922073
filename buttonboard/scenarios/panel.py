"""
Button board panel loop.

Polls the trigger buttons, starts scenes in their configured order and
signals a wrong-order press by blinking the process bar. Pressing
BottomLeft and BottomRight together cancels the running scene and ends the
loop.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set

from buttonboard.cancellation import CancellationToken
from buttonboard.errors import OperationCancelled
from buttonboard.gpio import GpioController
from buttonboard.pins import Button, Led
from buttonboard.scenarios.runtime import ScenarioAssetRuntime

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 20
DEBOUNCE_MS = 150
WRONG_ORDER_BLINKS = 5
WRONG_ORDER_INTERVAL_MS = 100
TERMINATION_COMBO = (Button.BOTTOM_LEFT, Button.BOTTOM_RIGHT)


@dataclass(frozen=True)
class SceneTrigger:
    """
    Button to scene binding.

    Attributes:
        key: Scene asset key.
        button: Trigger button.
        required_stage: Stage at which the scene may start.
    """

    key: str
    button: Button
    required_stage: int


class PanelLoop:
    """Maps button presses on the board to scenario runs."""

    def __init__(
        self,
        gpio: Callable[[], GpioController],
        runtime: ScenarioAssetRuntime,
        scenes: Sequence[SceneTrigger],
        setup_key: str = "setup",
        disable_scene_order: bool = False,
    ):
        """
        Initialize panel loop.

        Args:
            gpio: Provider of the bound GPIO controller.
            runtime: Scenario runtime that executes the scenes.
            scenes: Scene triggers in stage order.
            setup_key: Asset key started by ``setup``.
            disable_scene_order: Start any scene regardless of stage.
        """
        self._gpio = gpio
        self.runtime = runtime
        self.scenes: List[SceneTrigger] = list(scenes)
        self.setup_key = setup_key
        self.disable_scene_order = disable_scene_order
        self.stage = 0
        self._last_state: Dict[Button, bool] = {button: False for button in Button}
        self._last_fire_ms: Dict[Button, Optional[float]] = {button: None for button in Button}
        self._pending: Set[asyncio.Task] = set()

    @staticmethod
    def _now_ms() -> float:
        return time.monotonic() * 1000.0

    def _rising_edge(self, button: Button) -> bool:
        pressed = self._gpio().is_button_pressed(button)
        was_pressed = self._last_state[button]
        self._last_state[button] = pressed
        if not pressed or was_pressed:
            return False

        now = self._now_ms()
        last = self._last_fire_ms[button]
        if last is not None and now - last < DEBOUNCE_MS:
            return False
        self._last_fire_ms[button] = now
        return True

    def _fire(self, scene: SceneTrigger, ct: CancellationToken) -> None:
        task = asyncio.create_task(self.trigger(scene, ct), name=f"trigger-{scene.key}")
        self._pending.add(task)
        task.add_done_callback(self._trigger_done)

    def _trigger_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, OperationCancelled):
            logger.error(f"Scene trigger failed: {error}", exc_info=error)

    async def trigger(self, scene: SceneTrigger, ct: Optional[CancellationToken] = None) -> bool:
        """
        Handle a press of a scene's trigger button.

        Returns:
            True if the scene was started.
        """
        if self.disable_scene_order:
            logger.info(f"Scene order disabled, starting {scene.key} regardless of stage")
            started = await self.runtime.start(scene.key, ct)
            if not started:
                logger.info(f"Scene {scene.key} ignored because another scene is running")
            return started

        if self.stage != scene.required_stage:
            logger.info(
                f"Scene {scene.key} pressed at stage {self.stage}, "
                f"requires stage {scene.required_stage}"
            )
            await self._gpio().leds_blinking(WRONG_ORDER_BLINKS, WRONG_ORDER_INTERVAL_MS, ct)
            return False

        logger.info(f"Scene {scene.key} triggered")
        started = await self.runtime.start(scene.key, ct)
        if not started:
            logger.info(f"Scene {scene.key} ignored because another scene is running")
            return False
        self.stage = (scene.required_stage + 1) % len(self.scenes)
        return True

    async def run(self, ct: CancellationToken) -> None:
        """
        Poll buttons until cancelled or the termination combo is pressed.

        Args:
            ct: Token that ends the loop.
        """
        gpio = self._gpio()
        logger.info(f"Panel loop running (scene order disabled: {self.disable_scene_order})")
        gpio.led_on(Led.SYSTEM_GREEN)
        try:
            while not ct.cancelled:
                if all(gpio.is_button_pressed(b) for b in TERMINATION_COMBO):
                    logger.info("Termination combo detected, cancelling current scene")
                    await self.runtime.cancel()
                    break

                for scene in self.scenes:
                    if self._rising_edge(scene.button):
                        self._fire(scene, ct)

                await ct.sleep(POLL_INTERVAL_MS / 1000.0)
        except OperationCancelled:
            logger.info("Panel loop cancellation requested, shutting down")
        finally:
            for task in list(self._pending):
                task.cancel()
            if self._pending:
                await asyncio.gather(*self._pending, return_exceptions=True)
            gpio.led_off(Led.SYSTEM_GREEN)
        logger.info("Panel loop ended")

    async def setup(self, ct: Optional[CancellationToken] = None) -> bool:
        """Start the setup asset."""
        logger.info("Panel is being set up")
        started = await self.runtime.start(self.setup_key, ct)
        if not started:
            logger.warning("Setup scene not started (missing, busy, or invalid)")
        return started

    async def reset(self, ct: Optional[CancellationToken] = None) -> None:
        """Cancel the running scene, switch all LEDs off and return to stage 0."""
        logger.info("Panel is being reset")
        await self.runtime.cancel()
        self._gpio().reset(ct)
        self.stage = 0
