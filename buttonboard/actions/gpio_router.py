"""
Router for ``gpio.*`` actions.
"""

import logging
from typing import Callable, Dict

from buttonboard.actions.router import ActionRouter, Handler
from buttonboard.cancellation import CancellationToken
from buttonboard.errors import ArgumentInvalid
from buttonboard.gpio import GpioController
from buttonboard.model import ScenarioStep
from buttonboard.pins import Led, parse_name
from buttonboard.step_args import get_int, get_string

logger = logging.getLogger(__name__)

DEFAULT_BLINK_COUNT = 3
DEFAULT_BLINK_INTERVAL_MS = 100


class GpioActionRouter(ActionRouter):
    """LED on/off, process-bar blink and reset."""

    domain = "gpio"

    def __init__(self, gpio: Callable[[], GpioController]):
        """
        Args:
            gpio: Provider of the bound GPIO controller.
        """
        super().__init__()
        self._gpio = gpio

    def handlers(self) -> Dict[str, Handler]:
        return {
            "on": self._on,
            "off": self._off,
            "blink": self._blink,
            "reset": self._reset,
        }

    @staticmethod
    def _led(step: ScenarioStep) -> Led:
        name = get_string(step.args, "led")
        if not name.strip():
            raise ArgumentInvalid("led", f"{step.action.strip().lower()} requires 'led'")
        try:
            return parse_name(Led, name)
        except ValueError as e:
            raise ArgumentInvalid("led", str(e)) from e

    async def _on(self, step: ScenarioStep, ct: CancellationToken) -> None:
        led = self._led(step)
        logger.info(f"gpio.on: setting LED {led.name} ON")
        self._gpio().led_on(led, ct)

    async def _off(self, step: ScenarioStep, ct: CancellationToken) -> None:
        led = self._led(step)
        logger.info(f"gpio.off: setting LED {led.name} OFF")
        self._gpio().led_off(led, ct)

    async def _blink(self, step: ScenarioStep, ct: CancellationToken) -> None:
        count = get_int(step.args, "count", DEFAULT_BLINK_COUNT)
        interval = get_int(step.args, "intervalMs", DEFAULT_BLINK_INTERVAL_MS)
        logger.info(f"gpio.blink: count={count} interval={interval}ms")
        await self._gpio().leds_blinking(count, interval, ct)

    async def _reset(self, step: ScenarioStep, ct: CancellationToken) -> None:
        logger.info("gpio.reset: all LEDs off")
        self._gpio().reset(ct)
