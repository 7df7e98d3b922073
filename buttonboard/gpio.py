"""
GPIO controller for the button board.

Drives the LEDs and reads the push buttons through gpiozero. The simulated
controller keeps the same surface in memory so scenarios can run on a
development machine; it also lets tests and the panel TUI press buttons.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from gpiozero import LED as GpioLed
from gpiozero import Button as GpioButton

from buttonboard.cancellation import CancellationToken
from buttonboard.pins import PROCESS_LEDS, Button, Led

logger = logging.getLogger(__name__)


class GpioController(ABC):
    """LED and button access used by routers and the panel loop."""

    @abstractmethod
    def initialize(self) -> None:
        """Claim the pins. Must be called before any other method."""

    @abstractmethod
    def led_on(self, led: Led, ct: Optional[CancellationToken] = None) -> None:
        """Switch an LED on."""

    @abstractmethod
    def led_off(self, led: Led, ct: Optional[CancellationToken] = None) -> None:
        """Switch an LED off."""

    @abstractmethod
    def is_button_pressed(self, button: Button) -> bool:
        """Current (undebounced) button level."""

    @abstractmethod
    def close(self) -> None:
        """Switch everything off and release the pins."""

    def reset(self, ct: Optional[CancellationToken] = None) -> None:
        """Switch all LEDs off."""
        for led in Led:
            if ct is not None:
                ct.raise_if_cancelled()
            self.led_off(led)

    async def leds_blinking(
        self,
        repetitions: int = 3,
        interval_ms: int = 100,
        ct: Optional[CancellationToken] = None,
    ) -> None:
        """
        Blink the process-indicator bar.

        Each repetition switches the nine process LEDs on for ``interval_ms``
        and off for ``interval_ms``.

        Args:
            repetitions: Number of on/off cycles.
            interval_ms: Half-period in milliseconds.
            ct: Cancellation token; a cancel stops the loop mid-cycle.

        Raises:
            OperationCancelled: If the token is cancelled during the loop.
        """
        token = ct if ct is not None else CancellationToken()
        delay = max(interval_ms, 0) / 1000.0
        for _ in range(max(repetitions, 0)):
            for led in PROCESS_LEDS:
                self.led_on(led)
            await token.sleep(delay)
            for led in PROCESS_LEDS:
                self.led_off(led)
            await token.sleep(delay)

    def __enter__(self) -> "GpioController":
        """Context manager entry."""
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


class ButtonboardGpio(GpioController):
    """
    gpiozero-backed controller.

    Buttons are wired active-high with external pull-downs.
    """

    def __init__(self, pin_factory=None):
        """
        Initialize controller.

        Args:
            pin_factory: gpiozero pin factory (None for the default, e.g. lgpio
                on a Raspberry Pi 5; MockFactory in tests).
        """
        self._pin_factory = pin_factory
        self._leds: Dict[Led, GpioLed] = {}
        self._buttons: Dict[Button, GpioButton] = {}

    @property
    def initialized(self) -> bool:
        return bool(self._leds)

    def initialize(self) -> None:
        if self.initialized:
            return
        for led in Led:
            self._leds[led] = GpioLed(led.pin, initial_value=False, pin_factory=self._pin_factory)
        for button in Button:
            self._buttons[button] = GpioButton(
                button.pin, pull_up=False, pin_factory=self._pin_factory
            )
        logger.info(f"GPIO initialized: {len(self._leds)} LEDs, {len(self._buttons)} buttons")

    def _led(self, led: Led) -> GpioLed:
        if not self.initialized:
            raise RuntimeError("GPIO controller not initialized")
        return self._leds[led]

    def led_on(self, led: Led, ct: Optional[CancellationToken] = None) -> None:
        if ct is not None:
            ct.raise_if_cancelled()
        self._led(led).on()

    def led_off(self, led: Led, ct: Optional[CancellationToken] = None) -> None:
        if ct is not None:
            ct.raise_if_cancelled()
        self._led(led).off()

    def is_button_pressed(self, button: Button) -> bool:
        if not self.initialized:
            raise RuntimeError("GPIO controller not initialized")
        return self._buttons[button].is_pressed

    def close(self) -> None:
        if not self.initialized:
            return
        for device in self._leds.values():
            device.off()
            device.close()
        for device in self._buttons.values():
            device.close()
        self._leds.clear()
        self._buttons.clear()
        logger.info("GPIO released")


class SimulatedGpio(GpioController):
    """In-memory controller with externally pressable buttons."""

    def __init__(self) -> None:
        self._initialized = False
        self._leds: Dict[Led, bool] = {led: False for led in Led}
        self._buttons: Dict[Button, bool] = {button: False for button in Button}

    def initialize(self) -> None:
        self._initialized = True
        logger.info("Simulated GPIO initialized")

    def _check(self) -> None:
        if not self._initialized:
            raise RuntimeError("GPIO controller not initialized")

    def led_on(self, led: Led, ct: Optional[CancellationToken] = None) -> None:
        self._check()
        if ct is not None:
            ct.raise_if_cancelled()
        self._leds[led] = True
        logger.debug(f"[sim] LED {led.name} on")

    def led_off(self, led: Led, ct: Optional[CancellationToken] = None) -> None:
        self._check()
        if ct is not None:
            ct.raise_if_cancelled()
        self._leds[led] = False
        logger.debug(f"[sim] LED {led.name} off")

    def led_state(self, led: Led) -> bool:
        """Whether the simulated LED is lit."""
        return self._leds[led]

    def press(self, button: Button, pressed: bool = True) -> None:
        """Set the simulated level of a button."""
        self._buttons[button] = pressed

    def is_button_pressed(self, button: Button) -> bool:
        self._check()
        return self._buttons[button]

    def close(self) -> None:
        if not self._initialized:
            return
        for led in Led:
            self._leds[led] = False
        self._initialized = False
        logger.info("Simulated GPIO closed")
