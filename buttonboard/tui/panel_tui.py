"""
Simulated button board using Textual.

Shows every LED of the board, the messaging state and the MQTT traffic, and
turns the four push buttons into clickable widgets. Always runs in simulated
mode.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Grid, Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Label, Log, Static

from buttonboard.cancellation import CancellationSource
from buttonboard.config import OperationMode, get_config_path, load_config
from buttonboard.gpio import SimulatedGpio
from buttonboard.mqtt import ConnectionState, SimulatedMqttClient
from buttonboard.pins import PROCESS_LEDS, Button as BoardButton
from buttonboard.pins import Led
from buttonboard.services import Services, build_services

logger = logging.getLogger(__name__)

PRESS_DURATION_S = 0.2
REFRESH_INTERVAL_S = 0.1


class LedLamp(Static):
    """Single LED indicator."""

    DEFAULT_CSS = """
    LedLamp {
        width: 1fr;
        height: 3;
        content-align: center middle;
        border: round $panel;
    }

    LedLamp.lit {
        text-style: bold;
        border: round $success;
    }
    """

    def __init__(self, led: Led, **kwargs):
        super().__init__(**kwargs)
        self.led = led
        self.lit = False
        self._painted = False

    def show(self, lit: bool) -> None:
        """Update the lamp if its state changed."""
        if lit == self.lit and self._painted:
            return
        self.lit = lit
        self._painted = True
        self.set_class(lit, "lit")
        marker = "●" if lit else "○"
        self.update(f"{marker} {self.led.name.replace('_', ' ').title()}")


class PanelApp(App):
    """Simulated button board."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #process_bar {
        grid-size: 3 3;
        height: 11;
        margin: 0 1;
        border: solid yellow;
    }

    #button_row, #lamp_row, #system_row {
        height: auto;
        margin: 0 1;
    }

    #button_row Button {
        width: 1fr;
    }

    #status {
        height: 1;
        margin: 0 1;
    }

    #traffic {
        height: 1fr;
        margin: 0 1;
        border: solid magenta;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", priority=True),
        Binding("s", "setup", "Setup", priority=True),
        Binding("r", "reset", "Reset", priority=True),
    ]

    def __init__(self, services: Services):
        super().__init__()
        self.services = services
        self.gpio: SimulatedGpio = services.gpio()
        self.mqtt: SimulatedMqttClient = services.mqtt()
        self.lamps: Dict[Led, LedLamp] = {}
        self._source = CancellationSource()
        self._loop_task: Optional[asyncio.Task] = None
        self._seen: Dict[str, int] = {}

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            with Grid(id="process_bar"):
                for led in PROCESS_LEDS:
                    yield self._lamp(led)
            with Horizontal(id="lamp_row"):
                for led in (
                    Led.BUTTON_TOP_CENTER,
                    Led.BUTTON_BOTTOM_LEFT,
                    Led.BUTTON_BOTTOM_CENTER,
                    Led.BUTTON_BOTTOM_RIGHT,
                ):
                    yield self._lamp(led)
            with Horizontal(id="button_row"):
                for button in BoardButton:
                    yield Button(button.name.replace("_", " ").title(), id=f"btn_{button.name}")
            with Horizontal(id="system_row"):
                yield self._lamp(Led.SYSTEM_YELLOW)
                yield self._lamp(Led.SYSTEM_GREEN)
            yield Label("", id="status")
            yield Log(id="traffic")
        yield Footer()

    def _lamp(self, led: Led) -> LedLamp:
        lamp = LedLamp(led, id=f"led_{led.name}")
        self.lamps[led] = lamp
        return lamp

    async def on_mount(self) -> None:
        self.title = "Buttonboard"
        self.sub_title = "simulated panel"
        self.services.start()
        await self.services.panel.reset(self._source.token)
        self._loop_task = asyncio.create_task(self.services.panel.run(self._source.token))
        self.set_interval(REFRESH_INTERVAL_S, self.refresh_board)
        self.refresh_board()

    def refresh_board(self) -> None:
        """Copy simulated LED and messaging state into the widgets."""
        for led, lamp in self.lamps.items():
            lamp.show(self.gpio.led_state(led))

        runtime = self.services.runtime
        scene = runtime.current_key or "-"
        state = self.mqtt.state
        mqtt_text = "connected" if state is ConnectionState.CONNECTED else state.value
        self.query_one("#status", Label).update(
            f"Scene: {scene}  |  Last run: {runtime.state.value}  |  "
            f"Stage: {self.services.panel.stage}  |  MQTT: {mqtt_text}"
        )

        traffic = self.query_one("#traffic", Log)
        for topic, payloads in self.mqtt.messages.items():
            seen = self._seen.get(topic, 0)
            for payload in payloads[seen:]:
                traffic.write_line(f"{topic} = {payload}")
            self._seen[topic] = len(payloads)

        if self._loop_task is not None and self._loop_task.done():
            self.exit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Hold the matching board button for a moment."""
        name = (event.button.id or "").removeprefix("btn_")
        button = BoardButton[name]
        self.gpio.press(button, True)
        self.set_timer(PRESS_DURATION_S, lambda: self.gpio.press(button, False))

    async def action_setup(self) -> None:
        await self.services.panel.setup(self._source.token)

    async def action_reset(self) -> None:
        await self.services.panel.reset(self._source.token)

    async def on_unmount(self) -> None:
        self._source.cancel()
        if self._loop_task is not None:
            await asyncio.gather(self._loop_task, return_exceptions=True)
        await self.services.close()


def main(argv: Optional[List[str]] = None) -> None:
    """
    Launch the simulated panel.

    Entry point for the buttonboard-panel command.
    """
    import argparse

    from buttonboard.app import setup_logging

    parser = argparse.ArgumentParser(description="Simulated button board")
    parser.add_argument("--config", type=Path, default=None, help="Configuration file (TOML)")
    args = parser.parse_args(argv)

    config = load_config(args.config or get_config_path())
    config.application.operation_mode = OperationMode.SIMULATED

    # File only: console output would corrupt the TUI
    log_file = setup_logging(config.logging, console=False)
    logger.info(f"Simulated panel starting, log file: {log_file}")

    try:
        PanelApp(build_services(config)).run()
    except Exception as e:
        logger.critical(f"TUI crashed: {e}", exc_info=True)
        raise
    finally:
        logger.info("Simulated panel exiting")


if __name__ == "__main__":
    main()
