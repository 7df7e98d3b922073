"""
Unit tests for action key parsing, router registry, executor and routers.
"""

import asyncio
import logging

import pytest

from buttonboard.actions import (
    ActionExecutor,
    ActionRouter,
    ActionRouterRegistry,
    AudioActionRouter,
    GpioActionRouter,
    MqttActionRouter,
    VideoActionRouter,
    parse_action_key,
)
from buttonboard.actions.keys import ActionKey
from buttonboard.cancellation import CancellationSource
from buttonboard.errors import ArgumentInvalid, OperationCancelled, TransportFailure
from buttonboard.gpio import SimulatedGpio
from buttonboard.lyrion import SimulatedLyrionClient
from buttonboard.model import ScenarioStep
from buttonboard.mqtt import SimulatedMqttClient
from buttonboard.pins import PROCESS_LEDS, Led
from buttonboard.vlc import SimulatedVlcClient, VlcPlayerCommand


class RecordingRouter(ActionRouter):
    """Router that records the steps it handles."""

    domain = "rec"

    def __init__(self, fail_on=None):
        super().__init__()
        self.seen = []
        self.fail_on = fail_on

    def handlers(self):
        async def go(step, ct):
            if step.args and step.args.get("id") == self.fail_on:
                raise TransportFailure("rec", "boom")
            self.seen.append(step.args.get("id") if step.args else None)

        return {"go": go}


class Board:
    """Simulated capabilities wired to all four routers."""

    def __init__(self):
        self.gpio = SimulatedGpio()
        self.gpio.initialize()
        self.mqtt = SimulatedMqttClient()
        self.vlc = SimulatedVlcClient()
        self.lyrion = SimulatedLyrionClient()
        self.registry = ActionRouterRegistry(
            [
                GpioActionRouter(lambda: self.gpio),
                MqttActionRouter(lambda: self.mqtt),
                AudioActionRouter(lambda: self.lyrion),
                VideoActionRouter(lambda: self.vlc, ["Mediaplayer1", "Beamer"]),
            ]
        )
        self.executor = ActionExecutor(self.registry)

    def run(self, *steps):
        async def go():
            return await self.executor.execute_all(steps, CancellationSource().token)

        return asyncio.run(go())


def step(action, **args):
    return ScenarioStep(action=action, args=args or None)


class TestActionKey:
    """Test action key normalization."""

    def test_case_and_whitespace_insensitive(self):
        """Test '  GPIO.Blink ' and 'gpio.blink' parse identically."""
        assert parse_action_key("  GPIO.Blink ") == parse_action_key("gpio.blink")
        assert parse_action_key("gpio.blink") == ActionKey("gpio", "blink")

    def test_idempotent(self):
        """Test parsing the string form again yields the same key."""
        key = parse_action_key(" Mqtt.Publish")
        assert parse_action_key(str(key)) == key

    def test_domain_only(self):
        """Test a bare domain parses with an empty verb."""
        assert parse_action_key("gpio") == ActionKey("gpio", "")

    @pytest.mark.parametrize("raw", [None, "", "   ", "gpio.", ".on", "a.b.c", "gpio on"])
    def test_malformed(self, raw):
        """Test blank and malformed keys do not parse."""
        assert parse_action_key(raw) is None


class TestRegistry:
    """Test domain router registry."""

    def test_resolve(self):
        """Test lookup is case-insensitive and unknown yields None."""
        router = RecordingRouter()
        registry = ActionRouterRegistry([router])
        assert registry.try_resolve("REC") is router
        assert registry.try_resolve("nope") is None
        assert "rec" in registry

    def test_duplicate_domain(self):
        """Test two routers for one domain are rejected."""
        with pytest.raises(ValueError, match="Duplicate"):
            ActionRouterRegistry([RecordingRouter(), RecordingRouter()])


class TestExecutor:
    """Test dispatch and the tolerant-continue policy."""

    def test_unknown_actions_are_skipped(self, caplog):
        """Test unknown domains and malformed keys never raise."""
        router = RecordingRouter()
        executor = ActionExecutor(ActionRouterRegistry([router]))
        steps = [
            ScenarioStep("rec.go", {"id": 1}),
            ScenarioStep("nonsense.verb"),
            ScenarioStep("   "),
            ScenarioStep("rec.unknown", {"id": 99}),
            ScenarioStep(" REC.GO ", {"id": 2}),
        ]

        with caplog.at_level(logging.WARNING):
            handled = asyncio.run(executor.execute_all(steps))

        assert router.seen == [1, 2]
        assert handled == 2
        assert "Unknown action nonsense.verb" in caplog.text
        assert "Unknown action (null/empty)" in caplog.text
        assert "Unknown action rec.unknown" in caplog.text

    def test_unknown_verb_not_handled(self):
        """Test a known domain with an unknown verb reports the step as skipped."""
        router = RecordingRouter()
        executor = ActionExecutor(ActionRouterRegistry([router]))

        assert asyncio.run(executor.execute(ScenarioStep("rec.unknown", {"id": 5}))) is False
        assert asyncio.run(executor.execute(ScenarioStep("rec.go", {"id": 6}))) is True
        assert router.seen == [6]

    def test_router_failure_propagates(self):
        """Test a router failure is never swallowed."""
        router = RecordingRouter(fail_on=2)
        executor = ActionExecutor(ActionRouterRegistry([router]))
        steps = [ScenarioStep("rec.go", {"id": i}) for i in (1, 2, 3)]

        with pytest.raises(TransportFailure):
            asyncio.run(executor.execute_all(steps))
        assert router.seen == [1]

    def test_cancelled_token(self):
        """Test a cancelled run stops before dispatch."""
        router = RecordingRouter()
        executor = ActionExecutor(ActionRouterRegistry([router]))
        source = CancellationSource()
        source.cancel()

        with pytest.raises(OperationCancelled):
            asyncio.run(executor.execute(ScenarioStep("rec.go", {"id": 1}), source.token))
        assert router.seen == []

    def test_end_to_end_three_steps(self):
        """Test gpio.on, mqtt.publish and an unknown action in one scenario."""
        board = Board()
        handled = board.run(
            step("gpio.on", led="SystemGreen"),
            step("mqtt.publish", topic="x", payload="1"),
            step("nonsense.verb"),
        )

        assert handled == 2
        assert board.gpio.led_state(Led.SYSTEM_GREEN) is True
        # Not started yet: the publish is queued, then delivered on start
        assert board.mqtt.pending_count == 1
        board.mqtt.start()
        assert board.mqtt.get_messages("x") == ["1"]


class TestGpioRouter:
    """Test gpio.* verbs."""

    def test_on_off(self):
        """Test LED switching by logical name."""
        board = Board()
        board.run(step("gpio.on", led="process_red_1"))
        assert board.gpio.led_state(Led.PROCESS_RED_1)
        board.run(step("gpio.off", led="ProcessRed1"))
        assert not board.gpio.led_state(Led.PROCESS_RED_1)

    def test_led_required(self):
        """Test missing or unknown LED raises ArgumentInvalid."""
        board = Board()
        with pytest.raises(ArgumentInvalid):
            board.run(step("gpio.on"))
        with pytest.raises(ArgumentInvalid):
            board.run(step("gpio.off", led="Purple"))

    def test_blink_leaves_bar_off(self):
        """Test blink ends with the process bar dark."""
        board = Board()
        board.run(step("gpio.blink", count=2, intervalMs=1))
        assert not any(board.gpio.led_state(led) for led in PROCESS_LEDS)

    def test_reset(self):
        """Test reset switches every LED off."""
        board = Board()
        board.run(step("gpio.on", led="SystemYellow"), step("gpio.reset"))
        assert not any(board.gpio.led_state(led) for led in Led)


class TestMqttRouter:
    """Test mqtt.* verbs."""

    def test_payload_forms(self):
        """Test string, number, object and default payloads."""
        board = Board()
        board.mqtt.start()
        board.run(
            step("mqtt.publish", topic="t", payload="hello"),
            step("mqtt.pub", topic="t", payload=5),
            step("mqtt.pub", topic="t", payload={"state": "ON", "level": [1, 2]}),
            step("mqtt.pub", topic="t"),
        )
        assert board.mqtt.get_messages("t") == [
            "hello",
            "5",
            '{"state":"ON","level":[1,2]}',
            "ON",
        ]

    def test_topic_required(self):
        """Test blank topic is rejected before publishing."""
        board = Board()
        with pytest.raises(ArgumentInvalid, match="topic"):
            board.run(step("mqtt.publish", topic="  ", payload="x"))
        assert board.mqtt.pending_count == 0


class TestAudioRouter:
    """Test audio.* verbs."""

    def test_commands(self):
        """Test play, pause and volume reach the Lyrion client."""
        board = Board()
        board.run(
            step("audio.play", url="http://host/a b.mp3"),
            step("audio.pause", player="Kitchen", paused="false"),
            step("audio.volume", volume="40"),
        )
        assert board.lyrion.commands == [
            "Player1 playlist play http%3A%2F%2Fhost%2Fa%20b.mp3",
            "Kitchen pause 0",
            "Player1 mixer volume 40",
        ]

    def test_volume_validation(self):
        """Test volume must be an integer within 0..100."""
        board = Board()
        with pytest.raises(ArgumentInvalid):
            board.run(step("audio.volume", volume=101))
        with pytest.raises(ArgumentInvalid):
            board.run(step("audio.volume", volume="loud"))
        with pytest.raises(ArgumentInvalid):
            board.run(step("audio.play"))


class TestVideoRouter:
    """Test video.* verbs."""

    def test_commands(self):
        """Test default and explicit players."""
        board = Board()
        board.run(step("video.next"), step("video.pause", player="beamer"), step("video.stop"))
        assert board.vlc.sent == [
            ("Mediaplayer1", VlcPlayerCommand.NEXT),
            ("Beamer", VlcPlayerCommand.PAUSE),
            ("Mediaplayer1", VlcPlayerCommand.STOP),
        ]

    def test_unknown_player(self):
        """Test unconfigured player raises ArgumentInvalid."""
        board = Board()
        with pytest.raises(ArgumentInvalid, match="player"):
            board.run(step("video.next", player="Tv2"))
        assert board.vlc.sent == []
