"""
Unit tests for the pin map, mode-selected binding and cancellation.
"""

import asyncio

import pytest

from buttonboard.binding import bind
from buttonboard.cancellation import CancellationSource
from buttonboard.errors import BindingPredicateFailure, OperationCancelled
from buttonboard.pins import PROCESS_LEDS, Button, Led, parse_name, resolve_pin


class TestPins:
    """Test logical name to pin mapping."""

    def test_canonical_pins(self):
        """Test a sample of the hardware table."""
        assert resolve_pin(Led.SYSTEM_GREEN) == 18
        assert resolve_pin(Led.PROCESS_RED_1) == 23
        assert resolve_pin(Button.TOP_CENTER) == 13
        assert resolve_pin(Button.BOTTOM_RIGHT) == 21

    def test_pins_are_unique(self):
        """Test no two roles share a pin."""
        pins = [led.pin for led in Led] + [button.pin for button in Button]
        assert len(pins) == len(set(pins))

    def test_parse_name_variants(self):
        """Test case and underscore insensitive parsing."""
        for name in ("SystemGreen", "system_green", "SYSTEM_GREEN", "systemgreen"):
            assert parse_name(Led, name) is Led.SYSTEM_GREEN
        assert parse_name(Button, "BottomLeft") is Button.BOTTOM_LEFT

    def test_parse_unknown_name(self):
        """Test unknown names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown Led"):
            parse_name(Led, "Purple")

    def test_process_bar(self):
        """Test the process bar has nine LEDs."""
        assert len(PROCESS_LEDS) == 9
        assert Led.SYSTEM_GREEN not in PROCESS_LEDS


class TestBinding:
    """Test once-only real/simulated selection."""

    def test_predicate_runs_once(self):
        """Test predicate evaluated exactly once over many resolutions."""
        calls = []

        def predicate():
            calls.append(1)
            return True

        binding = bind("svc", predicate, lambda: object(), lambda: object())
        assert calls == []

        first = binding()
        for _ in range(10):
            assert binding.resolve() is first
        assert len(calls) == 1
        assert binding.is_simulated is True

    def test_real_not_constructed_when_simulated(self):
        """Test the unselected factory never runs."""

        def real():
            raise AssertionError("real factory must not run")

        binding = bind("gpio", lambda: True, real, lambda: "sim")
        assert binding() == "sim"

    def test_real_selected(self):
        """Test False predicate selects the real factory."""
        binding = bind("gpio", lambda: False, lambda: "real", lambda: "sim")
        assert binding() == "real"
        assert binding.is_simulated is False

    def test_predicate_failure_propagates(self):
        """Test a failing predicate never defaults to a branch."""
        calls = []

        def predicate():
            calls.append(1)
            raise RuntimeError("config unreadable")

        binding = bind("mqtt", predicate, lambda: "real", lambda: "sim")
        with pytest.raises(BindingPredicateFailure) as excinfo:
            binding()
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        with pytest.raises(BindingPredicateFailure):
            binding()
        assert len(calls) == 1

    def test_factory_failure_cached(self):
        """Test a failing factory is not retried."""
        calls = []

        def real():
            calls.append(1)
            raise OSError("no gpio chip")

        binding = bind("gpio", lambda: False, real, lambda: "sim")
        for _ in range(2):
            with pytest.raises(OSError):
                binding()
        assert len(calls) == 1


class TestCancellation:
    """Test cooperative cancellation."""

    def test_sleep_completes(self):
        """Test sleep returns normally without cancel."""

        async def run():
            source = CancellationSource()
            await source.token.sleep(0.01)
            return source.cancelled

        assert asyncio.run(run()) is False

    def test_sleep_wakes_on_cancel(self):
        """Test cancel interrupts a long sleep."""

        async def run():
            source = CancellationSource()
            asyncio.get_running_loop().call_later(0.02, source.cancel)
            loop = asyncio.get_running_loop()
            started = loop.time()
            with pytest.raises(OperationCancelled):
                await source.token.sleep(10)
            return loop.time() - started

        assert asyncio.run(run()) < 1.0

    def test_linked_source(self):
        """Test parent cancel reaches child, not vice versa."""
        parent = CancellationSource()
        child = CancellationSource(parent.token)
        other = CancellationSource(parent.token)

        other.cancel()
        assert not parent.cancelled

        parent.cancel()
        assert child.cancelled
        with pytest.raises(OperationCancelled):
            child.token.raise_if_cancelled()

    def test_child_of_cancelled_parent(self):
        """Test linking to an already cancelled token."""
        parent = CancellationSource()
        parent.cancel()
        assert CancellationSource(parent.token).cancelled

    def test_close_unlinks(self):
        """Test closed child no longer follows the parent."""
        parent = CancellationSource()
        child = CancellationSource(parent.token)
        child.close()
        parent.cancel()
        assert not child.cancelled
