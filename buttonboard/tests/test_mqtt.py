"""
Unit tests for the resilient MQTT client.

The paho client is replaced by a fake that records calls; tests drive the
connect and disconnect callbacks by hand.
"""

import asyncio
import threading

import pytest
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode

from buttonboard.config import MqttConfig
from buttonboard.errors import ArgumentInvalid
from buttonboard.mqtt import ConnectionState, ResilientMqttClient, SimulatedMqttClient

SUCCESS = ReasonCode(PacketTypes.CONNACK, "Success")
NOT_AUTHORIZED = ReasonCode(PacketTypes.CONNACK, "Not authorized")


class FakeMessageInfo:
    def __init__(self, published=True):
        self.published = published

    def is_published(self):
        return self.published


class FakePahoClient:
    """Records the calls the resilient client makes."""

    def __init__(self):
        self.published = []
        self.will = None
        self.credentials = None
        self.reconnect_delay = None
        self.connect_args = None
        self.loop_started = False
        self.loop_stopped = False
        self.disconnected = 0
        self.on_connect = None
        self.on_disconnect = None
        self.on_connect_fail = None

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def will_set(self, topic, payload=None, qos=0, retain=False):
        self.will = (topic, payload, qos, retain)

    def reconnect_delay_set(self, min_delay=1, max_delay=120):
        self.reconnect_delay = (min_delay, max_delay)

    def connect_async(self, host, port=1883, keepalive=60):
        self.connect_args = (host, port, keepalive)

    def loop_start(self):
        self.loop_started = True

    def loop_stop(self):
        self.loop_stopped = True

    def disconnect(self):
        self.disconnected += 1
        if self.on_disconnect is not None:
            self.on_disconnect(self, None, None, SUCCESS, None)

    def publish(self, topic, payload=None, qos=0, retain=False):
        self.published.append((topic, payload, qos, retain))
        return FakeMessageInfo()

    # Test helpers
    def connected(self):
        self.on_connect(self, None, None, SUCCESS, None)

    def dropped(self):
        self.on_disconnect(self, None, None, ReasonCode(PacketTypes.DISCONNECT, "Unspecified error"), None)


def make_client(**overrides):
    fake = FakePahoClient()
    config = MqttConfig(username="board", password="secret", **overrides)
    return ResilientMqttClient(config, client_factory=lambda: fake), fake


def user_messages(fake):
    return [(t, p) for t, p, _, retain in fake.published if not retain]


class TestResilientMqttClient:
    """Test connection handling and offline queuing."""

    def test_start_configures_session(self):
        """Test will, credentials, reconnect delay and non-blocking connect."""
        client, fake = make_client(reconnect_delay_s=5, keepalive_s=30)
        client.start()

        assert fake.will == ("buttonboard/status", "offline", 1, True)
        assert fake.credentials == ("board", "secret")
        assert fake.reconnect_delay == (5, 5)
        assert fake.connect_args == ("localhost", 1883, 30)
        assert fake.loop_started
        assert client.state is ConnectionState.CONNECTING

    def test_publish_while_disconnected_is_queued_in_order(self):
        """Test A, B queued while offline are delivered A, B on connect."""
        client, fake = make_client()
        client.start()

        async def publish_both():
            await client.publish("t/a", "A")
            await client.publish("t/b", "B")

        asyncio.run(publish_both())
        assert fake.published == []
        assert client.pending_count == 2

        fake.connected()

        assert client.state is ConnectionState.CONNECTED
        assert fake.published[0] == ("buttonboard/status", "online", 1, True)
        assert user_messages(fake) == [("t/a", "A"), ("t/b", "B")]
        assert client.pending_count == 0

    def test_publish_before_start_does_not_block(self):
        """Test publish returns immediately without any connection."""
        client, fake = make_client()
        asyncio.run(client.publish("t", "1"))
        assert client.pending_count == 1
        assert client.state is ConnectionState.DISCONNECTED

    def test_publish_when_connected_sends_qos1(self):
        """Test direct send with at-least-once QoS."""
        client, fake = make_client()
        client.start()
        fake.connected()

        asyncio.run(client.publish("t", "1"))
        assert fake.published[-1] == ("t", "1", 1, False)

    def test_reconnect_requeues_and_announces(self):
        """Test disconnect goes back to connecting and reconnect flushes."""
        client, fake = make_client()
        client.start()
        fake.connected()
        fake.dropped()
        assert client.state is ConnectionState.CONNECTING

        asyncio.run(client.publish("t", "late"))
        assert client.pending_count == 1

        fake.connected()
        online = [m for m in fake.published if m[1] == "online"]
        assert len(online) == 2
        assert user_messages(fake) == [("t", "late")]

    def test_refused_connect_keeps_queue(self):
        """Test a refused CONNACK does not flush."""
        client, fake = make_client()
        client.start()
        asyncio.run(client.publish("t", "x"))

        fake.on_connect(fake, None, None, NOT_AUTHORIZED, None)
        assert client.state is ConnectionState.CONNECTING
        assert client.pending_count == 1

    def test_state_listener(self):
        """Test transitions are reported to listeners."""
        client, fake = make_client()
        seen = []
        client.add_listener(seen.append)
        client.start()
        fake.connected()
        fake.dropped()
        assert seen == [
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.CONNECTING,
        ]

    def test_listener_may_read_client(self):
        """Test a listener reading pending_count does not block the connect callback."""
        client, fake = make_client()
        seen = []
        client.add_listener(lambda state: seen.append((state, client.pending_count)))
        client.start()
        asyncio.run(client.publish("t", "x"))

        worker = threading.Thread(target=fake.connected, daemon=True)
        worker.start()
        worker.join(timeout=2)

        assert not worker.is_alive()
        assert seen[-1] == (ConnectionState.CONNECTED, 0)
        assert user_messages(fake) == [("t", "x")]

    def test_invalid_topic(self):
        """Test blank and wildcard topics are malformed input."""
        client, _ = make_client()
        with pytest.raises(ArgumentInvalid):
            asyncio.run(client.publish("", "x"))
        with pytest.raises(ArgumentInvalid):
            asyncio.run(client.publish("a/#", "x"))

    def test_concurrent_publishers(self):
        """Test publishes from several threads are neither lost nor duplicated."""
        client, fake = make_client()
        client.start()

        def publisher(n):
            for i in range(50):
                asyncio.run(client.publish(f"t/{n}", str(i)))

        threads = [threading.Thread(target=publisher, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        fake.connected()
        for t in threads:
            t.join()

        messages = user_messages(fake)
        assert len(messages) == 200
        for n in range(4):
            assert [p for t, p in messages if t == f"t/{n}"] == [str(i) for i in range(50)]

    def test_stop_is_idempotent(self):
        """Test stop disconnects once and can be called twice."""
        client, fake = make_client()
        client.start()
        fake.connected()

        asyncio.run(client.stop(timeout_s=1.0))
        asyncio.run(client.stop(timeout_s=1.0))

        assert fake.disconnected == 1
        assert fake.loop_stopped
        assert client.state is ConnectionState.DISCONNECTED

    def test_stop_logs_disconnect_failure(self, caplog):
        """Test shutdown failures are logged, not raised."""
        client, fake = make_client()
        client.start()

        def broken():
            raise OSError("socket gone")

        fake.disconnect = broken
        asyncio.run(client.stop(timeout_s=0.1))
        assert "MQTT disconnect failed" in caplog.text


class TestSimulatedMqttClient:
    """Test the in-memory messaging client."""

    def test_queue_until_started(self):
        """Test messages published before start are delivered in order."""
        client = SimulatedMqttClient()

        async def run():
            await client.publish("t", "1")
            await client.publish("t", "2")

        asyncio.run(run())
        assert client.get_messages("t") == []
        client.start()
        assert client.get_messages("t") == ["1", "2"]
        assert client.is_connected

    def test_listener_may_read_client(self):
        """Test a listener reading pending_count does not block start."""
        client = SimulatedMqttClient()
        seen = []
        client.add_listener(lambda state: seen.append((state, client.pending_count)))
        asyncio.run(client.publish("t", "1"))

        worker = threading.Thread(target=client.start, daemon=True)
        worker.start()
        worker.join(timeout=2)

        assert not worker.is_alive()
        assert seen == [(ConnectionState.CONNECTED, 0)]
