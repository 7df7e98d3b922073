"""
Resilient MQTT publishing client.

The real client wraps paho-mqtt: it connects in the background, reconnects
forever with a fixed delay, announces itself with a retained ``online``
message after every connect and leaves a retained ``offline`` last will.
Publishes never block on the network: while the session is not connected
they are queued and flushed in order on the next successful connect.
"""

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

import paho.mqtt.client as paho

from buttonboard.cancellation import CancellationToken
from buttonboard.config import MqttConfig
from buttonboard.errors import ArgumentInvalid

logger = logging.getLogger(__name__)

QOS_AT_LEAST_ONCE = 1
ONLINE_PAYLOAD = "online"
OFFLINE_PAYLOAD = "offline"


class ConnectionState(Enum):
    """Messaging session state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


StateListener = Callable[[ConnectionState], None]


def validate_topic(topic: str) -> str:
    """
    Check a publish topic.

    Raises:
        ArgumentInvalid: If the topic is blank or contains a wildcard.
    """
    if topic is None or not topic.strip():
        raise ArgumentInvalid("topic", "must not be empty")
    if "+" in topic or "#" in topic:
        raise ArgumentInvalid("topic", f"wildcards are not allowed in publish topics: {topic}")
    return topic


class MessagingClient(ABC):
    """Publish-only messaging session."""

    def __init__(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked on every state transition."""
        self._listeners.append(listener)

    def _swap_state(self, state: ConnectionState) -> bool:
        # Callers may hold their lock here; listeners run later via _notify.
        if state is self._state:
            return False
        self._state = state
        return True

    def _notify(self, state: ConnectionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning(f"MQTT state listener failed: {e}")

    def _set_state(self, state: ConnectionState) -> None:
        if self._swap_state(state):
            self._notify(state)

    @abstractmethod
    def start(self) -> None:
        """Begin connecting without waiting for the first connection."""

    @abstractmethod
    async def publish(
        self, topic: str, payload: str, ct: Optional[CancellationToken] = None
    ) -> None:
        """Send now if connected, otherwise queue for the next connection."""

    @abstractmethod
    async def stop(self, timeout_s: float = 5.0) -> None:
        """Disconnect gracefully. Safe to call more than once."""

    @property
    @abstractmethod
    def pending_count(self) -> int:
        """Messages queued and not yet handed to the transport."""


class ResilientMqttClient(MessagingClient):
    """
    paho-mqtt session with offline queuing.

    The paho network loop runs on its own thread; the queue and the state are
    guarded by a lock shared by ``publish`` and the connect callback so a
    message is either sent directly or flushed from the queue, never both.
    """

    def __init__(
        self,
        config: MqttConfig,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize client.

        Args:
            config: Broker connection settings.
            client_factory: Returns a paho-compatible client (tests inject a fake).
        """
        super().__init__()
        self.config = config
        self._client_factory = client_factory or self._create_paho_client
        self._client: Optional[Any] = None
        self._lock = threading.Lock()
        self._queue: Deque[Tuple[str, str]] = deque()
        self._in_flight: List[Any] = []
        self._started = False
        self._stopping = False
        self._stopped = False

    def _create_paho_client(self) -> paho.Client:
        return paho.Client(
            callback_api_version=paho.CallbackAPIVersion.VERSION2,
            client_id=self.config.client_id,
            clean_session=True,
            protocol=paho.MQTTv311,
        )

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    def start(self) -> None:
        if self._started:
            return
        self._started = True

        client = self._client_factory()
        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password or None)
        client.will_set(self.config.will_topic, OFFLINE_PAYLOAD, qos=QOS_AT_LEAST_ONCE, retain=True)
        delay = max(1, round(self.config.reconnect_delay_s))
        client.reconnect_delay_set(min_delay=delay, max_delay=delay)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_connect_fail = self._on_connect_fail
        self._client = client

        self._set_state(ConnectionState.CONNECTING)
        client.connect_async(self.config.server, self.config.port, keepalive=self.config.keepalive_s)
        client.loop_start()
        logger.info(
            f"MQTT client started: {self.config.server}:{self.config.port} "
            f"as '{self.config.client_id}'"
        )

    def _send(self, topic: str, payload: str, retain: bool = False) -> None:
        info = self._client.publish(topic, payload, qos=QOS_AT_LEAST_ONCE, retain=retain)
        self._in_flight = [i for i in self._in_flight if not i.is_published()]
        self._in_flight.append(info)

    async def publish(
        self, topic: str, payload: str, ct: Optional[CancellationToken] = None
    ) -> None:
        validate_topic(topic)
        if ct is not None:
            ct.raise_if_cancelled()
        payload = "" if payload is None else payload

        with self._lock:
            if self._state is ConnectionState.CONNECTED and not self._queue:
                self._send(topic, payload)
                logger.debug(f"MQTT published {topic} = {payload}")
                return
            self._queue.append((topic, payload))
            queued = len(self._queue)
        logger.info(f"MQTT not connected, queued {topic} ({queued} pending)")

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if getattr(reason_code, "is_failure", False):
            logger.warning(f"MQTT connect refused: {reason_code}")
            return

        with self._lock:
            changed = self._swap_state(ConnectionState.CONNECTED)
            self._send(self.config.online_topic, ONLINE_PAYLOAD, retain=True)
            flushed = 0
            while self._queue:
                topic, payload = self._queue.popleft()
                self._send(topic, payload)
                flushed += 1
        if changed:
            self._notify(ConnectionState.CONNECTED)
        logger.info(f"MQTT connected to {self.config.server}:{self.config.port}")
        if flushed:
            logger.info(f"MQTT flushed {flushed} queued message(s)")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        state = ConnectionState.DISCONNECTED if self._stopping else ConnectionState.CONNECTING
        with self._lock:
            changed = self._swap_state(state)
        if changed:
            self._notify(state)
        if self._stopping:
            logger.info("MQTT disconnected")
        else:
            logger.warning(
                f"MQTT connection lost ({reason_code}), retrying every "
                f"{self.config.reconnect_delay_s:g}s"
            )

    def _on_connect_fail(self, client, userdata) -> None:
        logger.warning(
            f"MQTT connect to {self.config.server}:{self.config.port} failed, "
            f"retrying in {self.config.reconnect_delay_s:g}s"
        )

    def _drained(self) -> bool:
        with self._lock:
            if self._queue:
                return False
            return all(info.is_published() for info in self._in_flight)

    async def stop(self, timeout_s: float = 5.0) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._client is None:
            self._set_state(ConnectionState.DISCONNECTED)
            return

        deadline = time.monotonic() + timeout_s
        while self.is_connected and not self._drained() and time.monotonic() < deadline:
            await asyncio.sleep(0.05)
        if self.pending_count:
            logger.warning(f"MQTT stopping with {self.pending_count} undelivered message(s)")

        self._stopping = True
        try:
            self._client.disconnect()
        except Exception as e:
            logger.warning(f"MQTT disconnect failed: {e}")
        try:
            await asyncio.wait_for(asyncio.to_thread(self._client.loop_stop), timeout=timeout_s)
        except Exception as e:
            logger.warning(f"MQTT network loop did not stop cleanly: {e}")
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("MQTT client stopped")


class SimulatedMqttClient(MessagingClient):
    """
    In-memory messaging client.

    Messages published before ``start`` are held and delivered on start, the
    same contract the real client offers while disconnected.
    """

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._queue: Deque[Tuple[str, str]] = deque()
        self.messages: Dict[str, List[str]] = {}

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    def _deliver(self, topic: str, payload: str) -> None:
        self.messages.setdefault(topic, []).append(payload)
        logger.info(f"[sim] MQTT {topic} = {payload}")

    def start(self) -> None:
        with self._lock:
            changed = self._swap_state(ConnectionState.CONNECTED)
            while self._queue:
                self._deliver(*self._queue.popleft())
        if changed:
            self._notify(ConnectionState.CONNECTED)

    async def publish(
        self, topic: str, payload: str, ct: Optional[CancellationToken] = None
    ) -> None:
        validate_topic(topic)
        if ct is not None:
            ct.raise_if_cancelled()
        payload = "" if payload is None else payload
        with self._lock:
            if self.is_connected:
                self._deliver(topic, payload)
            else:
                self._queue.append((topic, payload))

    def get_messages(self, topic: str) -> List[str]:
        """Payloads delivered to ``topic`` in order."""
        return list(self.messages.get(topic, []))

    async def stop(self, timeout_s: float = 5.0) -> None:
        self._set_state(ConnectionState.DISCONNECTED)
