"""
Router for ``mqtt.*`` actions.
"""

import json
import logging
from typing import Callable, Dict

from buttonboard.actions.router import ActionRouter, Handler
from buttonboard.cancellation import CancellationToken
from buttonboard.errors import ArgumentInvalid
from buttonboard.model import ScenarioStep
from buttonboard.mqtt import MessagingClient
from buttonboard.step_args import get_node, get_string

logger = logging.getLogger(__name__)

DEFAULT_PAYLOAD = "ON"


def payload_text(step: ScenarioStep) -> str:
    """
    Payload of a publish step.

    Objects and arrays are sent as compact JSON, scalars as their string
    form; a missing payload defaults to ``ON``.
    """
    node = get_node(step.args, "payload")
    if node is not None:
        return json.dumps(node, separators=(",", ":"), ensure_ascii=False)
    return get_string(step.args, "payload", DEFAULT_PAYLOAD)


class MqttActionRouter(ActionRouter):
    """Publishes step payloads through the messaging client."""

    domain = "mqtt"

    def __init__(self, mqtt: Callable[[], MessagingClient]):
        super().__init__()
        self._mqtt = mqtt

    def handlers(self) -> Dict[str, Handler]:
        return {"publish": self._publish, "pub": self._publish}

    async def _publish(self, step: ScenarioStep, ct: CancellationToken) -> None:
        topic = get_string(step.args, "topic")
        if not topic.strip():
            raise ArgumentInvalid("topic", f"{step.action.strip().lower()} requires 'topic'")
        payload = payload_text(step)
        ct.raise_if_cancelled()
        logger.info(f"mqtt.publish: {topic} (payload {len(payload)} chars)")
        await self._mqtt().publish(topic, payload, ct)
