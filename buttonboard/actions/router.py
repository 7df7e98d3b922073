"""
Base class for per-domain action routers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, FrozenSet, Optional

from buttonboard.actions.keys import normalize_action, parse_action_key
from buttonboard.cancellation import CancellationToken
from buttonboard.model import ScenarioStep

logger = logging.getLogger(__name__)

Handler = Callable[[ScenarioStep, CancellationToken], Awaitable[None]]


class ActionRouter(ABC):
    """
    Interprets the verbs of one action domain.

    Subclasses set ``domain`` and return their verb table from
    ``handlers()``. A verb missing from the table is logged and skipped.
    """

    domain: str = ""

    def __init__(self) -> None:
        self._handlers: Optional[Dict[str, Handler]] = None

    @abstractmethod
    def handlers(self) -> Dict[str, Handler]:
        """Verb to coroutine handler."""

    @property
    def verbs(self) -> FrozenSet[str]:
        """Verbs this router understands."""
        return frozenset(self._table())

    def _table(self) -> Dict[str, Handler]:
        if self._handlers is None:
            self._handlers = self.handlers()
        return self._handlers

    def can_handle(self, verb: str) -> bool:
        return verb in self._table()

    async def execute(self, step: ScenarioStep, ct: CancellationToken) -> bool:
        """
        Execute one step of this domain.

        Args:
            step: Step whose action starts with this router's domain.
            ct: Cancellation token for the scenario run.

        Returns:
            True if a handler ran, False if the verb is unknown.

        Raises:
            ArgumentInvalid: If a required argument is missing or invalid.
            TransportFailure: If a non-queuing transport fails.
            OperationCancelled: If the run is cancelled.
        """
        key = parse_action_key(step.action)
        verb = key.verb if key is not None else ""
        handler = self._table().get(verb)
        if handler is None:
            logger.warning(f"Unknown action {normalize_action(step.action)}")
            return False
        await handler(step, ct)
        return True
