"""
Action executor.

Parses a step's action key, resolves the domain router and awaits it.
Blank, malformed or unregistered actions are logged and skipped; failures
reported by a router are never swallowed.
"""

import logging
from typing import Iterable, Optional

from buttonboard.actions.keys import normalize_action, parse_action_key
from buttonboard.actions.registry import ActionRouterRegistry
from buttonboard.cancellation import CancellationToken
from buttonboard.model import ScenarioStep

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Dispatches scenario steps to domain routers."""

    def __init__(self, registry: ActionRouterRegistry):
        self.registry = registry

    async def execute(self, step: ScenarioStep, ct: Optional[CancellationToken] = None) -> bool:
        """
        Execute one step.

        Args:
            step: Step to execute.
            ct: Cancellation token of the scenario run.

        Returns:
            True if a router handled the step, False if it was skipped as an
            unknown action.

        Raises:
            Exception: Whatever the router raised (ArgumentInvalid,
                TransportFailure, OperationCancelled, ...).
        """
        if step is None:
            raise ValueError("step must not be None")
        token = ct if ct is not None else CancellationToken()

        key = parse_action_key(step.action)
        if key is None:
            logger.warning(f"Unknown action {normalize_action(step.action) or '(null/empty)'}")
            return False

        router = self.registry.try_resolve(key.domain)
        if router is None:
            logger.warning(f"Unknown action {key}")
            return False

        token.raise_if_cancelled()
        logger.debug(f"Executing {key} ({step.label})")
        return await router.execute(step, token)

    async def execute_all(
        self, steps: Iterable[ScenarioStep], ct: Optional[CancellationToken] = None
    ) -> int:
        """
        Execute steps strictly in order.

        The first router failure propagates and stops the sequence.

        Returns:
            Number of steps a router handled.
        """
        token = ct if ct is not None else CancellationToken()
        handled = 0
        for step in steps:
            token.raise_if_cancelled()
            if await self.execute(step, token):
                handled += 1
        return handled
