"""
Scenario asset runtime.

Runs one scenario asset at a time on a background asyncio task. Steps are
executed strictly in order, each no earlier than its ``at_ms`` offset from
the scenario start. A failing step is logged and the run continues, unless
the step's ``on_error`` policy is ``abort``.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from buttonboard.actions.executor import ActionExecutor
from buttonboard.cancellation import CancellationSource, CancellationToken
from buttonboard.errors import AssetInvalid, OperationCancelled, ScenarioNotFound
from buttonboard.model import OnError, ScenarioAsset
from buttonboard.scenarios.assets import ScenarioAssetsLoader

logger = logging.getLogger(__name__)


class ScenarioState(Enum):
    """Scenario execution state."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ScenarioAssetRuntime:
    """
    Single-slot scenario runner.

    Attributes:
        state: State of the current or last run.
        current_key: Key of the running scenario, None when idle.
        last_error: Exception that aborted the last run, if any.
    """

    def __init__(self, loader: ScenarioAssetsLoader, executor: ActionExecutor):
        self.loader = loader
        self.executor = executor
        self.state = ScenarioState.IDLE
        self.current_key: Optional[str] = None
        self.last_error: Optional[BaseException] = None
        self._gate = asyncio.Lock()
        self._source: Optional[CancellationSource] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, key: str, ct: Optional[CancellationToken] = None) -> bool:
        """
        Start a scenario in the background.

        Args:
            key: Asset key.
            ct: Outer token; cancelling it cancels the run.

        Returns:
            True if the run started, False if another scenario is running or
            the asset is missing or invalid.
        """
        async with self._gate:
            if self.is_running:
                logger.info(
                    f"Start requested for {key} but {self.current_key} is still running"
                )
                return False

            try:
                asset = self.loader.load_scenario(key)
            except (ScenarioNotFound, AssetInvalid) as e:
                logger.warning(f"Scene not started: {e}")
                return False

            self._source = CancellationSource(ct)
            self.current_key = asset.key
            self.state = ScenarioState.RUNNING
            self.last_error = None
            self._task = asyncio.create_task(
                self._run(asset, self._source), name=f"scenario-{asset.key}"
            )
            return True

    async def _run(self, asset: ScenarioAsset, source: CancellationSource) -> None:
        token = source.token
        loop = asyncio.get_running_loop()
        started = loop.time()
        failures = 0
        logger.info(
            f"Starting scene {asset.name or asset.key} (v{asset.version}) "
            f"with {len(asset.steps)} steps"
        )
        try:
            for step in asset.steps:
                token.raise_if_cancelled()
                elapsed_ms = (loop.time() - started) * 1000.0
                delay_ms = step.at_ms - elapsed_ms
                if delay_ms > 0:
                    await token.sleep(delay_ms / 1000.0)

                try:
                    logger.debug(f"Executing step {step.label} at t~{step.at_ms}ms")
                    await self.executor.execute(step, token)
                    logger.info(f"Step executed {step.label} (at {step.at_ms}ms)")
                except OperationCancelled:
                    raise
                except Exception as e:
                    failures += 1
                    logger.error(
                        f"Step failed {step.label} at t={step.at_ms}ms "
                        f"(on_error={step.on_error.value}): {e}",
                        exc_info=True,
                    )
                    if step.on_error is OnError.ABORT:
                        self.last_error = e
                        self.state = ScenarioState.FAILED
                        logger.warning(f"Scene {asset.key} aborted")
                        return

            self.state = ScenarioState.COMPLETED
            if failures:
                logger.info(f"Scene finished {asset.key} with {failures} failed step(s)")
            else:
                logger.info(f"Scene finished {asset.key}")
        except OperationCancelled:
            self.state = ScenarioState.CANCELLED
            logger.info(f"Scene cancelled {asset.key}")
        except asyncio.CancelledError:
            self.state = ScenarioState.CANCELLED
            raise
        finally:
            source.close()
            self.current_key = None

    async def cancel(self) -> bool:
        """
        Cancel the running scenario and wait for it to stop.

        Returns:
            True if a scenario was running.
        """
        async with self._gate:
            if not self.is_running:
                return False
            self._source.cancel()
            await self.wait()
            return True

    async def wait(self) -> None:
        """Wait until the current run (if any) has finished."""
        task = self._task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
