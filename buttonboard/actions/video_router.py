"""
Router for ``video.*`` actions (VLC players).
"""

import logging
from typing import Callable, Dict, Iterable

from buttonboard.actions.router import ActionRouter, Handler
from buttonboard.cancellation import CancellationToken
from buttonboard.errors import ArgumentInvalid
from buttonboard.model import ScenarioStep
from buttonboard.step_args import get_string
from buttonboard.vlc import VlcClient, VlcPlayerCommand

logger = logging.getLogger(__name__)

DEFAULT_PLAYER = "Mediaplayer1"


class VideoActionRouter(ActionRouter):
    """Playlist commands for configured VLC players."""

    domain = "video"

    def __init__(self, vlc: Callable[[], VlcClient], players: Iterable[str]):
        """
        Args:
            vlc: Provider of the bound VLC client.
            players: Names of configured players.
        """
        super().__init__()
        self._vlc = vlc
        self._players = {name.lower(): name for name in players}

    def handlers(self) -> Dict[str, Handler]:
        def command(cmd: VlcPlayerCommand) -> Handler:
            async def handle(step: ScenarioStep, ct: CancellationToken) -> None:
                await self._send(step, cmd, ct)

            return handle

        return {
            "next": command(VlcPlayerCommand.NEXT),
            "pause": command(VlcPlayerCommand.PAUSE),
            "stop": command(VlcPlayerCommand.STOP),
            "previous": command(VlcPlayerCommand.PREVIOUS),
        }

    async def _send(self, step: ScenarioStep, cmd: VlcPlayerCommand, ct: CancellationToken) -> None:
        player = get_string(step.args, "player", DEFAULT_PLAYER)
        if player.strip().lower() not in self._players:
            logger.warning(f"{step.action.strip().lower()}: VLC player not found {player}")
            raise ArgumentInvalid("player", f"Unknown VLC player '{player}'")
        logger.info(f"video: issuing {cmd.value} to {player}")
        await self._vlc().send_command(cmd, self._players[player.strip().lower()], ct)
