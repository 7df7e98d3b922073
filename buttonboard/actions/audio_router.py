"""
Router for ``audio.*`` actions (Lyrion players).
"""

import logging
from typing import Callable, Dict

from buttonboard.actions.router import ActionRouter, Handler
from buttonboard.cancellation import CancellationToken
from buttonboard.errors import ArgumentInvalid
from buttonboard.lyrion import LyrionClient
from buttonboard.model import ScenarioStep
from buttonboard.step_args import get_bool, get_required_int, get_string

logger = logging.getLogger(__name__)

DEFAULT_PLAYER = "Player1"


class AudioActionRouter(ActionRouter):
    """play, pause and volume on a named audio player."""

    domain = "audio"

    def __init__(self, lyrion: Callable[[], LyrionClient]):
        super().__init__()
        self._lyrion = lyrion

    def handlers(self) -> Dict[str, Handler]:
        return {"play": self._play, "pause": self._pause, "volume": self._volume}

    async def _play(self, step: ScenarioStep, ct: CancellationToken) -> None:
        url = get_string(step.args, "url")
        if not url.strip():
            raise ArgumentInvalid("url", "audio.play requires 'url'")
        player = get_string(step.args, "player", DEFAULT_PLAYER)
        logger.info(f"audio.play: {player} <- {url}")
        await self._lyrion().play_url(player, url, ct)

    async def _pause(self, step: ScenarioStep, ct: CancellationToken) -> None:
        player = get_string(step.args, "player", DEFAULT_PLAYER)
        paused = get_bool(step.args, "paused", True)
        logger.info(f"audio.pause: {player} paused={paused}")
        await self._lyrion().pause(player, paused, ct)

    async def _volume(self, step: ScenarioStep, ct: CancellationToken) -> None:
        volume = get_required_int(step.args, "volume")
        if not 0 <= volume <= 100:
            raise ArgumentInvalid("volume", f"must be within 0..100, got {volume}")
        player = get_string(step.args, "player", DEFAULT_PLAYER)
        logger.info(f"audio.volume: {player} -> {volume}%")
        await self._lyrion().set_volume(player, volume, ct)
