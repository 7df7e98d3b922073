"""
Lyrion (Logitech Media Server) CLI client.

Each command opens a TCP connection to the CLI port, optionally logs in,
writes one line and reads at most one response line. Servers often answer
nothing at all, so a missing response counts as success.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from urllib.parse import quote

from buttonboard.cancellation import CancellationToken
from buttonboard.config import LyrionConfig
from buttonboard.errors import ArgumentInvalid, TransportFailure

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_S = 5.0
RESPONSE_TIMEOUT_S = 1.0


def encode_token(value: str) -> str:
    """URL-encode a CLI token (space becomes %20)."""
    return quote(value or "", safe="")


class LyrionClient(ABC):
    """Audio player control by player name."""

    @abstractmethod
    async def play_url(
        self, player: str, url: str, ct: Optional[CancellationToken] = None
    ) -> str:
        """Replace the playlist with ``url`` and start playing."""

    @abstractmethod
    async def pause(
        self, player: str, paused: bool = True, ct: Optional[CancellationToken] = None
    ) -> str:
        """Pause (True) or resume (False) playback."""

    @abstractmethod
    async def set_volume(
        self, player: str, percent: int, ct: Optional[CancellationToken] = None
    ) -> str:
        """Set the mixer volume in percent."""

    @abstractmethod
    async def reset(self, ct: Optional[CancellationToken] = None) -> None:
        """Stop every configured player."""


def _check_volume(percent: int) -> None:
    if not 0 <= percent <= 100:
        raise ArgumentInvalid("volume", f"must be within 0..100, got {percent}")


def _check_url(url: str) -> None:
    if not url or not url.strip():
        raise ArgumentInvalid("url", "must not be empty")


class LyrionCliClient(LyrionClient):
    """Talks to the Lyrion CLI over asyncio streams."""

    def __init__(self, config: LyrionConfig, response_timeout_s: float = RESPONSE_TIMEOUT_S):
        """
        Initialize client.

        Args:
            config: CLI endpoint, credentials and player map.
            response_timeout_s: How long to wait for a response line.
        """
        self.config = config
        self.response_timeout_s = response_timeout_s

    def resolve_player_id(self, player: str) -> str:
        """
        Map a player name to its Lyrion id (usually the MAC address).

        Raises:
            ArgumentInvalid: If the player is not configured.
        """
        wanted = (player or "").strip().lower()
        for name, player_id in self.config.players.items():
            if name.lower() == wanted and player_id.strip():
                return player_id
        raise ArgumentInvalid("player", f"Lyrion player '{player}' is not configured")

    async def play_url(
        self, player: str, url: str, ct: Optional[CancellationToken] = None
    ) -> str:
        _check_url(url)
        player_id = self.resolve_player_id(player)
        return await self.send(f"{player_id} playlist play {encode_token(url)}", ct)

    async def pause(
        self, player: str, paused: bool = True, ct: Optional[CancellationToken] = None
    ) -> str:
        player_id = self.resolve_player_id(player)
        return await self.send(f"{player_id} pause {1 if paused else 0}", ct)

    async def set_volume(
        self, player: str, percent: int, ct: Optional[CancellationToken] = None
    ) -> str:
        _check_volume(percent)
        player_id = self.resolve_player_id(player)
        return await self.send(f"{player_id} mixer volume {percent}", ct)

    async def reset(self, ct: Optional[CancellationToken] = None) -> None:
        for player_id in self.config.players.values():
            if player_id.strip():
                await self.send(f"{player_id} stop", ct)

    async def _read_line(self, reader: asyncio.StreamReader) -> str:
        try:
            line = await asyncio.wait_for(reader.readline(), timeout=self.response_timeout_s)
        except asyncio.TimeoutError:
            return ""
        return line.decode("utf-8", errors="replace").rstrip("\r\n")

    async def send(self, command: str, ct: Optional[CancellationToken] = None) -> str:
        """
        Send one CLI command line.

        Args:
            command: Command without line terminator.
            ct: Cancellation token, checked before connecting.

        Returns:
            Response line, or an empty string if the server did not answer.

        Raises:
            TransportFailure: If the connection or the write fails.
            OperationCancelled: If the token is cancelled.
        """
        if ct is not None:
            ct.raise_if_cancelled()
        target = f"Lyrion {self.config.host}:{self.config.port}"

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.host, self.config.port),
                timeout=CONNECT_TIMEOUT_S,
            )
        except (OSError, asyncio.TimeoutError) as e:
            raise TransportFailure(target, str(e) or "connect timed out") from e

        try:
            if self.config.username or self.config.password:
                login = (
                    f"login {encode_token(self.config.username or '')} "
                    f"{encode_token(self.config.password or '')}\n"
                )
                writer.write(login.encode("utf-8"))
                await writer.drain()
                await self._read_line(reader)

            logger.info(f"Lyrion CLI -> {command}")
            writer.write(f"{command}\n".encode("utf-8"))
            await writer.drain()

            response = await self._read_line(reader)
            if response:
                logger.debug(f"Lyrion CLI <- {response}")
            else:
                logger.debug("Lyrion CLI <- (no response, assuming success)")
            return response
        except OSError as e:
            raise TransportFailure(target, str(e)) from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass


class SimulatedLyrionClient(LyrionClient):
    """Logs commands and applies the same argument checks as the real client."""

    def __init__(self) -> None:
        self.commands: List[str] = []

    def _record(self, command: str, ct: Optional[CancellationToken]) -> str:
        if ct is not None:
            ct.raise_if_cancelled()
        self.commands.append(command)
        logger.info(f"[sim] Lyrion {command}")
        return ""

    async def play_url(
        self, player: str, url: str, ct: Optional[CancellationToken] = None
    ) -> str:
        _check_url(url)
        return self._record(f"{player} playlist play {encode_token(url)}", ct)

    async def pause(
        self, player: str, paused: bool = True, ct: Optional[CancellationToken] = None
    ) -> str:
        return self._record(f"{player} pause {1 if paused else 0}", ct)

    async def set_volume(
        self, player: str, percent: int, ct: Optional[CancellationToken] = None
    ) -> str:
        _check_volume(percent)
        return self._record(f"{player} mixer volume {percent}", ct)

    async def reset(self, ct: Optional[CancellationToken] = None) -> None:
        self._record("stop all", ct)
