"""
VLC media player control over its HTTP interface.

Commands are sent as ``GET <base>/requests/status.xml?command=<cmd>`` with
HTTP Basic auth (empty user name, configured password).
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Optional

import httpx

from buttonboard.cancellation import CancellationToken
from buttonboard.config import VlcPlayerConfig
from buttonboard.errors import ArgumentInvalid, TransportFailure

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_S = 5.0


class VlcPlayerCommand(Enum):
    """Playlist commands understood by the VLC HTTP interface."""

    PAUSE = "pl_pause"
    STOP = "pl_stop"
    NEXT = "pl_next"
    PREVIOUS = "pl_previous"


class VlcClient(ABC):
    """Sends playlist commands to named players."""

    @abstractmethod
    async def send_command(
        self,
        command: VlcPlayerCommand,
        player_name: str,
        ct: Optional[CancellationToken] = None,
    ) -> None:
        """Send ``command`` to ``player_name``."""

    async def aclose(self) -> None:
        """Release network resources."""


class VlcHttpClient(VlcClient):
    """
    httpx-based VLC client.

    A failed command switches on the fault indicator through ``on_failure``
    (best effort) before raising.
    """

    def __init__(
        self,
        players: Dict[str, VlcPlayerConfig],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_failure: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize client.

        Args:
            players: Player name to HTTP endpoint.
            transport: httpx transport override (MockTransport in tests).
            on_failure: Called once per failed command.
        """
        self.players = dict(players)
        self._on_failure = on_failure
        self._http = httpx.AsyncClient(timeout=REQUEST_TIMEOUT_S, transport=transport)

    def _player(self, player_name: str) -> VlcPlayerConfig:
        for name, player in self.players.items():
            if name.lower() == player_name.strip().lower():
                return player
        raise ArgumentInvalid("player", f"VLC player '{player_name}' is not configured")

    def _signal_failure(self) -> None:
        if self._on_failure is None:
            return
        try:
            self._on_failure()
        except Exception as e:
            logger.warning(f"VLC failure indicator could not be set: {e}")

    async def send_command(
        self,
        command: VlcPlayerCommand,
        player_name: str,
        ct: Optional[CancellationToken] = None,
    ) -> None:
        """
        Send a playlist command.

        Raises:
            ArgumentInvalid: If the player is not configured.
            TransportFailure: On I/O error or a non-2xx response.
            OperationCancelled: If the token is cancelled before sending.
        """
        player = self._player(player_name)
        if ct is not None:
            ct.raise_if_cancelled()

        url = f"{player.base_uri.rstrip('/')}/requests/status.xml"
        try:
            response = await self._http.get(
                url,
                params={"command": command.value},
                auth=httpx.BasicAuth("", player.password),
            )
        except httpx.HTTPError as e:
            self._signal_failure()
            raise TransportFailure(f"VLC {player_name}", str(e) or type(e).__name__) from e

        if not response.is_success:
            self._signal_failure()
            raise TransportFailure(f"VLC {player_name}", f"HTTP {response.status_code}")
        logger.info(f"VLC {player_name}: {command.value}")

    async def aclose(self) -> None:
        await self._http.aclose()


class SimulatedVlcClient(VlcClient):
    """Logs commands instead of sending them."""

    def __init__(self) -> None:
        self.sent = []

    async def send_command(
        self,
        command: VlcPlayerCommand,
        player_name: str,
        ct: Optional[CancellationToken] = None,
    ) -> None:
        if ct is not None:
            ct.raise_if_cancelled()
        self.sent.append((player_name, command))
        logger.info(f"[sim] VLC {player_name}: {command.value}")
