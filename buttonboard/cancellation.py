"""
Cooperative cancellation for scenario runs.

A CancellationSource owns the cancel switch; its token is handed to every
operation that may suspend. Operations check the token before each
suspension point and use ``token.sleep`` for timed delays so a cancel wakes
them immediately.
"""

import asyncio
from typing import List, Optional

from buttonboard.errors import OperationCancelled


class CancellationToken:
    """Read-only view of a cancellation source."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: List["CancellationSource"] = []

    @property
    def cancelled(self) -> bool:
        """True once cancellation was requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raise if cancellation was requested.

        Raises:
            OperationCancelled: If the token is cancelled.
        """
        if self._event.is_set():
            raise OperationCancelled()

    async def wait(self) -> None:
        """Wait until cancellation is requested."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """
        Sleep for ``seconds`` unless cancelled first.

        Raises:
            OperationCancelled: If the token is or becomes cancelled.
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise OperationCancelled()


class CancellationSource:
    """
    Owner of a cancellation token.

    A source created with ``parent`` is cancelled together with the parent
    token; cancelling the child leaves the parent untouched.
    """

    def __init__(self, parent: Optional[CancellationToken] = None) -> None:
        self.token = CancellationToken()
        self._parent = parent
        if parent is not None:
            if parent.cancelled:
                self.cancel()
            else:
                parent._children.append(self)

    def close(self) -> None:
        """Unlink from the parent token once the run this source guards is over."""
        if self._parent is not None and self in self._parent._children:
            self._parent._children.remove(self)
        self._parent = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> None:
        """Request cancellation of the token and all linked sources."""
        if self.token.cancelled:
            return
        self.token._event.set()
        for child in self.token._children:
            child.cancel()
        self.token._children.clear()
