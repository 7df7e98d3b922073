"""
Once-only selection between a real and a simulated implementation.

The predicate runs on the first resolution, never at construction, and the
factory it selects runs exactly once. Every later resolution returns the same
instance; a failed predicate or factory is re-raised on every later
resolution instead of being retried.
"""

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

from buttonboard.errors import BindingPredicateFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ModeBinding(Generic[T]):
    """
    Lazily resolved capability.

    Attributes:
        name: Capability name used in logs and errors.
    """

    def __init__(
        self,
        name: str,
        predicate: Callable[[], bool],
        real: Callable[[], T],
        simulated: Callable[[], T],
    ):
        self.name = name
        self._predicate = predicate
        self._real = real
        self._simulated = simulated
        self._lock = threading.Lock()
        self._resolved = False
        self._instance: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._simulated_selected: Optional[bool] = None

    @property
    def is_resolved(self) -> bool:
        """True once the predicate has been evaluated."""
        return self._resolved

    @property
    def is_simulated(self) -> Optional[bool]:
        """Selected branch, or None before the first resolution."""
        return self._simulated_selected

    def resolve(self) -> T:
        """
        Return the bound implementation, selecting it on first use.

        Returns:
            The cached real or simulated instance.

        Raises:
            BindingPredicateFailure: If the predicate raised (now or on the
                first resolution).
            Exception: Whatever the selected factory raised on first use.
        """
        if not self._resolved:
            with self._lock:
                if not self._resolved:
                    self._select()
        if self._error is not None:
            raise self._error
        return self._instance  # type: ignore[return-value]

    __call__ = resolve

    def _select(self) -> None:
        try:
            use_simulated = bool(self._predicate())
        except Exception as e:
            failure = BindingPredicateFailure(self.name)
            failure.__cause__ = e
            self._error = failure
            self._resolved = True
            logger.error(f"Binding {self.name}: mode predicate failed: {e}")
            return

        self._simulated_selected = use_simulated
        factory = self._simulated if use_simulated else self._real
        try:
            self._instance = factory()
        except Exception as e:
            self._error = e
            logger.error(f"Binding {self.name}: factory failed: {e}")
        finally:
            self._resolved = True

        if self._error is None:
            mode = "simulated" if use_simulated else "real"
            logger.info(f"Binding {self.name}: using {mode} implementation")


def bind(
    name: str,
    predicate: Callable[[], bool],
    real: Callable[[], T],
    simulated: Callable[[], T],
) -> ModeBinding[T]:
    """
    Bind a capability to a real or simulated implementation.

    Args:
        name: Capability name for logs.
        predicate: Returns True to select the simulated implementation.
        real: Factory for the real implementation.
        simulated: Factory for the simulated implementation.

    Returns:
        Unresolved binding; call ``resolve()`` to obtain the instance.
    """
    return ModeBinding(name, predicate, real, simulated)
