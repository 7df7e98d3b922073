"""
Domain to router table.
"""

from typing import Dict, Iterable, List, Optional

from buttonboard.actions.router import ActionRouter


class ActionRouterRegistry:
    """Maps a domain key (``gpio``, ``mqtt``, ...) to its router."""

    def __init__(self, routers: Iterable[ActionRouter] = ()):
        self._routers: Dict[str, ActionRouter] = {}
        for router in routers:
            self.register(router)

    def register(self, router: ActionRouter) -> None:
        """
        Add a router.

        Raises:
            ValueError: If the domain is blank or already registered.
        """
        domain = router.domain.strip().lower()
        if not domain:
            raise ValueError(f"{type(router).__name__} has no domain")
        if domain in self._routers:
            raise ValueError(f"Duplicate router for domain '{domain}'")
        self._routers[domain] = router

    def try_resolve(self, domain: str) -> Optional[ActionRouter]:
        """Router for ``domain``, or None if no router is registered."""
        return self._routers.get((domain or "").strip().lower())

    @property
    def domains(self) -> List[str]:
        return sorted(self._routers)

    def __contains__(self, domain: str) -> bool:
        return self.try_resolve(domain) is not None

    def __len__(self) -> int:
        return len(self._routers)
