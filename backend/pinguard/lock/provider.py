"""Mounting point for the session guard.

The host creates one GuardProvider per application session and hands it to
whatever needs the guard. Accessing the guard before the provider has been
entered (or after it has been left) is a programming error and fails loudly.
"""

from typing import Optional

from ..logging import get_logger
from .exceptions import GuardNotInitializedError
from .session import SessionGuard

logger = get_logger("guard")

MISUSE_MESSAGE = "use_guard must be used within a GuardProvider"


class GuardProvider:
    """Async context manager that hydrates the guard on enter and closes it on exit."""

    def __init__(self, guard: SessionGuard):
        self._guard = guard
        self._mounted = False

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def guard(self) -> SessionGuard:
        if not self._mounted:
            raise GuardNotInitializedError(MISUSE_MESSAGE)
        return self._guard

    async def __aenter__(self) -> "GuardProvider":
        await self._guard.hydrate()
        self._mounted = True
        logger.debug("Guard provider mounted")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._mounted = False
        self._guard.close()
        logger.debug("Guard provider unmounted")
        return False


def use_guard(provider: Optional[GuardProvider]) -> SessionGuard:
    """Return the mounted guard or raise GuardNotInitializedError."""
    if provider is None:
        raise GuardNotInitializedError(MISUSE_MESSAGE)
    return provider.guard
