"""Which route a client may see, given auth and lock state."""

from dataclasses import dataclass
from typing import Optional

LOCK_SCREEN_PATH = "/pin-lock"
LOGIN_PATH = "/auth/login"
PUBLIC_PREFIX = "/auth/"

# Reachable with a PIN configured even while locked
PIN_EXEMPT_PATHS = frozenset({
    LOCK_SCREEN_PATH,
    "/settings/setup-pin",
    "/settings/pin-settings",
})


@dataclass(frozen=True)
class RouteDecision:
    """Outcome of a route check. `redirect` is None when the path is allowed."""
    path: str
    redirect: Optional[str] = None
    origin: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.redirect is None


def resolve_route(
    path: str,
    *,
    is_authenticated: bool,
    is_pin_set: bool,
    is_locked: bool,
) -> RouteDecision:
    """
    Decide whether `path` can be shown or where to send the client instead.

    Unauthenticated clients go to the login page, locked sessions go to the
    lock screen. The origin is kept so the client can return afterwards.
    """
    if path.startswith(PUBLIC_PREFIX):
        return RouteDecision(path)

    if not is_authenticated:
        return RouteDecision(path, redirect=LOGIN_PATH, origin=path)

    if not is_pin_set or path in PIN_EXEMPT_PATHS:
        return RouteDecision(path)

    if is_locked:
        return RouteDecision(path, redirect=LOCK_SCREEN_PATH, origin=path)

    return RouteDecision(path)
