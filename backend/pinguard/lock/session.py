"""
PIN lock session guard.

Holds the PIN (as an argon2 hash), the lock flag, the time of the last user
interaction and the inactivity timeout. While the user is authenticated and
a PIN is configured, activity events keep the session alive and a periodic
check locks it once the timeout has elapsed.

Nothing runs until hydrate() has loaded the persisted settings, so the guard
never locks or unlocks based on defaults.
"""

import re
from enum import Enum
from typing import Callable, Optional

from ..logging import get_logger
from .activity import ACTIVITY_EVENTS, ActivityHub
from .clock import Clock, SystemClock, TimerHandle
from .crypto import PinHasher
from .exceptions import PinValidationError
from .persistence import STORAGE_KEYS, KeyValueStorage
from .routes import LOCK_SCREEN_PATH

logger = get_logger("guard")

# Inactivity timeout in milliseconds (5 minutes by default)
DEFAULT_INACTIVITY_TIMEOUT_MS = 5 * 60 * 1000
CHECK_INTERVAL_MS = 10_000
MIN_PIN_LENGTH = 4

# Persisted timeouts are plain ASCII digits
_DECIMAL_RE = re.compile(r"[0-9]+")


class GuardState(str, Enum):
    NO_PIN = "no_pin"
    UNLOCKED = "unlocked"
    LOCKED = "locked"


def parse_timeout(raw: Optional[str], default: int = DEFAULT_INACTIVITY_TIMEOUT_MS) -> int:
    """Parse a persisted timeout. Anything but a positive decimal integer yields the default."""
    if raw is None:
        return default
    raw = raw.strip()
    if not _DECIMAL_RE.fullmatch(raw):
        return default
    value = int(raw)
    return value if value > 0 else default


class SessionGuard:
    """Inactivity lock for an authenticated session."""

    def __init__(
        self,
        storage: KeyValueStorage,
        navigate: Callable[[str], None],
        clock: Optional[Clock] = None,
        activity: Optional[ActivityHub] = None,
        hasher: Optional[PinHasher] = None,
        default_timeout_ms: int = DEFAULT_INACTIVITY_TIMEOUT_MS,
        check_interval_ms: int = CHECK_INTERVAL_MS,
        lock_screen_path: str = LOCK_SCREEN_PATH,
    ):
        self._storage = storage
        self._navigate = navigate
        self._clock = clock or SystemClock()
        self._activity = activity if activity is not None else ActivityHub()
        self._hasher = hasher or PinHasher()
        self._default_timeout_ms = default_timeout_ms
        self._check_interval_ms = check_interval_ms
        self._lock_screen_path = lock_screen_path

        self._pin_hash: Optional[str] = None
        self._is_locked = False
        self._last_activity = self._clock.now_ms()
        self._inactivity_timeout = default_timeout_ms

        self._is_authenticated = False
        self._is_hydrated = False
        self._is_closed = False
        self._tracking_activity = False
        self._timer: Optional[TimerHandle] = None

    # --- State ---

    @property
    def is_pin_set(self) -> bool:
        return self._pin_hash is not None

    @property
    def is_locked(self) -> bool:
        return self._is_locked

    @property
    def inactivity_timeout(self) -> int:
        return self._inactivity_timeout

    @property
    def last_activity(self) -> int:
        return self._last_activity

    @property
    def is_authenticated(self) -> bool:
        return self._is_authenticated

    @property
    def is_hydrated(self) -> bool:
        return self._is_hydrated

    @property
    def is_tracking_activity(self) -> bool:
        return self._tracking_activity

    @property
    def is_checking_inactivity(self) -> bool:
        return self._timer is not None

    @property
    def state(self) -> GuardState:
        if not self.is_pin_set:
            return GuardState.NO_PIN
        return GuardState.LOCKED if self._is_locked else GuardState.UNLOCKED

    @property
    def activity(self) -> ActivityHub:
        return self._activity

    # --- Lifecycle ---

    async def hydrate(self) -> None:
        """Load the persisted PIN and timeout. Storage errors propagate."""
        stored_pin = await self._storage.get_item(STORAGE_KEYS.PIN)
        stored_timeout = await self._storage.get_item(STORAGE_KEYS.INACTIVITY_TIMEOUT)

        if stored_pin and not self._hasher.is_hash(stored_pin):
            # Written by an older release that kept the PIN in plaintext
            stored_pin = self._hasher.hash(stored_pin)
            await self._storage.set_item(STORAGE_KEYS.PIN, stored_pin)
            logger.info("Migrated plaintext PIN to argon2 hash")

        self._pin_hash = stored_pin or None
        self._inactivity_timeout = parse_timeout(stored_timeout, self._default_timeout_ms)
        self._is_locked = False
        self._last_activity = self._clock.now_ms()
        self._is_hydrated = True

        logger.info(
            f"Guard hydrated: pin_set={self.is_pin_set} "
            f"timeout={self._inactivity_timeout}ms",
            extra={"guard_state": self.state.value},
        )
        self._sync()

    def set_authenticated(self, is_authenticated: bool) -> None:
        """Feed the external auth signal."""
        if is_authenticated and not self._is_authenticated:
            self._last_activity = self._clock.now_ms()
        self._is_authenticated = is_authenticated
        self._sync()

    def close(self) -> None:
        """Drop activity subscriptions and the inactivity timer."""
        self._is_closed = True
        self._sync()

    # --- PIN management ---

    async def setup_pin(self, pin: str) -> None:
        """Configure a new PIN and leave the session unlocked."""
        if len(pin) < MIN_PIN_LENGTH:
            raise PinValidationError(f"PIN must be at least {MIN_PIN_LENGTH} digits")

        pin_hash = self._hasher.hash(pin)
        await self._storage.set_item(STORAGE_KEYS.PIN, pin_hash)

        self._pin_hash = pin_hash
        self._is_locked = False
        logger.info("PIN configured", extra={"guard_state": self.state.value})
        self._sync()

    def verify_pin(self, pin: str) -> bool:
        """Compare against the configured PIN without unlocking."""
        return self._hasher.verify(self._pin_hash, pin)

    def lock_app(self) -> None:
        """Lock the session and send the client to the lock screen. No-op without a PIN."""
        if not self.is_pin_set or self._is_locked:
            return

        self._is_locked = True
        logger.info("Session locked", extra={"guard_state": self.state.value})
        self._sync()
        self._navigate(self._lock_screen_path)

    def unlock_app(self, pin: str) -> bool:
        """Unlock with the PIN. Returns False and leaves state untouched on mismatch."""
        if not self.verify_pin(pin):
            logger.warning(
                "Unlock attempt with incorrect PIN",
                extra={"guard_state": self.state.value},
            )
            return False

        self._is_locked = False
        self._last_activity = self._clock.now_ms()
        logger.info("Session unlocked", extra={"guard_state": self.state.value})
        self._sync()
        return True

    async def clear_pin(self) -> None:
        """Remove the PIN. Callers must authorize this themselves."""
        await self._storage.remove_item(STORAGE_KEYS.PIN)

        self._pin_hash = None
        self._is_locked = False
        logger.info("PIN cleared", extra={"guard_state": self.state.value})
        self._sync()

    async def set_inactivity_timeout(self, timeout_ms: int) -> None:
        """Persist a new timeout. Applies from the next inactivity check."""
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
            raise ValueError(f"Inactivity timeout must be a positive integer, got {timeout_ms!r}")

        await self._storage.set_item(STORAGE_KEYS.INACTIVITY_TIMEOUT, str(timeout_ms))

        self._inactivity_timeout = timeout_ms
        logger.info(f"Inactivity timeout set to {timeout_ms}ms")

    # --- Activity tracking and inactivity check ---

    def _record_activity(self, event: str) -> None:
        self._last_activity = self._clock.now_ms()

    def _check_inactivity(self) -> None:
        idle_ms = self._clock.now_ms() - self._last_activity
        if idle_ms > self._inactivity_timeout:
            logger.info(f"Idle for {idle_ms}ms (timeout {self._inactivity_timeout}ms), locking")
            self.lock_app()

    def _sync(self) -> None:
        """Start or stop activity tracking and the inactivity timer to match current state."""
        should_track = (
            not self._is_closed
            and self._is_authenticated
            and self.is_pin_set
            and self._is_hydrated
        )
        should_check = should_track and not self._is_locked

        if should_track and not self._tracking_activity:
            for event in ACTIVITY_EVENTS:
                self._activity.subscribe(event, self._record_activity)
            self._tracking_activity = True
        elif not should_track and self._tracking_activity:
            for event in ACTIVITY_EVENTS:
                self._activity.unsubscribe(event, self._record_activity)
            self._tracking_activity = False

        if should_check and self._timer is None:
            self._timer = self._clock.call_every(self._check_interval_ms, self._check_inactivity)
        elif not should_check and self._timer is not None:
            self._timer.cancel()
            self._timer = None
