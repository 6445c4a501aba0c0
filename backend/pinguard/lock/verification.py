"""
Step-up PIN verification for sensitive operations.

Independent of the lock screen: before a withdrawal or a card change the
client asks the user to confirm the PIN. A successful confirmation opens a
short window during which further confirmations pass automatically.
Repeated failures lock verification out for an escalating period.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..logging import get_logger
from .clock import Clock
from .persistence import STORAGE_KEYS, KeyValueStorage
from .session import SessionGuard

logger = get_logger("verification")

VERIFICATION_WINDOW_MS = 5 * 60 * 1000
FREE_ATTEMPTS = 3

# (minimum failed attempts, lockout duration), most severe first
LOCKOUT_SCHEDULE = (
    (10, 30 * 60 * 1000),
    (5, 5 * 60 * 1000),
    (3, 60 * 1000),
)


def lockout_duration_ms(failed_attempts: int) -> int:
    """How long verification stays locked after this many consecutive failures."""
    for threshold, duration in LOCKOUT_SCHEDULE:
        if failed_attempts >= threshold:
            return duration
    return 0


def _minutes(ms: int) -> str:
    minutes = max(1, math.ceil(ms / 60000))
    return f"{minutes} minute{'s' if minutes > 1 else ''}"


def _parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass
class VerificationResult:
    verified: bool
    error: Optional[str] = None
    failed_attempts: int = 0
    lockout_until: Optional[int] = None


class StepUpVerifier:
    """Confirms the configured PIN before sensitive operations."""

    def __init__(self, guard: SessionGuard, storage: KeyValueStorage, clock: Clock):
        self._guard = guard
        self._storage = storage
        self._clock = clock

    async def has_active_session(self, bypass_session: bool = False) -> bool:
        """True if the PIN was confirmed recently enough to skip asking again."""
        if bypass_session:
            return False
        last = _parse_int(await self._storage.get_item(STORAGE_KEYS.LAST_VERIFICATION))
        if last is None:
            return False
        return self._clock.now_ms() - last < VERIFICATION_WINDOW_MS

    async def failed_attempts(self) -> int:
        return _parse_int(await self._storage.get_item(STORAGE_KEYS.FAILED_ATTEMPTS)) or 0

    async def active_lockout(self) -> Optional[int]:
        """End of the current lockout in ms, or None. Clears an expired lockout."""
        end = _parse_int(await self._storage.get_item(STORAGE_KEYS.LOCKOUT_END))
        if end is None:
            return None
        if self._clock.now_ms() < end:
            return end
        await self._storage.remove_item(STORAGE_KEYS.LOCKOUT_END)
        return None

    async def submit(self, pin: str) -> VerificationResult:
        """Check a PIN entry, recording failures and applying lockouts."""
        attempts = await self.failed_attempts()

        lockout_end = await self.active_lockout()
        if lockout_end is not None:
            remaining = lockout_end - self._clock.now_ms()
            return VerificationResult(
                verified=False,
                error=f"Too many failed attempts. Try again in {_minutes(remaining)}.",
                failed_attempts=attempts,
                lockout_until=lockout_end,
            )

        if self._guard.verify_pin(pin):
            await self._storage.remove_item(STORAGE_KEYS.FAILED_ATTEMPTS)
            await self._storage.set_item(
                STORAGE_KEYS.LAST_VERIFICATION, str(self._clock.now_ms())
            )
            logger.info("Step-up verification succeeded")
            return VerificationResult(verified=True)

        attempts += 1
        await self._storage.set_item(STORAGE_KEYS.FAILED_ATTEMPTS, str(attempts))

        duration = lockout_duration_ms(attempts)
        if duration:
            lockout_end = self._clock.now_ms() + duration
            await self._storage.set_item(STORAGE_KEYS.LOCKOUT_END, str(lockout_end))
            logger.warning(f"Step-up verification locked out after {attempts} failures")
            return VerificationResult(
                verified=False,
                error=f"Too many failed attempts. Locked for {_minutes(duration)}.",
                failed_attempts=attempts,
                lockout_until=lockout_end,
            )

        remaining_attempts = FREE_ATTEMPTS - attempts
        logger.warning(f"Step-up verification failed ({attempts} consecutive)")
        return VerificationResult(
            verified=False,
            error=f"Incorrect PIN. {remaining_attempts} attempts remaining before lockout.",
            failed_attempts=attempts,
        )

    async def reset(self) -> None:
        """Forget attempts, lockouts and the verification window."""
        for key in (
            STORAGE_KEYS.FAILED_ATTEMPTS,
            STORAGE_KEYS.LOCKOUT_END,
            STORAGE_KEYS.LAST_VERIFICATION,
        ):
            await self._storage.remove_item(key)
