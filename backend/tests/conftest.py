"""Shared fixtures for the pinguard test suite."""

from __future__ import annotations

from typing import Callable

import pytest

from pinguard.lock import ActivityHub, MemoryStorage, PinHasher, SessionGuard

START_MS = 1_700_000_000_000


class FakeTimer:
    def __init__(self, clock: "FakeClock", interval_ms: int, callback: Callable[[], None]):
        self.clock = clock
        self.interval_ms = interval_ms
        self.callback = callback
        self.next_due = clock.now + interval_ms
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self in self.clock.timers:
            self.clock.timers.remove(self)


class FakeClock:
    """Simulated time. advance() fires interval callbacks in due order."""

    def __init__(self, start: int = START_MS):
        self.now = start
        self.timers: list[FakeTimer] = []

    def now_ms(self) -> int:
        return self.now

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self, interval_ms, callback)
        self.timers.append(timer)
        return timer

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self.timers if t.next_due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.next_due)
            self.now = timer.next_due
            timer.next_due += timer.interval_ms
            timer.callback()
        self.now = target


class FailingStorage(MemoryStorage):
    """Memory storage whose writes can be switched to fail."""

    def __init__(self, error: Exception, initial: dict[str, str] | None = None):
        super().__init__(initial)
        self.error = error
        self.fail_writes = True
        self.fail_reads = False

    async def get_item(self, key):
        if self.fail_reads:
            raise self.error
        return await super().get_item(key)

    async def set_item(self, key, value):
        if self.fail_writes:
            raise self.error
        await super().set_item(key, value)

    async def remove_item(self, key):
        if self.fail_writes:
            raise self.error
        await super().remove_item(key)

    async def clear(self):
        if self.fail_writes:
            raise self.error
        await super().clear()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def hasher() -> PinHasher:
    """Cheap argon2 parameters so the suite stays fast."""
    return PinHasher.with_params(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def navigations() -> list[str]:
    return []


@pytest.fixture()
def activity() -> ActivityHub:
    return ActivityHub()


@pytest.fixture()
def make_guard(clock, hasher, navigations, activity):
    """Factory for guards wired to the fake clock and a recording navigator."""

    def _make(storage=None, **kwargs) -> SessionGuard:
        return SessionGuard(
            storage=storage if storage is not None else MemoryStorage(),
            navigate=navigations.append,
            clock=clock,
            activity=activity,
            hasher=hasher,
            **kwargs,
        )

    return _make


@pytest.fixture()
def guard(make_guard, storage) -> SessionGuard:
    return make_guard(storage)
