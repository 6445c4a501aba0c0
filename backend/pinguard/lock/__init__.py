"""PIN lock: inactivity guard, PIN storage and step-up verification."""

from .activity import ACTIVITY_EVENTS, ActivityHub
from .clock import Clock, IntervalTimer, SystemClock
from .crypto import PinHasher
from .exceptions import GuardNotInitializedError, PinValidationError, StorageError
from .persistence import (
    STORAGE_KEYS,
    JsonFileStorage,
    KeyValueStorage,
    LayeredStorage,
    MemoryStorage,
)
from .provider import GuardProvider, use_guard
from .routes import LOCK_SCREEN_PATH, LOGIN_PATH, RouteDecision, resolve_route
from .session import (
    CHECK_INTERVAL_MS,
    DEFAULT_INACTIVITY_TIMEOUT_MS,
    GuardState,
    SessionGuard,
)
from .verification import StepUpVerifier, VerificationResult

__all__ = [
    'ACTIVITY_EVENTS',
    'ActivityHub',
    'Clock',
    'IntervalTimer',
    'SystemClock',
    'PinHasher',
    'GuardNotInitializedError',
    'PinValidationError',
    'StorageError',
    'STORAGE_KEYS',
    'JsonFileStorage',
    'KeyValueStorage',
    'LayeredStorage',
    'MemoryStorage',
    'GuardProvider',
    'use_guard',
    'LOCK_SCREEN_PATH',
    'LOGIN_PATH',
    'RouteDecision',
    'resolve_route',
    'CHECK_INTERVAL_MS',
    'DEFAULT_INACTIVITY_TIMEOUT_MS',
    'GuardState',
    'SessionGuard',
    'StepUpVerifier',
    'VerificationResult',
]
