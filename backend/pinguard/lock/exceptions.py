"""Errors raised by the PIN lock."""


class PinValidationError(ValueError):
    """A PIN was rejected before anything was persisted."""


class StorageError(Exception):
    """A key-value storage backend failed to read or write."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class GuardNotInitializedError(RuntimeError):
    """The guard was accessed outside a mounted GuardProvider."""
