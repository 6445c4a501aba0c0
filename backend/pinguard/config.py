"""pinguard configuration with CLI > env var > defaults precedence."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from .lock.routes import LOCK_SCREEN_PATH
from .lock.session import CHECK_INTERVAL_MS, DEFAULT_INACTIVITY_TIMEOUT_MS

PINGUARD_DIR = Path.home() / ".pinguard"
DEFAULT_STORAGE_PATH = PINGUARD_DIR / "preferences.json"
DEFAULT_PORT = 8200

# Choices offered by the settings screen, in minutes
TIMEOUT_OPTIONS_MINUTES = (1, 5, 10, 15, 30, 60)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class GuardConfig:
    """Configuration for the pinguard service."""
    storage_path: str = ""
    fallback_storage_path: str = ""
    inactivity_timeout_ms: int = DEFAULT_INACTIVITY_TIMEOUT_MS
    check_interval_ms: int = CHECK_INTERVAL_MS
    lock_screen_path: str = LOCK_SCREEN_PATH
    host: str = ""
    port: int = DEFAULT_PORT
    log_dir: str = ""
    memory_fallback: bool = False
    cors_origin_regex: str = r"http://(localhost|127\.0\.0\.1):30[0-9]{2}"
    timeout_options_minutes: tuple[int, ...] = field(default=TIMEOUT_OPTIONS_MINUTES)

    def __post_init__(self):
        # Apply env var defaults before CLI overrides
        if not self.storage_path:
            self.storage_path = os.getenv("PINGUARD_STORAGE_PATH", str(DEFAULT_STORAGE_PATH))
        if not self.fallback_storage_path:
            self.fallback_storage_path = os.getenv("PINGUARD_FALLBACK_STORAGE_PATH", "")
        if self.inactivity_timeout_ms == DEFAULT_INACTIVITY_TIMEOUT_MS:
            self.inactivity_timeout_ms = _env_int(
                "PINGUARD_INACTIVITY_TIMEOUT_MS", DEFAULT_INACTIVITY_TIMEOUT_MS
            )
        if self.check_interval_ms == CHECK_INTERVAL_MS:
            self.check_interval_ms = _env_int("PINGUARD_CHECK_INTERVAL_MS", CHECK_INTERVAL_MS)
        if not self.host:
            self.host = os.getenv("PINGUARD_HOST", "127.0.0.1")
        if self.port == DEFAULT_PORT:
            self.port = _env_int("PINGUARD_PORT", DEFAULT_PORT)
        if not self.log_dir:
            self.log_dir = os.getenv("PINGUARD_LOG_DIR", "")
        if not self.memory_fallback:
            self.memory_fallback = (
                os.getenv("PINGUARD_MEMORY_FALLBACK", "").lower() in ("1", "true", "yes")
            )

        if self.inactivity_timeout_ms <= 0:
            raise ValueError("inactivity_timeout_ms must be positive")
        if self.check_interval_ms <= 0:
            raise ValueError("check_interval_ms must be positive")
