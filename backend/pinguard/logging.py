"""
Centralized logging configuration for pinguard.

Provides:
- Console logging with colored, prefixed output by application area
- File logging with timestamps for post-mortem analysis
- Easy-to-use logger factory for different components
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# ANSI color codes for console output
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"


# Area-specific colors and prefixes
AREA_CONFIG = {
    "main": {"color": Colors.BRIGHT_CYAN, "prefix": "PINGUARD.main"},
    "guard": {"color": Colors.BRIGHT_MAGENTA, "prefix": "PINGUARD.guard"},
    "storage": {"color": Colors.BRIGHT_BLUE, "prefix": "PINGUARD.storage"},
    "timer": {"color": Colors.BLUE, "prefix": "PINGUARD.timer"},
    "verification": {"color": Colors.BRIGHT_YELLOW, "prefix": "PINGUARD.verification"},
    "navigation": {"color": Colors.CYAN, "prefix": "PINGUARD.navigation"},
    "api": {"color": Colors.BRIGHT_GREEN, "prefix": "PINGUARD.api"},
    "api.pin": {"color": Colors.GREEN, "prefix": "PINGUARD.api.pin"},
    "api.session": {"color": Colors.GREEN, "prefix": "PINGUARD.api.session"},
}

# Default for unknown areas
DEFAULT_AREA_CONFIG = {"color": Colors.WHITE, "prefix": "PINGUARD"}


class ColoredConsoleFormatter(logging.Formatter):
    """Custom formatter that adds colors and area prefixes to console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.RESET,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BRIGHT_RED + Colors.BOLD,
    }

    def __init__(self, area: str = "main"):
        super().__init__()
        config = AREA_CONFIG.get(area, DEFAULT_AREA_CONFIG)
        self.area_color = config["color"]
        self.area_prefix = config["prefix"]

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        # Format: [PINGUARD.area] HH:MM:SS LEVEL: message
        prefix = f"{self.area_color}[{self.area_prefix}]{Colors.RESET}"
        time_str = f"{Colors.DIM}{timestamp}{Colors.RESET}"
        level_str = f"{level_color}{record.levelname:<8}{Colors.RESET}"

        message = f"{prefix} {time_str} {level_str} {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class FileFormatter(logging.Formatter):
    """Formatter for file output with full timestamps and structured format."""

    def __init__(self, area: str = "main"):
        super().__init__()
        config = AREA_CONFIG.get(area, DEFAULT_AREA_CONFIG)
        self.area_prefix = config["prefix"]

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        # Include guard context if the caller attached it
        extra = ""
        if hasattr(record, "guard_state"):
            extra += f" guard_state={record.guard_state}"
        if hasattr(record, "route"):
            extra += f" route={record.route}"

        message = f"{timestamp} [{self.area_prefix}] {record.levelname}: {record.getMessage()}{extra}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class AreaFileHandler(logging.FileHandler):
    """File handler attached to a single area logger."""


# Global log directory
_log_dir: Optional[Path] = None
_file_handler: Optional[logging.FileHandler] = None


def setup_logging(
    log_dir: Optional[str] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Initialize the logging system.

    Args:
        log_dir: Directory for log files. Defaults to ./logs
        console_level: Minimum level for console output
        file_level: Minimum level for file output

    Returns:
        Path to the log directory
    """
    global _log_dir, _file_handler

    if log_dir:
        _log_dir = Path(log_dir)
    else:
        _log_dir = Path(__file__).parent.parent / "logs"

    _log_dir.mkdir(parents=True, exist_ok=True)

    log_filename = datetime.now().strftime("pinguard_%Y%m%d_%H%M%S.log")
    log_path = _log_dir / log_filename

    # Keep a symlink to the latest log
    latest_link = _log_dir / "latest.log"
    try:
        if latest_link.is_symlink() or latest_link.exists():
            latest_link.unlink()
        latest_link.symlink_to(log_filename)
    except OSError:
        pass  # Symlinks may not work on all systems

    _file_handler = logging.FileHandler(log_path, encoding="utf-8")
    _file_handler.setLevel(file_level)
    _file_handler.setFormatter(FileFormatter("main"))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(_file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter("main"))
    root_logger.addHandler(console_handler)

    # Area loggers created at import time predate the file handler
    for name, existing in list(logging.root.manager.loggerDict.items()):
        if (
            name.startswith("pinguard.")
            and isinstance(existing, logging.Logger)
            and existing.handlers
        ):
            _attach_file_handler(existing, name[len("pinguard."):], file_level)

    root_logger.info(f"Logging initialized. Log file: {log_path}")

    return _log_dir


def _attach_file_handler(logger: logging.Logger, area: str, level: int) -> None:
    """Point an area logger at the current log file, replacing any earlier one."""
    for handler in list(logger.handlers):
        if isinstance(handler, AreaFileHandler):
            logger.removeHandler(handler)
            handler.close()

    area_file_handler = AreaFileHandler(_file_handler.baseFilename, encoding="utf-8")
    area_file_handler.setLevel(level)
    area_file_handler.setFormatter(FileFormatter(area))
    logger.addHandler(area_file_handler)


def get_logger(area: str = "main") -> logging.Logger:
    """
    Get a logger for a specific application area.

    Args:
        area: The application area (e.g., "guard", "storage", "api.pin")

    Returns:
        Configured logger instance

    Example:
        logger = get_logger("guard")
        logger.info("Session locked after inactivity")
        # Output: [PINGUARD.guard] 14:32:15 INFO     Session locked after inactivity
    """
    logger = logging.getLogger(f"pinguard.{area}")

    # Only configure if not already done
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(ColoredConsoleFormatter(area))
        logger.addHandler(console_handler)

        # Add file handler if setup_logging was called
        if _file_handler:
            _attach_file_handler(logger, area, _file_handler.level)

        # Don't propagate to root to avoid duplicate logs
        logger.propagate = False

    return logger


def get_log_dir() -> Optional[Path]:
    """Get the current log directory path."""
    return _log_dir
