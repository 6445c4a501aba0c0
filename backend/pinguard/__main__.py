"""Entry point for the pinguard service.

Usage:
    python -m pinguard [options]

Options:
    --storage-path PATH          JSON file holding the PIN hash and settings
                                 (default: PINGUARD_STORAGE_PATH or ~/.pinguard/preferences.json)
    --fallback-storage-path PATH Second JSON file mirroring the first
    --inactivity-timeout MS      Default inactivity timeout (default: 300000)
    --check-interval MS          Inactivity check cadence (default: 10000)
    --host HOST                  Bind address (default: 127.0.0.1)
    --port PORT                  HTTP port (default: 8200)
    --log-dir DIR                Also write log files to DIR
    --memory-fallback            Keep values in memory when no storage file can be written
"""

import argparse

import uvicorn

from .config import DEFAULT_PORT, GuardConfig
from .lock.session import CHECK_INTERVAL_MS, DEFAULT_INACTIVITY_TIMEOUT_MS
from .logging import get_logger, setup_logging
from .main import create_app


def parse_args() -> GuardConfig:
    parser = argparse.ArgumentParser(description="pinguard PIN lock service")
    parser.add_argument("--storage-path", default="", help="Primary storage file")
    parser.add_argument("--fallback-storage-path", default="", help="Mirror storage file")
    parser.add_argument(
        "--inactivity-timeout", type=int, default=DEFAULT_INACTIVITY_TIMEOUT_MS,
        help="Default inactivity timeout (ms)",
    )
    parser.add_argument(
        "--check-interval", type=int, default=CHECK_INTERVAL_MS,
        help="Inactivity check interval (ms)",
    )
    parser.add_argument("--host", default="", help="Bind address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="HTTP port")
    parser.add_argument("--log-dir", default="", help="Directory for log files")
    parser.add_argument(
        "--memory-fallback", action="store_true",
        help="Keep values in memory when no storage file can be written",
    )

    args = parser.parse_args()

    return GuardConfig(
        storage_path=args.storage_path,
        fallback_storage_path=args.fallback_storage_path,
        inactivity_timeout_ms=args.inactivity_timeout,
        check_interval_ms=args.check_interval,
        host=args.host,
        port=args.port,
        log_dir=args.log_dir,
        memory_fallback=args.memory_fallback,
    )


def main():
    config = parse_args()
    if config.log_dir:
        setup_logging(config.log_dir)

    logger = get_logger("main")
    logger.info("pinguard starting")
    logger.info(f"  Storage:  {config.storage_path}")
    logger.info(f"  Timeout:  {config.inactivity_timeout_ms}ms")
    logger.info(f"  Address:  http://{config.host}:{config.port}")

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level="warning",
    )


if __name__ == "__main__":
    main()
