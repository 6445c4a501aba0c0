"""Tests for pinguard.logging file output."""

from __future__ import annotations

import logging

import pytest

import pinguard.logging as pinguard_logging
from pinguard.lock import session as guard_module
from pinguard.logging import AreaFileHandler, get_logger, setup_logging
from pinguard.navigation import Navigator


@pytest.fixture()
def log_dir(tmp_path, monkeypatch):
    """Run setup_logging against a temp dir and restore global logging afterwards."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    monkeypatch.setattr(pinguard_logging, "_file_handler", None)
    monkeypatch.setattr(pinguard_logging, "_log_dir", None)

    yield tmp_path / "logs"

    for name, existing in list(logging.root.manager.loggerDict.items()):
        if name.startswith("pinguard.") and isinstance(existing, logging.Logger):
            for handler in list(existing.handlers):
                if isinstance(handler, AreaFileHandler):
                    existing.removeHandler(handler)
                    handler.close()
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def read_log(log_dir) -> str:
    files = sorted(log_dir.glob("pinguard_*.log"))
    assert files, "no log file written"
    return files[-1].read_text(encoding="utf-8")


def area_file_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, AreaFileHandler)]


class TestFileLogging:

    def test_loggers_created_before_setup_reach_the_file(self, log_dir):
        setup_logging(str(log_dir))
        guard_module.logger.info("guard line after setup")

        content = read_log(log_dir)
        assert "[PINGUARD.guard] INFO: guard line after setup" in content

    def test_loggers_created_after_setup_reach_the_file(self, log_dir):
        setup_logging(str(log_dir))
        get_logger("api.pin").warning("late logger line")

        assert "[PINGUARD.api.pin] WARNING: late logger line" in read_log(log_dir)

    def test_repeated_setup_keeps_one_file_handler(self, log_dir):
        setup_logging(str(log_dir))
        setup_logging(str(log_dir))
        assert len(area_file_handlers(guard_module.logger)) == 1

    @pytest.mark.asyncio
    async def test_guard_state_is_written(self, log_dir, guard):
        setup_logging(str(log_dir))
        await guard.hydrate()
        await guard.setup_pin("7412")

        assert "PIN configured guard_state=unlocked" in read_log(log_dir)

    def test_route_is_written(self, log_dir):
        setup_logging(str(log_dir))
        Navigator().navigate("/pin-lock")

        assert "Navigate -> /pin-lock route=/pin-lock" in read_log(log_dir)
