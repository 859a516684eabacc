"""
Tests for lumina_core.logging_config — human and JSON output.
"""

from __future__ import annotations

import io
import json
import logging

import pytest

from lumina_core.logging_config import ROOT_LOGGER_NAME, setup_logging


@pytest.fixture
def restore_root_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    handlers, level, propagate = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.mark.usefixtures("restore_root_logger")
class TestSetupLogging:
    def test_human_format(self):
        out = io.StringIO()
        logger = setup_logging("INFO", "human", stream=out)
        logger.getChild("wallet").info("Wallet ready")
        line = out.getvalue()
        assert "[INFO   ]" in line
        assert "lumina.wallet: Wallet ready" in line
        # StringIO is not a terminal
        assert "\033[" not in line

    def test_json_format(self):
        out = io.StringIO()
        logger = setup_logging("DEBUG", "json", stream=out)
        logger.getChild("sync").debug("batch done")
        record = json.loads(out.getvalue().strip())
        assert record["level"] == "DEBUG"
        assert record["logger"] == "lumina.sync"
        assert record["msg"] == "batch done"
        assert "ts" in record

    def test_level_filters(self):
        out = io.StringIO()
        logger = setup_logging("WARNING", "human", stream=out)
        logger.info("hidden")
        logger.warning("shown")
        assert "hidden" not in out.getvalue()
        assert "shown" in out.getvalue()

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logging("NOPE", "human", stream=io.StringIO())
        assert logger.level == logging.INFO

    def test_reconfigure_does_not_duplicate_handlers(self):
        setup_logging("INFO", "human", stream=io.StringIO())
        logger = setup_logging("INFO", "human", stream=io.StringIO())
        assert len(logger.handlers) == 1

    def test_file_handler_writes_json(self, tmp_path):
        log_file = tmp_path / "logs" / "wallet.log"
        logger = setup_logging("INFO", "human", log_file=str(log_file), stream=io.StringIO())
        try:
            1 / 0
        except ZeroDivisionError:
            logger.exception("boom")
        for handler in logger.handlers:
            handler.flush()
        record = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert record["msg"] == "boom"
        assert "ZeroDivisionError" in record["exception"]
