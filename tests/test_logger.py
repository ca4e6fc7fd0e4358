"""Tests for JSON logger setup."""

import json
import logging

from nginx_epagent.utils.logger import setup_logger


class TestSetupLogger:
    def test_repeated_setup_keeps_one_handler(self):
        logger = setup_logger("nginx_epagent.test_repeat", "INFO")
        logger = setup_logger("nginx_epagent.test_repeat", "debug")

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_emits_json_lines(self, capsys):
        logger = setup_logger("nginx_epagent.test_json", "INFO")

        logger.info("Poll cycle finished", extra={"error_type": "none"})

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["message"] == "Poll cycle finished"
        assert record["level"] == "INFO"
        assert record["logger"] == "nginx_epagent.test_json"
        assert record["error_type"] == "none"
        assert "timestamp" in record
