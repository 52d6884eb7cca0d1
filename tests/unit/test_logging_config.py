"""Unit tests for logging setup."""

import logging

import pytest

from bookmark_feeds import logging_config
from bookmark_feeds.config import ReaderConfig
from bookmark_feeds.logging_config import setup_logging


class TestSetupLogging:
    """Tests for configuring the bookmark_feeds logger."""

    def test_handler_installed_once(self):
        setup_logging(ReaderConfig(log_level="INFO"))
        setup_logging(ReaderConfig(log_level="DEBUG"))

        logger = logging.getLogger("bookmark_feeds")
        assert logger.handlers.count(logging_config._handler) == 1
        assert logger.level == logging.DEBUG

    def test_handler_follows_current_stderr(self, capsys):
        setup_logging(ReaderConfig(log_level="WARNING"))

        logging.getLogger("bookmark_feeds.services").warning("feed went away")

        assert "feed went away" in capsys.readouterr().err

    def test_unknown_level(self):
        config = ReaderConfig()
        config.log_level = "LOUD"

        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging(config)
