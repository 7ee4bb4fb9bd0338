"""Tests for logger setup."""

import logging

from lung_capsnet.utils import setup_logger


class TestSetupLogger:
    """Test suite for setup_logger."""

    def test_console_only(self):
        """Test a console handler is attached at the requested level."""
        logger = setup_logger("lung_capsnet.test.console", level=logging.DEBUG)

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_level_name(self):
        """Test level can be given by name."""
        logger = setup_logger("lung_capsnet.test.named", level="warning")
        assert logger.level == logging.WARNING

    def test_file_handler(self, tmp_path):
        """Test records are written to the log file."""
        log_file = tmp_path / "logs" / "train.log"
        logger = setup_logger("lung_capsnet.test.file", log_file=log_file)

        logger.info("hello from the test")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        content = log_file.read_text()
        assert "hello from the test" in content
        assert "lung_capsnet.test.file - INFO" in content

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path):
        """Test calling setup twice keeps a single set of handlers."""
        name = "lung_capsnet.test.repeat"
        setup_logger(name, log_file=tmp_path / "a.log")
        logger = setup_logger(name, log_file=tmp_path / "b.log")

        assert len(logger.handlers) == 2
