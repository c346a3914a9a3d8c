"""
Unit tests for logging module.
"""

import logging

from aem_server.core.logging import (
    AEMServerFormatter,
    StructuredLogger,
    get_logger,
    setup_logging,
)


def make_record(msg: str = "Test message", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestAEMServerFormatter:
    """Test custom formatter."""

    def test_format_basic_log(self):
        """Test basic log formatting."""
        result = AEMServerFormatter().format(make_record())
        assert "ℹ️" in result
        assert "Test message" in result

    def test_format_with_extra_data(self):
        """Test formatting with extra data."""
        record = make_record()
        record.extra_data = {"tool": "aem_get_page", "status_code": 403}
        result = AEMServerFormatter().format(record)
        assert "tool=aem_get_page" in result
        assert "status_code=403" in result

    def test_warning_emoji(self):
        result = AEMServerFormatter().format(make_record(level=logging.WARNING))
        assert "⚠️" in result


class TestStructuredLogger:
    """Test structured logger."""

    def test_logger_creation(self):
        """Test logger creation."""
        logger = StructuredLogger("test_logger")
        assert logger.logger.name == "test_logger"

    def test_extra_data_attached(self, caplog):
        """Keyword arguments end up on the record."""
        logger = StructuredLogger("aem_test_extra")
        with caplog.at_level(logging.INFO, logger="aem_test_extra"):
            logger.info("Tool call succeeded", tool="aem_search", duration_ms=12)

        record = caplog.records[-1]
        assert record.getMessage() == "Tool call succeeded"
        assert record.extra_data == {"tool": "aem_search", "duration_ms": 12}

    def test_disabled_level_skipped(self, caplog):
        logger = StructuredLogger("aem_test_quiet", level="ERROR")
        with caplog.at_level(logging.INFO):
            logger.info("ignored")
        assert not [r for r in caplog.records if r.name == "aem_test_quiet"]


class TestLoggingSetup:
    """Test logging setup functions."""

    def test_get_logger(self):
        """Test getting a logger."""
        logger = get_logger("test_module")
        assert isinstance(logger, StructuredLogger)

    def test_setup_logging_levels(self):
        """Test different log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            setup_logging(level)
            root_logger = logging.getLogger()
            assert root_logger.level == getattr(logging, level)

    def test_setup_logging_with_file(self, tmp_path):
        """Test logging setup with file."""
        log_file = tmp_path / "logs" / "aem.log"
        setup_logging("INFO", log_file)

        logging.getLogger("aem_test_file").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "written to file" in log_file.read_text()

    def test_httpx_quiet_unless_debug(self):
        setup_logging("INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        setup_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG
