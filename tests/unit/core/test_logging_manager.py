"""
Tests for logging_manager module.

Tests the structured MomentumLogger records, the safe_logger function and
the NullLogger class that provide null-safe logging throughout the
codebase, and the click error handler.
"""
import json

import click
import pytest
from unittest.mock import MagicMock

from momentum.core.exceptions import (
    MirrorWriteError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from momentum.core.logging_manager import (
    MomentumLogger,
    NullLogger,
    error_fields,
    format_cli_error,
    format_fields,
    handle_cli_error,
    safe_logger,
)


def _raised(error):
    """Return ``error`` after raising it, so it carries a traceback."""
    try:
        raise error
    except Exception as e:
        return e


class TestRecordFields:
    """Tests for the field helpers."""

    def test_identifiers_come_first(self):
        rendered = format_fields(
            {"duration": 0.5, "entry_id": "e1", "operation": "update_entry", "version_id": "v2"}
        )
        assert list(json.loads(rendered)) == ["operation", "entry_id", "version_id", "duration"]

    def test_empty_fields_render_nothing(self):
        assert format_fields(None) == ""
        assert format_fields({}) == ""

    def test_error_context_is_lifted(self):
        error = MirrorWriteError("Mirror write failed", entry_id="e1", path="entries/e1.md", attempts=3)
        fields = error_fields(error, {"operation": "mirror_write"})
        assert fields == {
            "entry_id": "e1",
            "path": "entries/e1.md",
            "attempts": 3,
            "operation": "mirror_write",
            "error_type": "MirrorWriteError",
        }

    def test_caller_context_wins(self):
        error = NotFoundError("Entry not found", operation="get_entry", entry_id="e1")
        assert error_fields(error, {"operation": "show"})["operation"] == "show"

    def test_plain_exceptions(self):
        assert error_fields(ValueError("boom")) == {"error_type": "ValueError"}


class TestFormatCliError:
    def test_message(self):
        assert format_cli_error(NotFoundError("Entry not found")) == "❌ NotFoundError: Entry not found"

    def test_context_in_message(self):
        text = format_cli_error(NotFoundError("Entry not found", entry_id="abc"))
        assert text == "❌ NotFoundError: Entry not found (entry_id=abc)"

    def test_traceback_of_the_error_itself(self):
        error = _raised(TransactionError("Transaction failed", operation="append_version"))
        text = format_cli_error(error, show_traceback=True)
        assert "Traceback (most recent call last)" in text
        assert "_raised" in text

    def test_no_traceback_for_unraised_error(self):
        assert "Traceback" not in format_cli_error(ValueError("x"), show_traceback=True)


class TestMomentumLogger:
    """Tests for the rotating file logger."""

    @pytest.fixture
    def logger(self, tmp_path):
        logger = MomentumLogger(tmp_path / "logs", component_name="test")
        yield logger
        logger.close()

    @staticmethod
    def _read(logger, name):
        for handler in logger.logger.handlers:
            handler.flush()
        return (logger.log_dir / name).read_text(encoding="utf-8")

    def test_creates_log_files(self, logger, tmp_path):
        """Component and error log files should be created in log_dir."""
        logger.log_info("hello")
        assert (tmp_path / "logs" / "test.log").exists()
        assert (tmp_path / "logs" / "errors.log").exists()

    def test_logger_is_namespaced(self, logger):
        assert logger.logger.name == "momentum.test"
        assert logger.logger.propagate is False

    def test_operation_record(self, logger):
        logger.log_operation("create_entry_completed", {"entry_id": "abc", "duration": 0.1})
        line = self._read(logger, "test.log").strip().splitlines()[-1]

        assert "INFO" in line
        _, _, payload = line.partition("create_entry_completed ")
        assert json.loads(payload) == {"entry_id": "abc", "duration": 0.1}

    def test_rejection_is_info_without_traceback(self, logger):
        logger.log_error(_raised(NotFoundError("Entry not found", entry_id="abc")), {"operation": "show"})

        text = self._read(logger, "test.log")
        assert "rejected: Entry not found" in text
        assert '"operation": "show", "entry_id": "abc"' in text
        assert "Traceback" not in text
        assert self._read(logger, "errors.log") == ""

    def test_validation_error_is_rejection(self, logger):
        logger.log_error(ValidationError("Entry content must be a string, got int"))
        assert "rejected:" in self._read(logger, "test.log")
        assert self._read(logger, "errors.log") == ""

    def test_fault_goes_to_error_log_with_traceback(self, logger):
        error = _raised(TransactionError("Transaction failed", operation="append_version", entry_id="e1"))
        logger.log_error(error, {"attempts": 3})

        text = self._read(logger, "errors.log")
        assert "TransactionError: Transaction failed" in text
        assert '"operation": "append_version", "entry_id": "e1", "attempts": 3' in text
        assert "Traceback (most recent call last)" in text

    def test_log_cli_error_formats_message(self, logger):
        message = logger.log_cli_error(NotFoundError("Entry not found"))
        assert message == "❌ NotFoundError: Entry not found"
        assert '"operation": "cli"' in self._read(logger, "test.log")

    def test_close_detaches_handlers(self, tmp_path):
        logger = MomentumLogger(tmp_path / "logs", component_name="closing")
        logger.close()
        assert logger.logger.handlers == []


class TestNullLogger:
    """Tests for NullLogger class."""

    def test_null_logger_methods_no_op(self):
        """NullLogger logging methods should do nothing."""
        logger = NullLogger()
        # Should not raise any exception
        logger.log_operation("test_op", {"key": "value"})
        logger.log_error(ValueError("test error"), {"context": "test"})
        logger.log_debug("debug message", {"key": "value"})
        logger.log_info("info message")
        logger.log_warning("warning message", {"key": "value"})

    def test_null_logger_log_cli_error_returns_formatted(self):
        """NullLogger.log_cli_error should return formatted error string."""
        result = NullLogger().log_cli_error(ValueError("test error"), {"context": "test"})
        assert "ValueError" in result
        assert "test error" in result


class TestSafeLogger:
    """Tests for safe_logger function."""

    def test_safe_logger_returns_logger_when_provided(self):
        """safe_logger should return the same logger when not None."""
        mock_logger = MagicMock(spec=MomentumLogger)
        assert safe_logger(mock_logger) is mock_logger

    def test_safe_logger_returns_null_logger_when_none(self):
        """safe_logger should return NullLogger when logger is None."""
        assert isinstance(safe_logger(None), NullLogger)

    def test_safe_logger_null_logger_is_singleton(self):
        """safe_logger should return the same NullLogger instance."""
        assert safe_logger(None) is safe_logger(None)

    def test_works_with_log_details(self):
        """safe_logger should forward log calls with details dict."""
        mock_logger = MagicMock(spec=MomentumLogger)
        details = {"entry_id": "abc"}

        safe_logger(mock_logger).log_operation("update_entry", details)
        mock_logger.log_operation.assert_called_once_with("update_entry", details)


class TestHandleCliError:
    """Tests for the click error handler."""

    def test_logs_echoes_and_exits(self, capsys):
        mock_logger = MagicMock(spec=MomentumLogger)
        mock_logger.log_cli_error.return_value = "❌ NotFoundError: Entry not found"
        ctx = click.Context(click.Command("show"), obj={"logger": mock_logger})

        with pytest.raises(SystemExit) as exc_info:
            handle_cli_error(ctx, NotFoundError("Entry not found"), "show", {"entry_id": "x"})

        assert exc_info.value.code == 1
        context = mock_logger.log_cli_error.call_args[0][1]
        assert context == {"operation": "show", "entry_id": "x"}
        assert "Entry not found" in capsys.readouterr().err

    def test_without_logger(self, capsys):
        ctx = click.Context(click.Command("show"), obj={})

        with pytest.raises(SystemExit):
            handle_cli_error(ctx, NotFoundError("Entry not found"), "show", exit_code=2)

        assert "NotFoundError" in capsys.readouterr().err
