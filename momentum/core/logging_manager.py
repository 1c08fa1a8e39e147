#!/usr/bin/env python3
"""
logging_manager.py
--------------------
Structured logging for the Momentum storage core.

Every record is one line: an event name followed by a JSON object of
fields. The journal identifiers (operation, entry_id, version_id, path,
attempts) always come first so a single entry's history can be grepped
out of the rotating logs.

Errors raised by the core carry their identifiers in
``MomentumError.context``; ``log_error`` lifts them into the record, so
callers only add what the exception does not already know.

Severity:
    - Rejections (unknown id, invalid input) are INFO, without traceback
    - Everything else passed to ``log_error`` is ERROR, with traceback,
      and is also written to ``errors.log``
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import json
import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

# --- Third party imports ---
import click

# --- Local imports ---
from momentum.core.exceptions import MomentumError, NotFoundError, ValidationError

# Fields that identify what a record is about, in output order
CORE_FIELDS = ("operation", "entry_id", "version_id", "path", "attempts")

# Expected outcomes of user requests, not faults of the store
REJECTIONS = (NotFoundError, ValidationError)

FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s %(message)s"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def format_fields(fields: Optional[Dict[str, Any]]) -> str:
    """JSON rendering of record fields, identifiers first."""
    if not fields:
        return ""
    ordered = {key: fields[key] for key in CORE_FIELDS if key in fields}
    ordered.update((k, v) for k, v in fields.items() if k not in ordered)
    return json.dumps(ordered, default=str, ensure_ascii=False)


def error_fields(
    error: BaseException, context: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Merge an exception's own context with the caller's.

    The caller's values win on key collisions; ``error_type`` is always set.
    """
    fields: Dict[str, Any] = {}
    if isinstance(error, MomentumError):
        fields.update(error.context)
    if context:
        fields.update(context)
    fields["error_type"] = type(error).__name__
    return fields


def format_cli_error(error: BaseException, show_traceback: bool = False) -> str:
    """
    Terminal rendering of an error.

    Examples:
        >>> format_cli_error(NotFoundError("Entry not found"))
        '❌ NotFoundError: Entry not found'
    """
    message = f"❌ {type(error).__name__}: {error}"
    if show_traceback and error.__traceback__ is not None:
        tb = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        message = f"{message}\n\n{tb}"
    return message


class MomentumLogger:
    """
    Rotating, structured logger for one component.

    Attributes:
        log_dir: Directory for log files
        component_name: Component label ('storage', 'cli')
        logger: Underlying ``momentum.<component>`` logger
    """

    def __init__(
        self,
        log_dir: Path,
        component_name: str = "storage",
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        console_level: int = logging.WARNING,
    ) -> None:
        """
        Args:
            log_dir: Directory for log files
            component_name: Component label, also the main log file name
            max_bytes: Maximum log file size before rotation (default: 10MB)
            backup_count: Number of rotated files to keep (default: 5)
            console_level: Minimum level echoed to stderr
        """
        self.log_dir = Path(log_dir)
        self.component_name = component_name
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.console_level = console_level
        self._setup_logger()

    def _setup_logger(self) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger(f"momentum.{self.component_name}")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        # Reset only this logger's handlers (not global logger state)
        self.logger.handlers = []

        self._add_file_handler(self.log_dir / f"{self.component_name}.log", logging.DEBUG)
        self._add_file_handler(self.log_dir / "errors.log", logging.ERROR)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(self.console_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        self.logger.addHandler(console_handler)

    def _add_file_handler(self, file_path: Path, level: int) -> None:
        handler = RotatingFileHandler(
            file_path,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        self.logger.addHandler(handler)

    def close(self) -> None:
        """Detach and close this logger's handlers."""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)

    def _emit(
        self,
        level: int,
        event: str,
        fields: Optional[Dict[str, Any]] = None,
        exc_info: Any = None,
    ) -> None:
        rendered = format_fields(fields)
        message = f"{event} {rendered}" if rendered else event
        self.logger.log(level, message, exc_info=exc_info)

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Record a completed or started storage operation."""
        self._emit(logging.INFO, operation, details)

    def log_debug(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, message, details)

    def log_info(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.INFO, message, details)

    def log_warning(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Recoverable problems, e.g. a mirror file awaiting repair."""
        self._emit(logging.WARNING, message, details)

    def log_error(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an exception with its identifiers.

        Rejections are recorded at INFO without traceback. Any other error
        goes to ERROR (and errors.log) with the traceback the exception
        carries.

        Args:
            error: Exception that occurred
            context: Extra fields; override the exception's own context
        """
        fields = error_fields(error, context)
        text = error.message if isinstance(error, MomentumError) else str(error)

        if isinstance(error, REJECTIONS):
            self._emit(logging.INFO, f"rejected: {text}", fields)
            return

        exc_info = None
        if error.__traceback__ is not None:
            exc_info = (type(error), error, error.__traceback__)
        self._emit(logging.ERROR, f"{type(error).__name__}: {text}", fields, exc_info=exc_info)

    def log_cli_error(
        self,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None,
        show_traceback: bool = False,
    ) -> str:
        """
        Log a command failure and return its terminal rendering.

        Args:
            error: Exception to log
            context: Command context (operation, entry_id, ...)
            show_traceback: Append the traceback to the returned text
        """
        self.log_error(error, context or {"operation": "cli"})
        return format_cli_error(error, show_traceback=show_traceback)


def handle_cli_error(
    ctx: "click.Context",
    error: Exception,
    operation: str,
    additional_context: Optional[Dict[str, Any]] = None,
    exit_code: int = 1,
) -> None:
    """
    Standardized error handling for all CLI commands.

    Logs the failure, prints it to stderr (with traceback under --verbose)
    and exits.

    Args:
        ctx: Click context object containing logger and verbose flag
        error: Exception that occurred
        operation: Name of the command that failed (e.g., 'new', 'restore')
        additional_context: Optional extra context (entry id, version id)
        exit_code: Exit code for sys.exit() (default: 1)

    Note:
        This function never returns - it always calls sys.exit()
    """
    logger: Optional[MomentumLogger] = ctx.obj.get("logger")
    verbose: bool = ctx.obj.get("verbose", False)

    context = {"operation": operation}
    if additional_context:
        context.update(additional_context)

    error_msg = safe_logger(logger).log_cli_error(error, context, show_traceback=verbose)

    click.echo(error_msg, err=True)
    sys.exit(exit_code)


class NullLogger:
    """
    Logger with the MomentumLogger interface that records nothing.

    Used wherever no log directory is configured, so callers never test
    for ``None``.
    """

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_error(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_debug(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_info(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_warning(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_cli_error(
        self,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None,
        show_traceback: bool = False,
    ) -> str:
        """Terminal rendering only; nothing is logged."""
        return format_cli_error(error, show_traceback=show_traceback)


_null_logger = NullLogger()


def safe_logger(logger: Optional[MomentumLogger]) -> MomentumLogger:
    """
    Return the provided logger or the shared NullLogger if None.

    Usage:
        safe_logger(logger).log_info("message")
    """
    return logger if logger is not None else _null_logger  # type: ignore[return-value]
