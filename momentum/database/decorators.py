#!/usr/bin/env python3
"""
decorators.py
--------------------
Shared decorators and context managers for index operations.

- log_database_operation: timing/logging around a method of any object
  exposing a ``logger`` attribute
- handle_db_errors: translate SQLAlchemy failures into the core taxonomy
- DatabaseOperation: context-manager form combining both
"""
from functools import wraps
from typing import Any, Callable, Dict, Optional
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from momentum.core.exceptions import ConflictError, MomentumError, TransactionError
from momentum.core.logging_manager import MomentumLogger, safe_logger


def _translate_error(error: Exception, context: Dict[str, Any]) -> Optional[Exception]:
    """Map a SQLAlchemy error to its core exception, or None to re-raise as is."""
    if isinstance(error, MomentumError):
        return None
    if isinstance(error, IntegrityError):
        return ConflictError(f"Data integrity violation: {error.orig}", **context)
    if isinstance(error, SQLAlchemyError):
        return TransactionError(f"Database operation failed: {error}", **context)
    return None


def log_database_operation(operation_name: str):
    """
    Decorator to log database operations with timing and context.

    Args:
        operation_name: Name of the operation being logged

    Returns:
        Decorator function
    """

    def decorator(function: Callable) -> Callable:
        @wraps(function)
        def wrapper(self, *args, **kwargs):
            logger = safe_logger(getattr(self, "logger", None))
            start_time = datetime.now()
            operation_id = f"{operation_name}_{start_time.strftime('%Y%m%d_%H%M%S_%f')}"

            logger.log_debug(
                f"Starting {operation_name}",
                {
                    "operation_id": operation_id,
                    "args_count": len(args),
                    "kwargs_keys": list(kwargs.keys()),
                },
            )

            try:
                result = function(self, *args, **kwargs)

                duration = (datetime.now() - start_time).total_seconds()
                logger.log_operation(
                    f"{operation_name}_completed",
                    {
                        "operation_id": operation_id,
                        "duration_seconds": duration,
                        "success": True,
                    },
                )

                return result

            except Exception as e:
                duration = (datetime.now() - start_time).total_seconds()
                logger.log_error(
                    e,
                    {
                        "operation": operation_name,
                        "operation_id": operation_id,
                        "duration_seconds": duration,
                    },
                )
                raise

        return wrapper

    return decorator


def handle_db_errors(function: Callable) -> Callable:
    """
    Decorator to translate common database errors.

    IntegrityError becomes ConflictError, any other SQLAlchemyError becomes
    TransactionError; core exceptions and everything else propagate as is.

    Args:
        function: Function to wrap

    Returns:
        Wrapped function with error handling
    """

    @wraps(function)
    def wrapper(*args, **kwargs):
        try:
            return function(*args, **kwargs)
        except SQLAlchemyError as e:
            translated = _translate_error(e, {"operation": function.__name__})
            if translated is None:
                raise
            raise translated from e

    return wrapper


class DatabaseOperation:
    """
    Context manager combining operation logging and error translation.

    Usage:
        with DatabaseOperation(self.logger, "append_version", entry_id=entry_id):
            ...

    Args:
        logger: Logger (None -> NullLogger)
        operation_name: Name used in log records and error context
        log_start: Also log a debug line when entering
        **context: Extra context attached to log records and raised errors
    """

    def __init__(
        self,
        logger: Optional[MomentumLogger],
        operation_name: str,
        log_start: bool = False,
        **context: Any,
    ) -> None:
        self.logger = safe_logger(logger)
        self.operation_name = operation_name
        self.log_start = log_start
        self.context = context
        self.start_time: Optional[datetime] = None

    def __enter__(self) -> "DatabaseOperation":
        self.start_time = datetime.now()
        if self.log_start:
            self.logger.log_debug(f"Starting {self.operation_name}", self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration = (datetime.now() - self.start_time).total_seconds()

        if exc_val is None:
            details = {"duration_seconds": duration, "success": True}
            details.update(self.context)
            self.logger.log_operation(f"{self.operation_name}_completed", details)
            return False

        error_context = {"operation": self.operation_name, **self.context}
        self.logger.log_error(exc_val, {**error_context, "duration_seconds": duration})

        translated = _translate_error(exc_val, error_context)
        if translated is not None:
            raise translated from exc_val
        return False
