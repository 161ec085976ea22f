"""Standardized Error Handling Utilities

Provides the Gifed exception hierarchy and the helpers that turn transport
and codec failures into it with consistent logging.
"""

from __future__ import annotations

import logging
import traceback
from contextlib import contextmanager
from enum import Enum
from typing import Any


class ErrorLevel(Enum):
    """Error severity levels for consistent logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class GifedError(Exception):
    """Base exception class for all Gifed errors."""

    def __init__(
        self, message: str, cause: Exception | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class InvalidArgumentError(GifedError, ValueError):
    """Raised when a required input is missing, empty or out of range."""

    pass


class DimensionMismatchError(GifedError, ValueError):
    """Raised when a replacement frame image changes the frame's size."""

    pass


class NotAnimatedError(GifedError):
    """Raised when a source lacks the frame-delay or loop-count metadata."""

    pass


class EmptyAnimationError(GifedError):
    """Raised when saving an animation that holds no frames."""

    pass


class GifIOError(GifedError, OSError):
    """Raised when reading from or writing to the underlying transport fails."""

    pass


class UnsupportedEncoderError(GifedError):
    """Raised when no GIF-capable encoder is available for the configured backend."""

    pass


class EncoderProtocolError(GifedError):
    """Raised when the multi-frame write sequence is driven out of order."""

    pass


def handle_error(
    error: Exception,
    operation: str,
    error_type: type[GifedError] = GifIOError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
    reraise: bool = True,
) -> GifedError | None:
    """Standardized error handling with consistent logging and error transformation.

    Args:
        error: Original exception that occurred
        operation: Description of operation that failed
        error_type: Type of GifedError to raise
        level: Logging level for the error
        context: Additional context information
        logger: Logger to use (defaults to module logger)
        reraise: Whether to reraise the transformed exception

    Returns:
        The transformed error if reraise=False, otherwise None

    Raises:
        GifedError: Transformed error if reraise=True
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    message = f"Failed to {operation}: {error}"

    error_context = dict(context or {})
    error_context.update(
        {
            "operation": operation,
            "original_error_type": type(error).__name__,
        }
    )

    transformed_error = error_type(message, cause=error, context=error_context)

    log_message = f"{operation.capitalize()} failed: {error}"
    context_str = ", ".join(f"{k}={v}" for k, v in error_context.items())
    if context_str:
        log_message += f" (context: {context_str})"

    log_func = getattr(logger, level.value)
    log_func(log_message)

    # Traceback only at debug level for investigation
    if level in [ErrorLevel.ERROR, ErrorLevel.CRITICAL]:
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")

    if reraise:
        raise transformed_error from error
    return transformed_error


@contextmanager
def error_context(
    operation: str,
    error_type: type[GifedError] = GifIOError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Any:
    """Context manager for standardized error handling.

    Usage:
        with error_context("load animated GIF", GifIOError, context={"source": "a.gif"}):
            risky_operation()

    Args:
        operation: Description of operation being performed
        error_type: Type of GifedError to raise on failure
        level: Logging level for errors
        context: Additional context information
        logger: Logger to use
    """
    try:
        yield
    except GifedError:
        # Gifed errors already carry their meaning
        raise
    except Exception as e:
        handle_error(e, operation, error_type, level, context, logger, reraise=True)


def log_warning_with_context(
    message: str, context: dict | None = None, logger: logging.Logger | None = None
) -> None:
    """Log a warning with standardized context formatting.

    Args:
        message: Warning message
        context: Additional context information
        logger: Logger to use
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    warning_msg = message
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        warning_msg += f" (context: {context_str})"

    logger.warning(warning_msg)
