"""Standardized Error Handling Utilities

Provides consistent error handling patterns across the DistortLab codebase:
a small exception hierarchy, precondition helpers for array inputs and a
context manager that turns foreign exceptions into DistortLab errors.
"""

from __future__ import annotations

import logging
import traceback
from contextlib import contextmanager
from enum import Enum
from typing import Any

import numpy as np


class ErrorLevel(Enum):
    """Error severity levels for consistent logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class DistortLabError(Exception):
    """Base exception class for all DistortLab errors."""

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


class ValidationError(DistortLabError):
    """Raised when an input precondition is violated (shape, emptiness, channels)."""

    pass


class ProcessingError(DistortLabError):
    """Raised when image reading, writing or conversion fails."""

    pass


class ConfigurationError(DistortLabError):
    """Raised when configuration is invalid or missing."""

    pass


def handle_error(
    error: Exception,
    operation: str,
    error_type: type[DistortLabError] = ProcessingError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
    reraise: bool = True,
) -> DistortLabError | None:
    """Standardized error handling with consistent logging and error transformation.

    Args:
        error: Original exception that occurred
        operation: Description of operation that failed
        error_type: Type of DistortLabError to raise
        level: Logging level for the error
        context: Additional context information
        logger: Logger to use (defaults to module logger)
        reraise: Whether to reraise the transformed exception

    Returns:
        The transformed error if reraise=False, otherwise None

    Raises:
        DistortLabError: Transformed error if reraise=True
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

    if level in [ErrorLevel.ERROR, ErrorLevel.CRITICAL]:
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")

    if reraise:
        raise transformed_error from error
    return transformed_error


@contextmanager
def error_context(
    operation: str,
    error_type: type[DistortLabError] = ProcessingError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Any:
    """Context manager for standardized error handling.

    Usage:
        with error_context("read image", ProcessingError, context={'file': 'a.png'}):
            risky_operation()

    DistortLab errors pass through unchanged; anything else is wrapped in
    ``error_type`` and logged.
    """
    try:
        yield
    except DistortLabError:
        raise
    except Exception as e:
        handle_error(e, operation, error_type, level, context, logger, reraise=True)


def require_2d(array: np.ndarray, name: str) -> np.ndarray:
    """Check that *array* is a non-empty 2D array and return it."""
    array = np.asarray(array)
    if array.ndim != 2:
        raise ValidationError(
            f"{name} must be a 2D array, got shape {array.shape}",
            context={"name": name, "shape": array.shape},
        )
    if array.size == 0:
        raise ValidationError(f"{name} must not be empty", context={"name": name})
    return array


def require_same_shape(first: np.ndarray, second: np.ndarray, what: str) -> None:
    """Check that two arrays share the same shape."""
    if first.shape != second.shape:
        raise ValidationError(
            f"{what}: shape mismatch {first.shape} vs {second.shape}",
            context={"first": first.shape, "second": second.shape},
        )
