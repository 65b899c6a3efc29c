"""
Error Handling Utilities for the Export Engine

This module defines the export error taxonomy and the decorators that
translate low-level failures into it, so every failure reaches the
orchestrator with a consistent type and an unchanged message.
"""

import asyncio
import logging
import traceback
from functools import wraps
from typing import Any, Callable, Optional, Type

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """Base class for export pipeline failures."""
    pass


class CaptureError(ExportError):
    """Raised when rasterizing a surface (or sub-surface) fails."""
    pass


class AssemblyError(ExportError):
    """Raised when page fitting or document embedding fails."""
    pass


class SaveError(ExportError):
    """Raised when the final artifact cannot be written."""
    pass


class SizeWarning(UserWarning):
    """Non-fatal: an estimated or actual size exceeded a threshold."""
    pass


def report_size_warning(
    message: str,
    log: Optional[logging.Logger] = None,
    **context: Any
) -> SizeWarning:
    """
    Log a SizeWarning event and return it.

    Size warnings never interrupt the pipeline; they only surface in the logs.

    Args:
        message: Human-readable description
        log: Logger to emit on (defaults to this module's logger)
        **context: Extra key/value pairs appended to the message

    Returns:
        The SizeWarning instance that was logged
    """
    warning = SizeWarning(message)
    details = ", ".join(f"{key}={value}" for key, value in context.items())
    (log or logger).warning(f"SizeWarning: {message}" + (f" ({details})" if details else ""))
    return warning


def convert_exceptions(
    target: Type[ExportError],
    error_context: str = "",
    log_level: int = logging.ERROR
) -> Callable:
    """
    Decorator re-raising unexpected exceptions as ``target``.

    The new exception carries the original message unchanged and chains the
    original as ``__cause__``. ExportError subclasses pass through untouched.
    Works for both plain and ``async`` functions.

    Args:
        target: ExportError subclass to raise
        error_context: Context string for log messages
        log_level: Logging level for the conversion log line

    Returns:
        Decorator function
    """
    def _convert(func_name: str, exc: Exception) -> ExportError:
        context = f"{error_context}: " if error_context else ""
        logger.log(log_level, f"{context}{type(exc).__name__}: {exc}")
        logger.debug(f"Error details for {func_name}: {traceback.format_exc()}")
        return target(str(exc) or type(exc).__name__)

    def decorator(func: Callable) -> Callable:
        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except ExportError:
                    raise
                except Exception as e:
                    raise _convert(func.__name__, e) from e
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ExportError:
                raise
            except Exception as e:
                raise _convert(func.__name__, e) from e
        return wrapper
    return decorator


def user_message(error: BaseException) -> str:
    """Build the user-facing failure message for an export error."""
    detail = str(error) if str(error) else "Unknown error"
    return f"Export failed: {detail}. Please try again."
