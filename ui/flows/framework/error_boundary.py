# -*- coding: utf-8 -*-
"""
Error Boundary for flow steps.

Contains failures raised by step callbacks:
- Catches exceptions during step execution
- Logs errors with context
- Converts them into StepExecutionError records
- Notifies listeners through a signal
"""

from typing import Callable, Optional
from functools import wraps
import asyncio
import traceback

from PyQt5.QtCore import pyqtSignal, QObject

from services.exceptions import StepExecutionError
from utils.logger import get_logger

logger = get_logger(__name__)


def format_trace(error: BaseException) -> str:
    """Render an exception and its traceback as text."""
    return "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )


class ErrorBoundary(QObject):
    """
    Error boundary around a flow's step callbacks.

    Records every contained failure; never re-raises it.
    """

    error_occurred = pyqtSignal(str, str)  # error_type, error_message

    def __init__(self, flow_name: str, parent: Optional[QObject] = None):
        """
        Initialize error boundary.

        Args:
            flow_name: Name of the flow being protected (for logs)
            parent: Parent object
        """
        super().__init__(parent)
        self.flow_name = flow_name
        self.error_count = 0
        self.last_error: Optional[Exception] = None
        self.last_failure: Optional[StepExecutionError] = None

    def capture(
        self,
        error: Exception,
        operation: str,
        step_index: Optional[int] = None,
        step_name: str = ""
    ) -> StepExecutionError:
        """
        Record an error raised by a step callback.

        Args:
            error: The exception that was raised
            operation: Name of the operation that failed
            step_index: Index of the active step
            step_name: Name of the active step

        Returns:
            StepExecutionError wrapping the original exception
        """
        self.error_count += 1
        self.last_error = error

        error_msg = (
            f"Error in {self.flow_name} during {operation} "
            f"(step {step_index}: {step_name}): {str(error)}"
        )
        logger.error(error_msg, exc_info=error)

        failure = StepExecutionError(
            str(error),
            original_error=error,
            step_index=step_index,
            step_name=step_name,
            operation=operation
        )
        self.last_failure = failure

        self.error_occurred.emit(type(error).__name__, str(error))
        return failure

    def reset(self):
        """Forget recorded errors."""
        self.error_count = 0
        self.last_error = None
        self.last_failure = None

    def get_error_summary(self) -> str:
        """Get summary of errors that occurred."""
        if self.error_count == 0:
            return "No errors"

        return (
            f"Flow: {self.flow_name}\n"
            f"Errors: {self.error_count}\n"
            f"Last error: {type(self.last_error).__name__} - {str(self.last_error)}"
        )


def with_error_boundary(operation_name: str):
    """
    Decorator containing failures of an async sequencer method.

    Usage:
        @with_error_boundary("processing steps")
        async def _process_steps(self, index, *, token):
            ...

    The wrapped coroutine takes a keyword-only run ``token``; the owner's
    ``_on_step_failure(error, operation_name, token)`` receives any
    Exception the coroutine raises. Task cancellation is reported to
    ``_on_run_cancelled(operation_name, token)`` and re-raised.

    Args:
        operation_name: Name of the operation

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self, *args, token: int, **kwargs):
            try:
                return await func(self, *args, token=token, **kwargs)

            except asyncio.CancelledError:
                self._on_run_cancelled(operation_name, token)
                raise

            except MemoryError:
                raise

            except Exception as e:
                self._on_step_failure(e, operation_name, token)
                return None

        return wrapper
    return decorator
