# -*- coding: utf-8 -*-
"""Custom exceptions for the flow library."""


class FlowError(Exception):
    """Base class for flow errors."""

    def __init__(self, message: str, context: str = None):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        if self.context:
            return f"[{self.context}] {self.message}"
        return self.message


class FlowConstructionError(FlowError, ValueError):
    """Raised eagerly when a step or a sequencer is built with invalid input."""

    def __init__(self, message: str, field: str = None,
                 errors: list = None, context: str = None):
        super().__init__(message, context=context)
        self.field = field
        self.errors = errors or []


class StepExecutionError(FlowError):
    """
    Record of a step failure contained by the sequencer.

    Never raised to callers of start()/continue_flow(); exposed through
    FlowSequencer.failure so a host can render it.
    """

    def __init__(self, message: str, original_error: Exception = None,
                 step_index: int = None, step_name: str = "",
                 operation: str = None):
        super().__init__(message, context=operation)
        self.original_error = original_error
        self.step_index = step_index
        self.step_name = step_name
        self.operation = operation
        if original_error is not None:
            self.__cause__ = original_error
