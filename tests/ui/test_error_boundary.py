# -*- coding: utf-8 -*-
"""
Tests for the flow error boundary.
"""
import asyncio

import pytest

from services.exceptions import StepExecutionError
from ui.flows.framework.error_boundary import ErrorBoundary, format_trace, with_error_boundary


class _Owner:
    """Minimal owner of a protected coroutine."""

    def __init__(self):
        self.failures = []
        self.cancelled = []

    def _on_step_failure(self, error, operation, token):
        self.failures.append((error, operation, token))

    def _on_run_cancelled(self, operation, token):
        self.cancelled.append((operation, token))

    @with_error_boundary("loading data")
    async def run(self, action, *, token):
        return action()


class TestErrorBoundary:
    """Test failure capture."""

    def test_capture_builds_failure_record(self):
        boundary = ErrorBoundary("checkout")
        error = KeyError("card")

        failure = boundary.capture(error, "charging", step_index=2, step_name="Pay")

        assert isinstance(failure, StepExecutionError)
        assert failure.step_index == 2
        assert failure.step_name == "Pay"
        assert failure.operation == "charging"
        assert failure.original_error is error
        assert failure.__cause__ is error
        assert boundary.error_count == 1
        assert boundary.last_error is error
        assert boundary.last_failure is failure

    def test_capture_emits_signal(self, qtbot):
        boundary = ErrorBoundary("checkout")

        with qtbot.waitSignal(boundary.error_occurred, timeout=1000) as blocker:
            boundary.capture(ValueError("bad amount"), "charging")

        assert blocker.args == ["ValueError", "bad amount"]

    def test_summary_and_reset(self):
        boundary = ErrorBoundary("checkout")
        assert boundary.get_error_summary() == "No errors"

        boundary.capture(ValueError("bad amount"), "charging")
        summary = boundary.get_error_summary()
        assert "checkout" in summary
        assert "ValueError - bad amount" in summary

        boundary.reset()
        assert boundary.error_count == 0
        assert boundary.last_error is None

    def test_format_trace_includes_message(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            trace = format_trace(e)

        assert "Traceback" in trace
        assert "RuntimeError: boom" in trace


class TestWithErrorBoundary:
    """Test the async decorator."""

    def test_passes_result_through(self):
        owner = _Owner()

        result = asyncio.run(owner.run(lambda: 5, token=1))

        assert result == 5
        assert owner.failures == []

    def test_routes_exception_to_owner(self):
        owner = _Owner()

        def explode():
            raise ValueError("bad")

        result = asyncio.run(owner.run(explode, token=3))

        assert result is None
        error, operation, token = owner.failures[0]
        assert isinstance(error, ValueError)
        assert operation == "loading data"
        assert token == 3

    def test_memory_error_propagates(self):
        owner = _Owner()

        def explode():
            raise MemoryError()

        with pytest.raises(MemoryError):
            asyncio.run(owner.run(explode, token=1))

    def test_cancellation_propagates(self):
        owner = _Owner()

        def cancel():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(owner.run(cancel, token=1))
        assert owner.failures == []
        assert owner.cancelled == [("loading data", 1)]
