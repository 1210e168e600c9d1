# -*- coding: utf-8 -*-
"""
Flow Sequencer - Drives a flow's steps and publishes its state.

Handles:
- Sequential step execution (start, resume, jump, rewind)
- Pausing on confirmation gates
- Containing step failures
- Back-navigation policies
- Inter-step scratch data

All methods are expected to run on a single event loop; suspension only
happens at confirmation gates and around step bodies.
"""

import asyncio
import inspect
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Mapping, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from app.config import Config
from services.exceptions import FlowConstructionError, StepExecutionError
from services.flow.step_validator import StepValidator
from utils.logger import get_logger

from .back_navigation import BackNavigationDispatcher
from .error_boundary import ErrorBoundary, format_trace, with_error_boundary
from .flow_data import FlowData
from .flow_state import FlowPhase, FlowState
from .flow_step import FlowStep

logger = get_logger(__name__)


class FlowSequencer(QObject):
    """
    State machine over an ordered list of FlowStep.

    Phases: IDLE -> RUNNING -> (WAITING_CONFIRMATION <-> RUNNING)* ->
    COMPLETED | FAILED | CANCELLED. Terminal phases only leave through
    start(), retry(), restart() or reset(). dispose() is final.

    Example:
        sequencer = FlowSequencer(steps)
        sequencer.add_listener(render)
        await sequencer.start()
        if sequencer.is_waiting_confirmation:
            await sequencer.continue_flow()
    """

    # Signals
    state_changed = pyqtSignal()
    phase_changed = pyqtSignal(object)  # FlowPhase
    step_changed = pyqtSignal(int, int)  # old_index, new_index
    confirmation_requested = pyqtSignal(int)  # step index
    flow_completed = pyqtSignal(object)  # read-only data snapshot
    flow_cancelled = pyqtSignal()
    flow_failed = pyqtSignal(str, str)  # error_type, error_message

    def __init__(
        self,
        steps: Iterable[FlowStep],
        auto_start: bool = False,
        name: str = "flow",
        settle_before_ms: Optional[int] = None,
        settle_after_ms: Optional[int] = None,
        settle_hook: Optional[Callable[[str], Awaitable[None]]] = None,
        parent: Optional[QObject] = None
    ):
        """
        Initialize the sequencer.

        Args:
            steps: Ordered, non-empty step definitions
            auto_start: Schedule start() on the running event loop
            name: Flow name used in logs and error records
            settle_before_ms: Pacing delay before each step body
            settle_after_ms: Pacing delay after each step body
            settle_hook: Coroutine function called with "before"/"after"
                instead of the default delays
            parent: Parent object

        Raises:
            FlowConstructionError: Empty or invalid step list, or
                auto_start without a running event loop
        """
        super().__init__(parent)

        steps = tuple(steps) if steps is not None else ()
        validation = StepValidator.ensure_valid(steps)
        for warning in validation.warnings:
            logger.warning(f"Flow '{name}': {warning}")

        self.name = name
        self.flow_id: str = str(uuid.uuid4())
        self.created_at: datetime = datetime.now()
        self.updated_at: datetime = datetime.now()

        self._steps: Tuple[FlowStep, ...] = steps
        self._state = FlowState()
        self._data = FlowData()
        self._failure: Optional[StepExecutionError] = None
        self._confirmation: Optional[asyncio.Future] = None
        self._run_token = 0

        self.settle_before_ms = (
            Config.FLOW_SETTLE_BEFORE_MS if settle_before_ms is None else settle_before_ms
        )
        self.settle_after_ms = (
            Config.FLOW_SETTLE_AFTER_MS if settle_after_ms is None else settle_after_ms
        )
        self.settle_hook = settle_hook or self._default_settle

        self.error_boundary = ErrorBoundary(name, self)
        self._back_navigation = BackNavigationDispatcher(self)

        logger.debug(f"Flow '{name}' created with {len(steps)} steps")

        self.auto_start_task: Optional[asyncio.Task] = None
        if auto_start:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise FlowConstructionError(
                    "auto_start requires a running event loop",
                    field="auto_start",
                    context=name
                ) from None
            self.auto_start_task = loop.create_task(self.start())

    # =========================================================================
    # State Accessors
    # =========================================================================

    @property
    def steps(self) -> Tuple[FlowStep, ...]:
        return self._steps

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def phase(self) -> FlowPhase:
        return self._state.phase

    @property
    def is_running(self) -> bool:
        return self._state.phase == FlowPhase.RUNNING

    @property
    def is_completed(self) -> bool:
        return self._state.phase == FlowPhase.COMPLETED

    @property
    def has_error(self) -> bool:
        return self._state.phase == FlowPhase.FAILED

    @property
    def is_waiting_confirmation(self) -> bool:
        return self._state.phase == FlowPhase.WAITING_CONFIRMATION

    @property
    def is_cancelled(self) -> bool:
        return self._state.phase == FlowPhase.CANCELLED

    @property
    def is_disposed(self) -> bool:
        return self._state.disposed

    @property
    def current_step(self) -> Any:
        """Identifier of the active step, None before the first step runs."""
        return self._state.current_step_id

    @property
    def current_step_name(self) -> str:
        return self._state.current_name

    @property
    def current_progress(self) -> float:
        return self._state.current_progress

    @property
    def current_step_index(self) -> int:
        return self._state.current_index

    @property
    def error(self) -> Optional[BaseException]:
        return self._state.last_error

    @property
    def error_trace(self) -> Optional[str]:
        return self._state.last_error_trace

    @property
    def failure(self) -> Optional[StepExecutionError]:
        """The contained failure with step context, while FAILED."""
        return self._failure

    @property
    def history(self) -> Tuple[int, ...]:
        return tuple(self._state.history)

    @property
    def can_go_back(self) -> bool:
        return bool(self._state.history)

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, callback: Callable[[], None]):
        """Call ``callback`` after every observable state change."""
        if self._state.disposed:
            logger.debug(f"Flow '{self.name}' is disposed; listener not added")
            return
        self.state_changed.connect(callback)

    def remove_listener(self, callback: Callable[[], None]):
        try:
            self.state_changed.disconnect(callback)
        except TypeError:
            logger.debug(f"Listener {callback!r} was not connected")

    # =========================================================================
    # Data Management
    # =========================================================================

    def set_data(self, key: Hashable, value: Any):
        """Store a value shared between steps, replacing any previous value."""
        self._data.set(key, value)

    def get_data(self, key: Hashable, expected_type=None, default: Any = None) -> Any:
        """
        Get a value stored with set_data().

        Returns ``default`` when the key is missing or the value is not an
        instance of ``expected_type``.
        """
        return self._data.get(key, expected_type=expected_type, default=default)

    def get_all_data(self) -> Mapping[Hashable, Any]:
        """Read-only snapshot of all stored data."""
        return self._data.snapshot()

    # =========================================================================
    # Flow Control
    # =========================================================================

    async def start(self):
        """
        Run the flow from the first step.

        Ignored while RUNNING. Keeps scratch data (see restart()).
        Step failures never propagate; they leave the flow FAILED.
        """
        state = self._state
        if state.disposed:
            logger.debug(f"start() ignored: flow '{self.name}' is disposed")
            return
        if state.phase == FlowPhase.RUNNING:
            logger.debug(f"start() ignored: flow '{self.name}' is already running")
            return

        self._resolve_confirmation(False)
        token = self._next_run()

        state.current_index = 0
        state.clear_error()
        state.history.clear()
        self._failure = None
        self._set_phase(FlowPhase.RUNNING)

        logger.info(f"Starting flow '{self.name}' ({len(self._steps)} steps)")
        self._notify()
        await self._process_steps(0, token=token)

    async def continue_flow(self, target_index: Optional[int] = None):
        """
        Resume after a confirmation gate.

        Runs the gated step's body, then continues with ``target_index``
        when it is a valid index, otherwise with the next step.
        """
        state = self._state
        if state.disposed:
            logger.debug(f"continue_flow() ignored: flow '{self.name}' is disposed")
            return
        if state.phase != FlowPhase.WAITING_CONFIRMATION:
            logger.debug(f"continue_flow() ignored: flow '{self.name}' is {state.phase.value}")
            return

        state.history.append(state.current_index)
        self._resolve_confirmation(True)
        token = self._next_run()
        self._set_phase(FlowPhase.RUNNING)

        logger.info(
            f"Confirmed step {state.current_index} ({state.current_name})"
            + (f", jumping to {target_index}" if target_index is not None else "")
        )
        self._notify()
        await self._resume(state.current_index, target_index, token=token)

    async def wait_for_confirmation(self) -> bool:
        """
        Wait until the pending confirmation gate is resolved.

        Returns:
            True if continue_flow() resumed the flow; False if it was
            cancelled, reset, navigated away or disposed, or if the flow
            is not waiting for confirmation.
        """
        if self._state.disposed or self._state.phase != FlowPhase.WAITING_CONFIRMATION:
            return False

        if self._confirmation is None or self._confirmation.done():
            self._confirmation = asyncio.get_running_loop().create_future()
        return await self._confirmation

    async def go_to_step(self, index: int) -> bool:
        """
        Re-enter the flow at ``index``.

        Returns:
            True if the flow moved, False for an invalid index or a
            disposed flow
        """
        if self._state.disposed:
            logger.debug(f"go_to_step() ignored: flow '{self.name}' is disposed")
            return False

        is_valid, message = StepValidator.validate_target_index(index, len(self._steps))
        if not is_valid:
            logger.warning(f"go_to_step() ignored: {message}")
            return False

        state = self._state
        self._resolve_confirmation(False)
        token = self._next_run()

        logger.info(f"Navigating: Step {state.current_index} → {index}")
        state.current_index = index
        state.clear_error()
        self._failure = None
        self._set_phase(FlowPhase.RUNNING)
        self._notify()

        await self._process_steps(index, token=token)
        return True

    async def handle_back_press(self) -> bool:
        """
        Apply the active step's back policy.

        Returns:
            True if the host should perform its own back navigation,
            False if the flow consumed the press
        """
        if self._state.disposed:
            return True

        # A finished flow has nothing left to navigate
        if self._state.phase == FlowPhase.COMPLETED:
            return True

        index = self._state.current_index
        if index < 0 or index >= len(self._steps):
            return True

        return await self._back_navigation.dispatch(self._steps[index])

    def cancel_flow(self):
        """Stop the flow. Scratch data is kept; start() runs it again."""
        if self._state.disposed:
            return

        self._resolve_confirmation(False)
        self._next_run()
        self._state.clear_error()
        self._failure = None
        self._set_phase(FlowPhase.CANCELLED)

        logger.info(f"Flow '{self.name}' cancelled at step {self._state.current_index}")
        self._notify()
        if not self._state.disposed:
            self.flow_cancelled.emit()

    async def retry(self):
        """
        Restart a FAILED flow from the first step.

        The whole flow runs again, including steps that succeeded before
        the failure. No-op in any other phase.
        """
        if self._state.phase != FlowPhase.FAILED:
            logger.debug(f"retry() ignored: flow '{self.name}' is {self._state.phase.value}")
            return

        logger.info(f"Retrying flow '{self.name}' from the first step")
        await self.start()

    async def restart(self):
        """Clear scratch data, then start()."""
        self._data.clear()
        await self.start()

    def reset(self):
        """
        Return to the initial IDLE state.

        Clears snapshot fields, errors, history and scratch data.
        Does not run any step.
        """
        state = self._state
        if state.disposed:
            return

        self._resolve_confirmation(False)
        self._next_run()

        state.current_index = 0
        state.clear_snapshot()
        state.clear_error()
        state.history.clear()
        self._data.clear()
        self._failure = None
        self.error_boundary.reset()
        self._set_phase(FlowPhase.IDLE)

        logger.info(f"Flow '{self.name}' reset")
        self._notify()

    def dispose(self):
        """
        Tear the sequencer down.

        Pending step bodies may still finish, but their outcome is
        discarded and no signal is emitted afterwards.
        """
        if self._state.disposed:
            return

        self._resolve_confirmation(False)
        self._next_run()
        self._state.disposed = True

        for signal in (
            self.state_changed,
            self.phase_changed,
            self.step_changed,
            self.confirmation_requested,
            self.flow_completed,
            self.flow_cancelled,
            self.flow_failed,
            self.error_boundary.error_occurred,
        ):
            try:
                signal.disconnect()
            except TypeError:
                # No connections
                pass

        logger.info(f"Flow '{self.name}' disposed")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the observable state (data values are not included)."""
        state = self._state
        error = state.last_error
        return {
            "flow_id": self.flow_id,
            "name": self.name,
            "phase": state.phase.value,
            "is_terminal": state.phase.is_terminal,
            "current_step_index": state.current_index,
            "current_step_name": state.current_name,
            "current_progress": state.current_progress,
            "history": list(state.history),
            "error_type": type(error).__name__ if error is not None else None,
            "error_message": str(error) if error is not None else None,
            "data_keys": len(self._data),
            "disposed": state.disposed,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    # =========================================================================
    # Step Processing
    # =========================================================================

    @with_error_boundary("processing steps")
    async def _process_steps(self, index: int, *, token: int):
        """Run steps from ``index`` until a confirmation gate or the end."""
        if self._is_stale(token):
            return

        while index < len(self._steps):
            step = self._steps[index]
            self._enter_step(index, step)

            if step.on_start is not None:
                step.on_start()
            if self._is_stale(token):
                return
            self._notify()

            if step.requires_confirmation:
                self._pause_for_confirmation(index, step)
                return

            if not await self._execute_step(index, token=token):
                return

            index += 1
            if index < len(self._steps):
                self._notify()

        self._set_phase(FlowPhase.COMPLETED)
        logger.info(f"Flow '{self.name}' completed")
        self._notify()
        if not self._state.disposed:
            self.flow_completed.emit(self._data.snapshot())

    @with_error_boundary("continuing flow")
    async def _resume(self, index: int, target_index: Optional[int], *, token: int):
        """Run the confirmed step's body, then continue the loop."""
        if not await self._execute_step(index, token=token):
            return

        next_index = index + 1
        if target_index is not None:
            is_valid, message = StepValidator.validate_target_index(
                target_index, len(self._steps)
            )
            if is_valid:
                next_index = target_index
            else:
                logger.warning(f"Ignoring jump target: {message}")

        await self._process_steps(next_index, token=token)

    async def _execute_step(self, index: int, *, token: int) -> bool:
        """
        Await a step body between the pacing delays.

        Returns:
            False if the run was superseded at any checkpoint
        """
        step = self._steps[index]

        if self._is_stale(token):
            return False
        await self.settle_hook("before")
        if self._is_stale(token):
            return False

        logger.debug(f"Executing step {index} ({step.name})")
        result = step.on_execute()
        if inspect.isawaitable(result):
            await result

        if self._is_stale(token):
            logger.debug(f"Discarding result of step {index}: run superseded")
            return False
        await self.settle_hook("after")
        return not self._is_stale(token)

    async def _default_settle(self, stage: str):
        delay_ms = self.settle_before_ms if stage == "before" else self.settle_after_ms
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    def _enter_step(self, index: int, step: FlowStep):
        state = self._state
        old_index = state.current_index

        state.current_index = index
        state.current_step_id = step.step_id
        state.current_name = step.name
        state.current_progress = float(step.progress)

        logger.info(f"Step {index} is now active: {step.name}")
        if not state.disposed:
            self.step_changed.emit(old_index, index)

    def _pause_for_confirmation(self, index: int, step: FlowStep):
        self._set_phase(FlowPhase.WAITING_CONFIRMATION)
        logger.info(f"Waiting for confirmation on step {index} ({step.name})")
        self._notify()
        if not self._state.disposed:
            self.confirmation_requested.emit(index)

    # =========================================================================
    # Failure Handling
    # =========================================================================

    def _on_step_failure(self, error: Exception, operation: str, token: int):
        if self._is_stale(token):
            logger.debug(f"Discarding failure from superseded run: {error!r}")
            return
        self._record_failure(error, operation)

    def _on_run_cancelled(self, operation: str, token: int):
        """The task driving the run was cancelled; leave RUNNING."""
        if self._is_stale(token):
            return

        logger.info(f"Flow '{self.name}' task cancelled during {operation}")
        self.cancel_flow()

    def _record_failure(self, error: Exception, operation: str):
        """Move to FAILED with the error captured."""
        state = self._state
        if state.disposed:
            logger.debug(f"Ignoring failure after dispose: {error!r}")
            return

        self._failure = self.error_boundary.capture(
            error, operation, state.current_index, state.current_name
        )
        state.last_error = error
        state.last_error_trace = format_trace(error)

        self._resolve_confirmation(False)
        self._next_run()
        self._set_phase(FlowPhase.FAILED)
        self._notify()
        self.flow_failed.emit(type(error).__name__, str(error))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _next_run(self) -> int:
        """Supersede the current run; checkpoints of older runs abort."""
        self._run_token += 1
        return self._run_token

    def _is_stale(self, token: int) -> bool:
        return self._state.disposed or token != self._run_token

    def _pop_history(self) -> Optional[int]:
        if self._state.history:
            return self._state.history.pop()
        return None

    def _resolve_confirmation(self, confirmed: bool):
        future = self._confirmation
        self._confirmation = None
        if future is not None and not future.done():
            future.set_result(confirmed)

    def _set_phase(self, phase: FlowPhase):
        if self._state.phase == phase:
            return
        self._state.phase = phase
        if not self._state.disposed:
            self.phase_changed.emit(phase)

    def _notify(self):
        """Publish a state change to listeners."""
        if self._state.disposed:
            return
        self.updated_at = datetime.now()
        self.state_changed.emit()
