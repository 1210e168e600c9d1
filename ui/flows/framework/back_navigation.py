# -*- coding: utf-8 -*-
"""
Back Navigation - Dispatches host back presses on the active step's policy.

Result contract:
- True: the host may run its own back navigation (exit the flow screen)
- False: the press was consumed by the flow
"""

import inspect
from typing import TYPE_CHECKING, Awaitable, Callable, Dict

from services.flow.step_validator import StepValidator
from utils.logger import get_logger

from .flow_step import BackPolicy, FlowStep

if TYPE_CHECKING:
    from .flow_sequencer import FlowSequencer

logger = get_logger(__name__)


class BackNavigationDispatcher:
    """Maps each BackPolicy to its handler."""

    def __init__(self, sequencer: 'FlowSequencer'):
        self.sequencer = sequencer
        self._handlers: Dict[BackPolicy, Callable[[FlowStep], Awaitable[bool]]] = {
            BackPolicy.PREVIOUS_STEP: self._previous_step,
            BackPolicy.CANCEL_FLOW: self._cancel_flow,
            BackPolicy.SAVE_AND_EXIT: self._save_and_exit,
            BackPolicy.BLOCK: self._block,
            BackPolicy.CUSTOM: self._custom,
            BackPolicy.GO_TO_INDEX: self._go_to_index,
        }

    async def dispatch(self, step: FlowStep) -> bool:
        """
        Run the handler for the step's back policy.

        Args:
            step: The active step

        Returns:
            True to let the host navigate back, False if consumed
        """
        handler = self._handlers[step.back_policy]
        allow_exit = await handler(step)
        logger.info(
            f"Back press on '{step.name}' ({step.back_policy.value}) -> "
            f"{'allow exit' if allow_exit else 'consumed'}"
        )
        return allow_exit

    # =========================================================================
    # Policy Handlers
    # =========================================================================

    async def _previous_step(self, step: FlowStep) -> bool:
        sequencer = self.sequencer
        previous_index = sequencer._pop_history()

        if previous_index is not None:
            await sequencer.go_to_step(previous_index)
            return False

        if sequencer.current_step_index > 0:
            await sequencer.go_to_step(sequencer.current_step_index - 1)
            return False

        return True

    async def _cancel_flow(self, step: FlowStep) -> bool:
        self.sequencer.cancel_flow()
        return False

    async def _save_and_exit(self, step: FlowStep) -> bool:
        return True

    async def _block(self, step: FlowStep) -> bool:
        return False

    async def _custom(self, step: FlowStep) -> bool:
        if step.custom_back_handler is None:
            logger.debug(f"Step '{step.name}' has no custom back handler")
            return False

        try:
            result = step.custom_back_handler(self.sequencer)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self.sequencer._record_failure(e, "custom back handler")
            return False

        return bool(result)

    async def _go_to_index(self, step: FlowStep) -> bool:
        if step.target_index is None:
            logger.debug(f"Step '{step.name}' has no target index")
            return False

        is_valid, message = StepValidator.validate_target_index(
            step.target_index, self.sequencer.step_count
        )
        if not is_valid:
            logger.warning(f"Ignoring back navigation from '{step.name}': {message}")
            return False

        await self.sequencer.go_to_step(step.target_index)
        return False
