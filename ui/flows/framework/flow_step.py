# -*- coding: utf-8 -*-
"""
Flow Step - Immutable definition of one unit of work in a flow.

A step carries:
- Identity (step_id) and display name
- Cumulative progress fraction (0.0 to 1.0)
- Lifecycle callbacks (on_start, on_execute)
- Optional confirmation gate
- Back-navigation policy
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from services.exceptions import FlowConstructionError

StepId = TypeVar("StepId")


class BackPolicy(Enum):
    """Behavior when the host's back navigation fires while a step is active."""

    PREVIOUS_STEP = "previous_step"   # Pop history, else index - 1, else allow exit
    CANCEL_FLOW = "cancel_flow"       # Cancel the whole flow
    SAVE_AND_EXIT = "save_and_exit"   # Allow the host to exit, keep state
    BLOCK = "block"                   # Consume the back press
    CUSTOM = "custom"                 # Delegate to custom_back_handler
    GO_TO_INDEX = "go_to_index"       # Jump to target_index


@dataclass(frozen=True)
class FlowStep(Generic[StepId]):
    """
    Definition of a flow step.

    Example:
        FlowStep(
            step_id=Onboarding.PROFILE,
            name="Profile",
            progress=0.5,
            on_execute=load_profile,
            back_policy=BackPolicy.PREVIOUS_STEP,
        )

    on_execute may be a coroutine function or a plain callable; an awaitable
    result is awaited. confirmation is the host's builder for the
    confirmation UI; its presence alone pauses the flow before on_execute.
    """

    step_id: StepId
    name: str
    progress: float
    on_execute: Callable[[], Any]
    on_start: Optional[Callable[[], None]] = None
    confirmation: Optional[Callable[[Any], Any]] = None
    back_policy: BackPolicy = BackPolicy.BLOCK
    target_index: Optional[int] = None
    custom_back_handler: Optional[Callable[[Any], Awaitable[bool]]] = None

    def __post_init__(self):
        if not isinstance(self.back_policy, BackPolicy):
            raise FlowConstructionError(
                f"Unknown back policy: {self.back_policy!r}",
                field="back_policy",
                context=self.name
            )

        progress = self.progress
        if isinstance(progress, bool) or not isinstance(progress, (int, float)):
            raise FlowConstructionError(
                f"progress must be a number, got {progress!r}",
                field="progress",
                context=self.name
            )

        if not 0.0 <= progress <= 1.0:
            raise FlowConstructionError(
                f"progress must be between 0.0 and 1.0, got {progress}",
                field="progress",
                context=self.name
            )

        if not callable(self.on_execute):
            raise FlowConstructionError(
                "on_execute must be callable",
                field="on_execute",
                context=self.name
            )

    @property
    def requires_confirmation(self) -> bool:
        """Whether the flow pauses on this step before running its body."""
        return self.confirmation is not None

    def __str__(self):
        return f"{self.name} ({self.step_id})"
