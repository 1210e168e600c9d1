# -*- coding: utf-8 -*-
"""
Flow State - Mutable state owned by a FlowSequencer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class FlowPhase(Enum):
    """Top-level state of a sequencer."""

    IDLE = "idle"
    RUNNING = "running"
    WAITING_CONFIRMATION = "waiting_confirmation"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (FlowPhase.COMPLETED, FlowPhase.FAILED, FlowPhase.CANCELLED)


@dataclass
class FlowState:
    """Snapshot fields of the active step plus sequencing bookkeeping."""

    phase: FlowPhase = FlowPhase.IDLE
    current_index: int = 0
    current_step_id: Any = None
    current_name: str = ""
    current_progress: float = 0.0
    last_error: Optional[BaseException] = None
    last_error_trace: Optional[str] = None
    history: List[int] = field(default_factory=list)
    disposed: bool = False

    def clear_error(self):
        self.last_error = None
        self.last_error_trace = None

    def clear_snapshot(self):
        """Forget the active step's public fields."""
        self.current_step_id = None
        self.current_name = ""
        self.current_progress = 0.0
