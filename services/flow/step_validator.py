# -*- coding: utf-8 -*-
"""
Step validation service for flow sequencers.

Validates step definitions without UI coupling.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from services.exceptions import FlowConstructionError
from ui.flows.framework.flow_step import BackPolicy, FlowStep


@dataclass
class StepValidationResult:
    """Result of step-list validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []

    def add_error(self, message: str):
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str):
        """Add a warning message."""
        self.warnings.append(message)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


class StepValidator:
    """Validates flow step lists and navigation targets."""

    @staticmethod
    def validate_steps(steps: Sequence[FlowStep]) -> StepValidationResult:
        """
        Validate a step list before a sequencer takes ownership of it.

        Errors make the list unusable; warnings flag steps whose back
        policy is missing the data it needs.

        Args:
            steps: Ordered step definitions

        Returns:
            StepValidationResult with validation status and messages
        """
        result = StepValidationResult(is_valid=True, errors=[], warnings=[])

        if not steps:
            result.add_error("Steps list cannot be empty")
            return result

        count = len(steps)
        previous_progress = 0.0

        for index, step in enumerate(steps):
            if not isinstance(step, FlowStep):
                result.add_error(f"Item {index} is not a FlowStep: {step!r}")
                continue

            if step.back_policy == BackPolicy.GO_TO_INDEX:
                if step.target_index is None:
                    result.add_warning(
                        f"Step {index} ({step.name}) uses GO_TO_INDEX without target_index"
                    )
                else:
                    is_valid, message = StepValidator.validate_target_index(
                        step.target_index, count
                    )
                    if not is_valid:
                        result.add_warning(f"Step {index} ({step.name}): {message}")

            elif step.back_policy == BackPolicy.CUSTOM and step.custom_back_handler is None:
                result.add_warning(
                    f"Step {index} ({step.name}) uses CUSTOM without custom_back_handler"
                )

            if step.progress < previous_progress:
                result.add_warning(
                    f"Step {index} ({step.name}) progress {step.progress} "
                    f"is lower than the previous step ({previous_progress})"
                )
            previous_progress = step.progress

        return result

    @staticmethod
    def ensure_valid(steps: Sequence[FlowStep]) -> StepValidationResult:
        """
        Validate steps, raising on errors.

        Raises:
            FlowConstructionError: If the list has errors
        """
        result = StepValidator.validate_steps(steps)
        if not result.is_valid:
            raise FlowConstructionError(
                " | ".join(result.errors),
                field="steps",
                errors=list(result.errors)
            )
        return result

    @staticmethod
    def validate_target_index(index, step_count: int) -> Tuple[bool, str]:
        """
        Check a navigation target against the step list.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if isinstance(index, bool) or not isinstance(index, int):
            return False, f"target index must be an integer, got {index!r}"

        if index < 0 or index >= step_count:
            return False, (
                f"target index {index} out of range (valid range: 0-{step_count - 1})"
            )

        return True, ""
