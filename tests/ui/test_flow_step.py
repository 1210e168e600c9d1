# -*- coding: utf-8 -*-
"""
Tests for FlowStep definitions.
"""
import dataclasses

import pytest

from services.exceptions import FlowConstructionError
from ui.flows.framework.flow_step import BackPolicy, FlowStep


async def _noop():
    return None


class TestFlowStepConstruction:
    """Test step construction and validation."""

    @pytest.mark.parametrize("progress", [0.0, 0.5, 1.0, 1])
    def test_accepts_progress_in_range(self, progress):
        """Test progress bounds are inclusive."""
        step = FlowStep(step_id="a", name="A", progress=progress, on_execute=_noop)
        assert step.progress == progress

    @pytest.mark.parametrize("progress", [-0.01, 1.01, 2])
    def test_rejects_progress_out_of_range(self, progress):
        """Test progress outside [0, 1] fails construction."""
        with pytest.raises(FlowConstructionError) as exc_info:
            FlowStep(step_id="a", name="A", progress=progress, on_execute=_noop)

        assert exc_info.value.field == "progress"

    @pytest.mark.parametrize("progress", ["half", "0.5", True, None, [0.5]])
    def test_rejects_non_numeric_progress(self, progress):
        """Test non-numeric progress fails construction."""
        with pytest.raises(FlowConstructionError) as exc_info:
            FlowStep(step_id="a", name="A", progress=progress, on_execute=_noop)

        assert exc_info.value.field == "progress"

    def test_string_progress_rejected_before_sequencer_validation(self):
        """Test a numeric string never reaches the step-list checks."""
        from ui.flows.framework.flow_sequencer import FlowSequencer

        with pytest.raises(FlowConstructionError):
            FlowSequencer([
                FlowStep(step_id="a", name="A", progress="0.5", on_execute=_noop),
                FlowStep(step_id="b", name="B", progress=1.0, on_execute=_noop),
            ])

    def test_construction_error_is_value_error(self):
        """Test construction errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            FlowStep(step_id="a", name="A", progress=3, on_execute=_noop)

    def test_rejects_non_callable_body(self):
        """Test on_execute must be callable."""
        with pytest.raises(FlowConstructionError):
            FlowStep(step_id="a", name="A", progress=0.1, on_execute=None)

    def test_rejects_unknown_back_policy(self):
        """Test back_policy must be a BackPolicy member."""
        with pytest.raises(FlowConstructionError):
            FlowStep(step_id="a", name="A", progress=0.1, on_execute=_noop,
                     back_policy="block")


class TestFlowStepDefaults:
    """Test step defaults and derived values."""

    def test_default_back_policy_is_block(self):
        step = FlowStep(step_id="a", name="A", progress=0.1, on_execute=_noop)
        assert step.back_policy == BackPolicy.BLOCK
        assert step.target_index is None
        assert step.custom_back_handler is None

    def test_requires_confirmation_follows_builder(self):
        plain = FlowStep(step_id="a", name="A", progress=0.1, on_execute=_noop)
        gated = FlowStep(step_id="b", name="B", progress=0.2, on_execute=_noop,
                         confirmation=lambda sequencer: "confirm")

        assert plain.requires_confirmation is False
        assert gated.requires_confirmation is True

    def test_step_is_immutable(self):
        """Test steps cannot be modified after construction."""
        step = FlowStep(step_id="a", name="A", progress=0.1, on_execute=_noop)

        with pytest.raises(dataclasses.FrozenInstanceError):
            step.progress = 0.9

    def test_step_id_can_be_any_value(self):
        step = FlowStep(step_id=("payment", 2), name="Pay", progress=1.0, on_execute=_noop)
        assert step.step_id == ("payment", 2)
        assert "Pay" in str(step)
