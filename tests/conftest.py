# -*- coding: utf-8 -*-
"""
Shared fixtures for flow tests.
"""
import os
import sys
from pathlib import Path

# Keep test runs headless and out of the log directory
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from ui.flows.framework.flow_sequencer import FlowSequencer
from ui.flows.framework.flow_step import BackPolicy, FlowStep


class StepRecorder:
    """Builds steps that record their callbacks."""

    def __init__(self):
        self.started = []
        self.executed = []
        self.failing = set()

    def step(self, index: int, progress: float, confirmation: bool = False,
             back_policy: BackPolicy = BackPolicy.BLOCK, **kwargs) -> FlowStep:
        async def on_execute():
            if index in self.failing:
                raise RuntimeError(f"step {index} failed")
            self.executed.append(index)

        def on_start():
            self.started.append(index)

        return FlowStep(
            step_id=f"step-{index}",
            name=f"Step {index}",
            progress=progress,
            on_execute=on_execute,
            on_start=on_start,
            confirmation=(lambda sequencer: "confirm") if confirmation else None,
            back_policy=back_policy,
            **kwargs
        )


@pytest.fixture
def recorder():
    return StepRecorder()


@pytest.fixture
def make_sequencer():
    """Create sequencers without pacing delays; disposed after the test."""
    created = []

    def factory(steps, **kwargs):
        kwargs.setdefault("settle_before_ms", 0)
        kwargs.setdefault("settle_after_ms", 0)
        sequencer = FlowSequencer(steps, **kwargs)
        created.append(sequencer)
        return sequencer

    yield factory

    for sequencer in created:
        sequencer.dispose()
