# -*- coding: utf-8 -*-
"""
Flow Framework - Step sequencing for multi-step flows.

Provides the step definition, the sequencer state machine driving it,
and the pieces the sequencer is built from (scratch store, error
boundary, back-navigation dispatch).
"""

# Lazy imports to avoid circular dependencies with services.flow
__all__ = [
    'FlowSequencer',
    'FlowStep',
    'BackPolicy',
    'FlowPhase',
    'FlowState',
    'FlowData',
    'ErrorBoundary',
    'BackNavigationDispatcher',
]


def __getattr__(name):
    """Lazy import to avoid circular dependencies."""
    if name == "FlowSequencer":
        from .flow_sequencer import FlowSequencer
        return FlowSequencer
    elif name in ("FlowStep", "BackPolicy"):
        from . import flow_step
        return getattr(flow_step, name)
    elif name in ("FlowPhase", "FlowState"):
        from . import flow_state
        return getattr(flow_state, name)
    elif name == "FlowData":
        from .flow_data import FlowData
        return FlowData
    elif name == "ErrorBoundary":
        from .error_boundary import ErrorBoundary
        return ErrorBoundary
    elif name == "BackNavigationDispatcher":
        from .back_navigation import BackNavigationDispatcher
        return BackNavigationDispatcher
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
