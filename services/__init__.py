# -*- coding: utf-8 -*-
"""
Sequential Flow Service Layer
"""

from .exceptions import FlowError, FlowConstructionError, StepExecutionError

__all__ = [
    "FlowError",
    "FlowConstructionError",
    "StepExecutionError",
]
