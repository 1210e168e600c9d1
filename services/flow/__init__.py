# -*- coding: utf-8 -*-
"""
Flow services - step-list validation.
"""

from .step_validator import StepValidator, StepValidationResult

__all__ = ["StepValidator", "StepValidationResult"]
