# -*- coding: utf-8 -*-
"""
Sequential Flow Configuration Module
"""

from .config import Config

__all__ = ["Config"]
