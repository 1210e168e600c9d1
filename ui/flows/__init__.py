# -*- coding: utf-8 -*-
"""
Flows - Multi-step flow sequencing (onboarding, payment, forms).
"""
