# -*- coding: utf-8 -*-
"""
Sequential Flow UI Module
"""
