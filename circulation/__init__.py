#!/usr/bin/env python

"""
    Circulation, the borrowing lifecycle and inventory engine
    for small library systems.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

__version__ = '0.1.0'
