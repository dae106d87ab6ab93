#!/usr/bin/env python

"""
    Core module for Circulation: storage, ledgers and the
    borrowing lifecycle engine.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""
