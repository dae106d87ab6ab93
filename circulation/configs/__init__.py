#!/usr/bin/env python

"""
    Configurations for Circulation

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import os
from decimal import Decimal


# Determine environment
TESTING = os.getenv("TESTING", "false").lower() == "true"

# API server configuration
HOST = os.environ.get('CIRCULATION_HOST', 'localhost')
PORT = int(os.environ.get('CIRCULATION_PORT', 8080))
WORKERS = int(os.environ.get('CIRCULATION_WORKERS', 1))
DEBUG = bool(int(os.environ.get('CIRCULATION_DEBUG', 0)))
LOG_LEVEL = os.environ.get('CIRCULATION_LOG_LEVEL', 'info')
CORS_ORIGINS = [
    o.strip() for o in
    os.environ.get('CIRCULATION_CORS_ORIGINS', 'http://localhost:3000').split(',')
    if o.strip()
]

OPTIONS = {
    'host': HOST,
    'port': PORT,
    'log_level': LOG_LEVEL,
    'reload': DEBUG,
    'workers': WORKERS,
}

# Database configuration
DB_URI = os.environ.get('CIRCULATION_DB_URI') or (
    "sqlite:///:memory:" if TESTING else "sqlite:///circulation.db"
)

# Circulation policy
DEFAULT_LOAN_DAYS = int(os.environ.get('CIRCULATION_DEFAULT_LOAN_DAYS', 14))
MIN_LOAN_DAYS = int(os.environ.get('CIRCULATION_MIN_LOAN_DAYS', 1))
MAX_LOAN_DAYS = int(os.environ.get('CIRCULATION_MAX_LOAN_DAYS', 90))
LATE_FEE_PER_DAY = Decimal(os.environ.get('CIRCULATION_LATE_FEE_PER_DAY', '1.00'))

# Low stock heuristic used by dashboards only
LOW_STOCK_COPIES = 3
LOW_STOCK_PERCENT = 30

__all__ = [
    'HOST', 'PORT', 'DEBUG', 'LOG_LEVEL', 'OPTIONS', 'DB_URI', 'TESTING',
    'CORS_ORIGINS', 'DEFAULT_LOAN_DAYS', 'MIN_LOAN_DAYS', 'MAX_LOAN_DAYS',
    'LATE_FEE_PER_DAY', 'LOW_STOCK_COPIES', 'LOW_STOCK_PERCENT',
]
