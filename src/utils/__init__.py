# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for Classbook.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: School-day parsing
"""

from src.utils.datetime import parse_school_date
from src.utils.logging import bind_context, clear_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "bind_context",
    "clear_context",
    # Datetime
    "parse_school_date",
]
