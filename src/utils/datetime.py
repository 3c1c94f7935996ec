# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for Classbook.

School days (grade dates, attendance dates) are plain dates in the
school's calendar and never carry a timezone.
"""

from datetime import date, datetime


def parse_school_date(value: str | date) -> date:
    """Parse a school day from an ISO string or pass a date through.

    Datetimes are truncated to their date component.

    Args:
        value: ISO 8601 date string (YYYY-MM-DD) or date.

    Returns:
        The calendar date.

    Raises:
        ValueError: If the string is not a valid ISO date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip()[:10])
