"""Classbook records core.

Teacher authorization resolution and bulk grade/attendance writes for a
multi-tenant school portal.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
