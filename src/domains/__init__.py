# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for Classbook.

This package contains domain services that encapsulate business logic.

Domains:
    auth: Bearer token validation.
    authorization: Teacher subject and class authority resolution.
    grading: Bulk grade entry and correction.
    attendance: Setting and reading class attendance for a day.
    records: Error kinds shared by the write path.
"""
