# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from collections.abc import Callable, Iterator
from datetime import date
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.config import RecordsSettings, clear_settings_cache


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DB_HOST": "localhost",
        "DB_PORT": "5432",
        "DB_USER": "classbook",
        "DB_PASSWORD": "classbook_password",
        "DB_DATABASE": "classbook_test",
        "JWT_SECRET_KEY": "test-secret-key-for-testing-only",
        "JWT_ALGORITHM": "HS256",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
    }


@pytest.fixture
def fresh_settings() -> Iterator[None]:
    """Clear the cached settings before and after a test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_tenant_id() -> str:
    """Provide a sample school ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def other_tenant_id() -> str:
    """Provide a second school ID for cross-school tests."""
    return "550e8400-e29b-41d4-a716-4466554400ff"


@pytest.fixture
def sample_teacher_id() -> str:
    """Provide a sample teacher ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440010"


@pytest.fixture
def sample_class_id() -> str:
    """Provide a sample class ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440020"


@pytest.fixture
def other_class_id() -> str:
    """Provide a second class ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440021"


@pytest.fixture
def sample_subject_id() -> str:
    """Provide a sample subject ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440030"


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def school_day() -> date:
    """Provide a fixed school day."""
    return date(2025, 3, 2)


@pytest.fixture
def records_settings() -> RecordsSettings:
    """Provide records settings with defaults."""
    return RecordsSettings()


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create a mock async database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


@pytest.fixture
def make_result() -> Callable[[list[Any]], MagicMock]:
    """Build mock execute() results.

    The returned result answers scalars().all() with items and
    scalar_one_or_none() with the first item or None.
    """

    def _make(items: list[Any]) -> MagicMock:
        result = MagicMock()
        result.scalars.return_value.all.return_value = items
        result.scalar_one_or_none.return_value = items[0] if items else None
        return result

    return _make
