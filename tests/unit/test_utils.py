# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for date parsing and logging helpers."""

import logging
from datetime import date, datetime, timezone

import pytest
import structlog

from src.core.config.settings import Settings
from src.utils.datetime import parse_school_date
from src.utils.logging import bind_context, clear_context, setup_logging


class TestParseSchoolDate:
    """Tests for parse_school_date."""

    def test_iso_string(self) -> None:
        assert parse_school_date("2025-03-02") == date(2025, 3, 2)

    def test_iso_string_with_time_is_truncated(self) -> None:
        assert parse_school_date(" 2025-03-02T08:15:00Z") == date(2025, 3, 2)

    def test_date_passes_through(self) -> None:
        day = date(2025, 3, 2)

        assert parse_school_date(day) is day

    def test_datetime_is_truncated(self) -> None:
        assert parse_school_date(datetime(2025, 3, 2, 23, 59, tzinfo=timezone.utc)) == date(2025, 3, 2)

    @pytest.mark.parametrize("value", ["", "02/03/2025", "2025-13-01", "yesterday"])
    def test_invalid_strings_raise(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_school_date(value)


class TestLogging:
    """Tests for logging setup and context binding."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        clear_context()
        structlog.reset_defaults()

    def test_setup_logging_installs_single_handler(self) -> None:
        settings = Settings(log_level="WARNING")

        setup_logging(settings)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert root.level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_non_development_renders_json(self) -> None:
        settings = Settings(environment="staging", debug=False, log_level="INFO")

        setup_logging(settings)

        formatter = logging.getLogger().handlers[0].formatter
        assert isinstance(formatter.processors[-1], structlog.processors.JSONRenderer)

    def test_bind_and_clear_context(self) -> None:
        bind_context(user_id="u-1", tenant_id="s-1")

        assert structlog.contextvars.get_contextvars() == {"user_id": "u-1", "tenant_id": "s-1"}

        clear_context()

        assert structlog.contextvars.get_contextvars() == {}
