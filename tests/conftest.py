"""
Pytest fixtures for the billing test suite.

Provides:
- A deterministic clock anchored to a known calendar date
- Default billing settings
- A structured log capture that resets logging between tests
"""

import json
import logging
from datetime import date
from io import StringIO

import pytest

from billing_config.schema import BillingSettings
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.logging_config import (
    LogContext,
    configure_logging,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def reference_date() -> date:
    return date(2025, 11, 15)


@pytest.fixture
def clock(reference_date) -> DeterministicClock:
    return DeterministicClock.on(reference_date)


@pytest.fixture
def settings() -> BillingSettings:
    return BillingSettings(settings_id="test", version=1)


class LogCapture:
    """Collects structured log lines emitted under billing_kernel."""

    def __init__(self, stream: StringIO):
        self._stream = stream

    @property
    def records(self) -> list[dict]:
        lines = self._stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    def messages(self) -> list[str]:
        return [r["message"] for r in self.records]

    def find(self, message: str) -> list[dict]:
        return [r for r in self.records if r["message"] == message]


@pytest.fixture
def log_capture() -> LogCapture:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    configure_logging(handler=handler, level=logging.DEBUG)
    return LogCapture(stream)
