"""Root conftest — shared test configuration."""

import os

import pytest

from tests.factories import FixedClock

# Ensure tests never reach a real database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("AUDIT_BACKEND", "log")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
