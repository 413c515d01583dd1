"""Pytest configuration for test isolation.

Settings are read from the environment, and database engines are cached per
URL for the life of the process. Each test gets a clean ``SPEND_REWARDS_*``
environment and starts without cached engines so that one test's database
never leaks into another.
"""

from __future__ import annotations

import os

import pytest

from db.client import reset_engines


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop ambient configuration that would change library behaviour."""

    for name in list(os.environ):
        if name.startswith("SPEND_REWARDS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("SPEND_REWARDS_LOG_LEVEL", "WARNING")


@pytest.fixture(autouse=True)
def _fresh_engines():
    reset_engines()
    yield
    reset_engines()
