"""
Pytest configuration and fixtures.
"""

import os
import random

import pytest

from actwright.config import ExecutorSettings, Settings, reset_settings
from actwright.engine.tree_indexer import TreeIndexer
from tests.fakes import FakeDriver, FakePage, SleepRecorder


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep ACTWRIGHT__ variables from the environment out of tests."""
    for key in list(os.environ):
        if key.startswith("ACTWRIGHT__"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    """Provide test settings: fast polling, in-memory cache."""
    return Settings(
        executor=ExecutorSettings(actionable_poll_ms=1, actionable_timeout_ms=2000),
    )


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def driver(fake_page):
    return FakeDriver(fake_page.root)


@pytest.fixture
def snapshot(driver):
    """Indexed snapshot of the fake page as it is now."""
    return TreeIndexer().index_frames(driver.raw_frames())


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def rng():
    return random.Random(1234)
