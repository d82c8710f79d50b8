# tests/conftest.py
"""Shared fixtures for Okkake tests."""

import sys
from datetime import UTC, datetime
from pathlib import Path
from types import ModuleType
from typing import Any

import pytest

# Add src directory to path so imports work like in Workers environment
_src_path = str(Path(__file__).parent.parent / "src")
if _src_path not in sys.path:
    sys.path.insert(0, _src_path)

# =============================================================================
# Mock Workers Module (must be set up before importing main)
# =============================================================================


class MockResponse:
    """Mock Cloudflare Workers Response object."""

    def __init__(
        self,
        body: str = "",
        status: int = 200,
        headers: dict | None = None,
    ):
        self.body = body
        self.status = status
        self._headers = headers or {}

    @property
    def headers(self) -> dict:
        return self._headers


class MockWorkerEntrypoint:
    """Mock Cloudflare Workers WorkerEntrypoint base class."""

    env: Any = None
    ctx: Any = None

    def __init__(self):
        pass


class MockRequest:
    """Mock Cloudflare Workers Request object."""

    def __init__(
        self,
        url: str = "https://okkake.example.com/",
        method: str = "GET",
        headers: dict | None = None,
    ):
        self.url = url
        self.method = method
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}


# Create mock workers module
_mock_workers = ModuleType("workers")
_mock_workers.Request = MockRequest
_mock_workers.Response = MockResponse
_mock_workers.WorkerEntrypoint = MockWorkerEntrypoint

# Install the mock before any imports of main
sys.modules.setdefault("workers", _mock_workers)


# =============================================================================
# Shared Test Constants
# =============================================================================

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


# =============================================================================
# Mock Environment
# =============================================================================


class MockEnv:
    """Mock Cloudflare Worker environment bindings."""

    def __init__(self, db: Any = None, **vars: str):
        self.DB = db
        self.SITE_NAME = "Okkake Test"
        self.PUBLIC_URL = "https://okkake.example.com"
        for key, value in vars.items():
            setattr(self, key, value)


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture
def sqlite_d1():
    """A D1 double backed by in-memory SQLite with migrations applied."""
    from tests.mocks.d1 import SqliteD1

    db = SqliteD1()
    yield db
    db.close()


@pytest.fixture
def memory_store():
    from tests.mocks.novels import InMemoryNovelStore

    return InMemoryNovelStore()


@pytest.fixture
def novel_key():
    from models import Category, NovelKey
    from ncode import Ncode

    return NovelKey(Category.GENERAL, Ncode.parse("n4830bu"))


@pytest.fixture
def novel_data():
    from tests.fixtures.factories import NovelDataFactory

    return NovelDataFactory.create(episodes=3)


@pytest.fixture(autouse=True)
def reset_factories():
    """Reset factory counters before each test."""
    from tests.fixtures.factories import NovelDataFactory

    NovelDataFactory.reset()
    yield
