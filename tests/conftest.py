"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from shellwatch.config import reset_config
from shellwatch.logging import reset_logging
from shellwatch.registry import MemoryStore, SessionRegistry
from shellwatch.tmux.client import TmuxClient
from shellwatch.tmux.resolver import TmuxPathResolver
from tests.utils import FakeExecutor

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset cached config and logging handlers around every test."""
    reset_config()
    reset_logging()
    yield
    reset_config()
    reset_logging()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def client(executor: FakeExecutor) -> TmuxClient:
    """A TmuxClient whose subprocess calls go to the fake executor."""
    resolver = TmuxPathResolver(binary="tmux", executor=executor)
    return TmuxClient(resolver=resolver, executor=executor, probe_timeout=2.0)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def registry(store: MemoryStore) -> SessionRegistry:
    return SessionRegistry(store)
