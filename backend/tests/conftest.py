"""
Pytest configuration for statement graph tests.
"""
import itertools

import pytest

from repositories.statement_repository import StatementRepository
from tests.fakes import InMemoryGraph


def pytest_configure(config):
    """Configure pytest with asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


@pytest.fixture
def graph():
    """Fresh in-memory graph per test."""
    return InMemoryGraph()


@pytest.fixture
def repository(graph):
    return StatementRepository(graph)


@pytest.fixture
def clock(monkeypatch):
    """
    Deterministic, strictly increasing creation times.

    Each call to utc_now_iso() inside the repository returns the next second,
    so "newest first" is observable without sleeping.
    """
    ticks = itertools.count()

    def fake_now():
        n = next(ticks)
        return f"2025-01-01T00:{n // 60:02d}:{n % 60:02d}.000Z"

    monkeypatch.setattr('repositories.statement_repository.utc_now_iso', fake_now)
    return fake_now
