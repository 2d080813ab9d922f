"""
Shared pytest fixtures and configuration for sqlbridge tests.

This module provides:
- Settings cache isolation between tests
- In-memory connections, with and without the bundled extensions
- A ``people`` table for transfer tests
- ``ReleaseTracker``, an allocation-tracking hook for batches

Usage:
    def test_insert(people, tracker):
        batch = Batch(["1", "Ada", None], on_release=tracker)
        ...
        assert tracker.count == 2
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure sqlbridge package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlbridge.core.settings import reset_settings
from sqlbridge.driver import Connection, OwnedValue
from sqlbridge.ext import register_extensions


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        # Extension tests cross the native boundary in both directions
        if test_path.parts[0] == "ext":
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Re-read SQLBRIDGE_* environment variables in every test."""
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# Connections
# =============================================================================


@pytest.fixture
def conn() -> Generator[Connection, None, None]:
    """A fresh in-memory connection."""
    with Connection.open() as connection:
        yield connection


@pytest.fixture
def people(conn: Connection) -> Connection:
    """Connection with a ``people`` table keyed by text id."""
    conn.execute("CREATE TABLE people(id TEXT PRIMARY KEY, name TEXT NOT NULL, note TEXT)")
    return conn


@pytest.fixture(scope="session")
def extensions() -> tuple[str, ...]:
    """Register the bundled extensions once per session."""
    return register_extensions().unwrap()


@pytest.fixture
def ext_conn(extensions: tuple[str, ...]) -> Generator[Connection, None, None]:
    """A connection opened after extension registration."""
    with Connection.open() as connection:
        yield connection


# =============================================================================
# Allocation Tracking
# =============================================================================


class ReleaseTracker:
    """Records every OwnedValue release it observes."""

    def __init__(self) -> None:
        self.released: list[OwnedValue] = []

    def __call__(self, value: OwnedValue) -> None:
        self.released.append(value)

    @property
    def count(self) -> int:
        return len(self.released)

    @property
    def distinct(self) -> int:
        return len({id(value) for value in self.released})


@pytest.fixture
def tracker() -> ReleaseTracker:
    return ReleaseTracker()


@pytest.fixture
def count_rows():
    """Row count of a table, read through a subquery."""

    def count(connection: Connection, table: str) -> int:
        with connection.prepare(f"SELECT count(*) FROM {table}") as stmt:
            return int(stmt.subquery())

    return count
