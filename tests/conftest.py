"""
Shared pytest fixtures and configuration for sheetdb tests.

This module provides:
- Settings isolation (cached settings are dropped around every test)
- In-memory documents with a ``Task`` and a ``Project`` collection
- A two-row ``[id, name]`` collection

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_something(tasks):
        assert tasks.lookup("t-1")["name"] == "Write docs"
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from sheetdb.backends.memory import MemoryDocument
from sheetdb.collection import Collection, batch_lock_name
from sheetdb.core.settings import SheetDBSettings, get_settings
from tests._support import make_collection, quick_settings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        # Anything reading or writing real files
        if "workbook" in str(test_path) or "cli" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo configure_logging() calls made by a test (the CLI makes one)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings() -> SheetDBSettings:
    """Settings with a short lock timeout and no .env file."""
    return quick_settings()


# =============================================================================
# Documents and collections
# =============================================================================


TASK_ROWS = [
    ["id", "name", "done", "project"],
    ["t-1", "Write docs", False, "p-1"],
    ["t-2", "Ship release", True, "p-2"],
    ["t-3", "Review PR", False, "p-1"],
]


@pytest.fixture
def document() -> MemoryDocument:
    """Document with two collections and one reserved sheet."""
    return MemoryDocument.from_dict(
        {
            "Task": [list(row) for row in TASK_ROWS],
            "Project": [["id", "title"], ["p-1", "Docs"], ["p-2", "Release"]],
            "_meta": [["version"], [3]],
        },
        name="workspace",
    )


@pytest.fixture
def task_sheet(document):
    return document.sheet("Task")


@pytest.fixture
def tasks(document, settings) -> Collection:
    """The ``Task`` collection without a schema."""
    return Collection(
        document.sheet("Task"),
        lock=document.lock(batch_lock_name("Task")),
        settings=settings,
    )


@pytest.fixture
def alpha() -> Collection:
    """Two-row ``[id, name]`` collection."""
    return make_collection([["id", "name"], ["a", "Alpha"], ["b", "Beta"]], name="Alpha")
