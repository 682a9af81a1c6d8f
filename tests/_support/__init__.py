"""
Test support utilities for sheetdb tests.

Helpers that don't fit as pytest fixtures but are useful across multiple
test files.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from sheetdb.backends.memory import MemoryDocument, MemorySheet
from sheetdb.collection import Collection
from sheetdb.core.settings import SheetDBSettings


class Task(BaseModel):
    """Row model of the ``Task`` fixture collection."""

    id: str
    name: str
    done: bool = False
    project: str | None = None


def quick_settings(**overrides: Any) -> SheetDBSettings:
    """Settings that ignore ``.env`` and time out quickly."""
    overrides.setdefault("lock_timeout_seconds", 0.2)
    return SheetDBSettings(_env_file=None, **overrides)


def make_collection(
    rows: Sequence[Sequence[Any]], *, name: str = "Sheet", **kwargs: Any
) -> Collection:
    """Collection over a fresh single-sheet memory document."""
    document = MemoryDocument.from_dict({name: rows})
    kwargs.setdefault("settings", quick_settings())
    return Collection(document.sheet(name), **kwargs)


def write_counts(sheet: MemorySheet) -> dict[str, int]:
    """Number of recorded write calls per operation."""
    counts: dict[str, int] = {}
    for operation, _, _ in sheet.writes:
        counts[operation] = counts.get(operation, 0) + 1
    return counts
