"""
Protocol definitions for the collaborators sheetdb depends on.

The collection core never talks to a concrete spreadsheet API. It depends on
the shapes below, and any object matching them works: the in-memory store in
:mod:`sheetdb.backends.memory`, the openpyxl workbook store in
:mod:`sheetdb.backends.workbook`, or an adapter over a hosted spreadsheet
service.

Architecture:
    ::

        protocols.py
        ├── Sheet         — one named 2-D grid (1-based rows/columns)
        ├── Document      — a set of named sheets + copy + named locks
        ├── NamedLock     — blocking try-acquire with timeout, explicit release
        └── RecordSchema  — validate/normalize before write, coerce after read

Coordinates:
    Rows and columns are 1-based. Row 1 of every collection sheet holds the
    headers. Blank cells read back as ``""``.

Guardrails:
    ❌ DON'T: Reach past these protocols into backend internals
    ✅ DO: Add an operation here first, then implement it in every backend

Tags:
    protocol, backing-store, schema, lock, sheetdb
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sheetdb.core.records import Record


@runtime_checkable
class NamedLock(Protocol):
    """A named mutual-exclusion lock shared by every user of a document."""

    @property
    def name(self) -> str:
        ...

    def try_acquire(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True once the lock is held."""
        ...

    def release(self) -> None:
        """Release a lock previously acquired by this holder."""
        ...


@runtime_checkable
class Sheet(Protocol):
    """One named two-dimensional grid of cells."""

    @property
    def name(self) -> str:
        ...

    def last_row(self) -> int:
        """Highest row holding any non-blank cell (0 when empty)."""
        ...

    def last_column(self) -> int:
        """Highest column holding any non-blank cell (0 when empty)."""
        ...

    def max_rows(self) -> int:
        """Rows allocated to the grid, blank or not."""
        ...

    def max_columns(self) -> int:
        """Columns allocated to the grid, blank or not."""
        ...

    def read_range(
        self, row: int, column: int, num_rows: int, num_columns: int
    ) -> list[list[Any]]:
        """Read a rectangular block; cells outside the grid read as blank."""
        ...

    def write_range(self, row: int, column: int, values: list[list[Any]]) -> None:
        """Assign a rectangular block in one step, growing the grid if needed."""
        ...

    def append_row(self, values: list[Any]) -> None:
        """Write ``values`` into the row after :meth:`last_row`."""
        ...

    def clear_range(self, row: int, column: int, num_rows: int, num_columns: int) -> None:
        """Blank a rectangular block without removing rows."""
        ...

    def delete_rows(self, row: int, count: int) -> None:
        """Physically remove ``count`` rows starting at ``row``."""
        ...

    def sort(self, column: int, ascending: bool = True) -> None:
        """Sort rows below the header row by one column; blanks sort last."""
        ...

    def find_all(
        self,
        query: str,
        *,
        regex: bool = False,
        match_cell: bool = False,
        match_case: bool = False,
    ) -> list[tuple[int, int]]:
        """Return ``(row, column)`` of every matching cell, in row order."""
        ...

    def copy_to(self, document: Document) -> Sheet:
        """Copy this sheet (values only) into another document."""
        ...


@runtime_checkable
class Document(Protocol):
    """A document of named sheets."""

    @property
    def name(self) -> str:
        ...

    def sheets(self) -> list[Sheet]:
        """All sheets, in document order."""
        ...

    def sheet(self, name: str) -> Sheet:
        """Sheet by name; ``KeyError`` when absent."""
        ...

    def copy_to(self, destination: str) -> Document:
        """Copy the whole document to ``destination`` and return the copy."""
        ...

    def lock(self, name: str) -> NamedLock:
        """The named lock ``name``, shared by every holder of this document."""
        ...


@runtime_checkable
class RecordSchema(Protocol):
    """Pluggable record validation/normalization hook.

    The core only ever calls these two operations.
    """

    def to_storage(
        self, record: Record, *, is_new: bool, throw_on_error: bool = True
    ) -> Record:
        """Validate and normalize a record before it is written.

        Raises:
            ValidationError: if the record is rejected and ``throw_on_error``.
        """
        ...

    def from_storage(self, record: Record) -> Record:
        """Coerce a raw record read from the store."""
        ...


__all__ = [
    "NamedLock",
    "Sheet",
    "Document",
    "RecordSchema",
]
