"""
In-memory backing store.

A :class:`MemoryDocument` holds named :class:`MemorySheet` grids in process
memory. It implements the full :mod:`sheetdb.core.protocols` contract and is
what the test-suite runs against; it is also handy for prototyping a schema
before pointing it at a real document.

Every write-style call is appended to :attr:`MemorySheet.writes` as
``(operation, row, num_rows)`` so callers can assert how many round trips an
operation cost.

Examples:
    >>> doc = MemoryDocument.from_dict({
    ...     "Project": [["id", "name"], ["p-1", "Docs"]],
    ...     "_meta": [["version"], [3]],
    ... })
    >>> [s.name for s in doc.sheets()]
    ['Project', '_meta']
    >>> doc.sheet("Project").read_range(2, 1, 1, 2)
    [['p-1', 'Docs']]

Tags:
    backend, in-memory, testing, sheetdb
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any

from sheetdb.backends.locks import ThreadLock
from sheetdb.backends.utils import cell_matches, copy_name, sort_rows
from sheetdb.core.errors import StorageError
from sheetdb.core.records import BLANK, is_blank


class MemorySheet:
    """A growable grid of cells; blank cells are stored as ``""``."""

    def __init__(
        self,
        name: str,
        rows: Sequence[Sequence[Any]] | None = None,
        *,
        padding_rows: int = 0,
    ):
        self._name = name
        self._columns = max((len(r) for r in rows or []), default=0)
        self._rows: list[list[Any]] = [self._normalize(r) for r in rows or []]
        self._rows.extend([BLANK] * self._columns for _ in range(padding_rows))
        self.writes: list[tuple[str, int, int]] = []

    def _normalize(self, row: Sequence[Any]) -> list[Any]:
        values = [BLANK if v is None else v for v in row]
        return values + [BLANK] * (self._columns - len(values))

    def _grow(self, num_rows: int, num_columns: int) -> None:
        if num_columns > self._columns:
            for row in self._rows:
                row.extend([BLANK] * (num_columns - self._columns))
            self._columns = num_columns
        while len(self._rows) < num_rows:
            self._rows.append([BLANK] * self._columns)

    @property
    def name(self) -> str:
        return self._name

    def last_row(self) -> int:
        for index in range(len(self._rows) - 1, -1, -1):
            if any(not is_blank(v) for v in self._rows[index]):
                return index + 1
        return 0

    def last_column(self) -> int:
        last = 0
        for row in self._rows:
            for index in range(len(row) - 1, last - 1, -1):
                if not is_blank(row[index]):
                    last = index + 1
                    break
        return last

    def max_rows(self) -> int:
        return len(self._rows)

    def max_columns(self) -> int:
        return self._columns

    def read_range(
        self, row: int, column: int, num_rows: int, num_columns: int
    ) -> list[list[Any]]:
        block = []
        for r in range(row - 1, row - 1 + num_rows):
            source = self._rows[r] if r < len(self._rows) else []
            block.append(
                [
                    source[c] if c < len(source) else BLANK
                    for c in range(column - 1, column - 1 + num_columns)
                ]
            )
        return block

    def write_range(self, row: int, column: int, values: list[list[Any]]) -> None:
        if not values:
            return
        width = max(len(v) for v in values)
        self._grow(row - 1 + len(values), column - 1 + width)
        for offset, source in enumerate(values):
            target = self._rows[row - 1 + offset]
            for c, value in enumerate(source):
                target[column - 1 + c] = BLANK if value is None else value
        self.writes.append(("write_range", row, len(values)))

    def append_row(self, values: list[Any]) -> None:
        row = self.last_row() + 1
        self._grow(row, len(values))
        target = self._rows[row - 1]
        for c, value in enumerate(values):
            target[c] = BLANK if value is None else value
        self.writes.append(("append_row", row, 1))

    def clear_range(self, row: int, column: int, num_rows: int, num_columns: int) -> None:
        for r in range(row - 1, min(row - 1 + num_rows, len(self._rows))):
            for c in range(column - 1, min(column - 1 + num_columns, self._columns)):
                self._rows[r][c] = BLANK
        self.writes.append(("clear_range", row, num_rows))

    def delete_rows(self, row: int, count: int) -> None:
        if row < 1 or count < 0:
            raise StorageError(f"Invalid row span {row}+{count} on {self._name}")
        del self._rows[row - 1 : row - 1 + count]
        self.writes.append(("delete_rows", row, count))

    def sort(self, column: int, ascending: bool = True) -> None:
        if len(self._rows) <= 1:
            return
        self._rows[1:] = sort_rows(self._rows[1:], column - 1, ascending)
        self.writes.append(("sort", 2, len(self._rows) - 1))

    def find_all(
        self,
        query: str,
        *,
        regex: bool = False,
        match_cell: bool = False,
        match_case: bool = False,
    ) -> list[tuple[int, int]]:
        return [
            (r + 1, c + 1)
            for r, row in enumerate(self._rows)
            for c, value in enumerate(row)
            if cell_matches(
                value, query, regex=regex, match_cell=match_cell, match_case=match_case
            )
        ]

    def copy_to(self, document: MemoryDocument) -> MemorySheet:
        name = copy_name(self._name, document.sheet_names())
        return document.add_sheet(name, copy.deepcopy(self._rows))

    def rows(self) -> list[list[Any]]:
        """Snapshot of the whole grid."""
        return copy.deepcopy(self._rows)


class MemoryDocument:
    """A named set of :class:`MemorySheet` grids with process-local locks."""

    def __init__(self, name: str = "document"):
        self._name = name
        self._sheets: dict[str, MemorySheet] = {}
        self._locks: dict[str, ThreadLock] = {}

    @classmethod
    def from_dict(
        cls, sheets: Mapping[str, Sequence[Sequence[Any]]], *, name: str = "document"
    ) -> MemoryDocument:
        document = cls(name)
        for sheet_name, rows in sheets.items():
            document.add_sheet(sheet_name, rows)
        return document

    @property
    def name(self) -> str:
        return self._name

    def add_sheet(
        self, name: str, rows: Sequence[Sequence[Any]] | None = None, **kwargs: Any
    ) -> MemorySheet:
        if name in self._sheets:
            raise StorageError(f"Sheet {name!r} already exists in {self._name}")
        sheet = MemorySheet(name, rows, **kwargs)
        self._sheets[name] = sheet
        return sheet

    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def sheets(self) -> list[MemorySheet]:
        return list(self._sheets.values())

    def sheet(self, name: str) -> MemorySheet:
        return self._sheets[name]

    def copy_to(self, destination: str) -> MemoryDocument:
        duplicate = MemoryDocument(destination)
        for sheet in self._sheets.values():
            duplicate.add_sheet(sheet.name, sheet.rows())
        return duplicate

    def lock(self, name: str) -> ThreadLock:
        if name not in self._locks:
            self._locks[name] = ThreadLock(name)
        return self._locks[name]


__all__ = ["MemorySheet", "MemoryDocument"]
