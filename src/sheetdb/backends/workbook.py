"""
openpyxl workbook backing store.

Exposes an ``.xlsx`` file as a sheetdb document. Every write is saved back to
disk immediately (``autosave=True``), so another process that calls
:meth:`WorkbookDocument.reload` sees it. The batch lock is a
:class:`~sheetdb.backends.locks.SqliteLock` kept in ``<file>.lock.sqlite``
beside the workbook, shared by every process that opens the same file.

Examples:
    >>> doc = WorkbookDocument.create("crm.xlsx", {"Contact": [["id", "email"]]})
    >>> registry = Registry.open(doc)
    >>> registry["Contact"].add_one({"id": "c-1", "email": "ada@example.com"})
    Record({'id': 'c-1', 'email': 'ada@example.com'}, key=2)

Guardrails:
    ❌ DON'T: Keep one WorkbookDocument open for hours while others write
    ✅ DO: reload() before a read that must reflect other processes

Tags:
    backend, openpyxl, xlsx, file-storage, sheetdb
"""

from __future__ import annotations

import zipfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from sheetdb.backends.locks import SqliteLock, utcnow
from sheetdb.backends.utils import cell_matches, copy_name, sort_rows
from sheetdb.core.errors import StorageError
from sheetdb.core.logging import get_logger
from sheetdb.core.records import BLANK, is_blank

logger = get_logger(__name__)


_LOAD_ERRORS = (OSError, InvalidFileException, zipfile.BadZipFile, KeyError)


def _cell_in(value: Any) -> Any:
    return BLANK if value is None else value


def _cell_out(value: Any) -> Any:
    return None if is_blank(value) else value


class WorkbookSheet:
    """One worksheet of a :class:`WorkbookDocument`."""

    def __init__(self, document: WorkbookDocument, title: str):
        self.document = document
        self._title = title

    @property
    def worksheet(self) -> Worksheet:
        # Resolved on every access so reload() never leaves a detached worksheet
        return self.document.workbook[self._title]

    @property
    def name(self) -> str:
        return self._title

    def last_row(self) -> int:
        last = 0
        for index, row in enumerate(self.worksheet.iter_rows(values_only=True), start=1):
            if any(not is_blank(v) for v in row):
                last = index
        return last

    def last_column(self) -> int:
        last = 0
        for row in self.worksheet.iter_rows(values_only=True):
            for index in range(len(row), last, -1):
                if not is_blank(row[index - 1]):
                    last = index
                    break
        return last

    def max_rows(self) -> int:
        return self.worksheet.max_row

    def max_columns(self) -> int:
        return self.worksheet.max_column

    def read_range(
        self, row: int, column: int, num_rows: int, num_columns: int
    ) -> list[list[Any]]:
        if num_rows <= 0 or num_columns <= 0:
            return []
        return [
            [_cell_in(v) for v in values]
            for values in self.worksheet.iter_rows(
                min_row=row,
                max_row=row + num_rows - 1,
                min_col=column,
                max_col=column + num_columns - 1,
                values_only=True,
            )
        ]

    def _assign(self, row: int, column: int, values: list[list[Any]]) -> None:
        for r, source in enumerate(values, start=row):
            for c, value in enumerate(source, start=column):
                # cell(value=None) keeps the old value, so assign explicitly
                self.worksheet.cell(row=r, column=c).value = _cell_out(value)

    def write_range(self, row: int, column: int, values: list[list[Any]]) -> None:
        if not values:
            return
        self._assign(row, column, values)
        self.document.changed()

    def append_row(self, values: list[Any]) -> None:
        self._assign(self.last_row() + 1, 1, [values])
        self.document.changed()

    def clear_range(self, row: int, column: int, num_rows: int, num_columns: int) -> None:
        self._assign(row, column, [[None] * num_columns for _ in range(num_rows)])
        self.document.changed()

    def delete_rows(self, row: int, count: int) -> None:
        if count <= 0:
            return
        self.worksheet.delete_rows(row, count)
        self.document.changed()

    def sort(self, column: int, ascending: bool = True) -> None:
        max_row = self.worksheet.max_row
        if max_row <= 1:
            return
        width = self.worksheet.max_column
        rows = self.read_range(2, 1, max_row - 1, width)
        self._assign(2, 1, sort_rows(rows, column - 1, ascending))
        self.document.changed()

    def find_all(
        self,
        query: str,
        *,
        regex: bool = False,
        match_cell: bool = False,
        match_case: bool = False,
    ) -> list[tuple[int, int]]:
        matches = []
        for r, row in enumerate(self.worksheet.iter_rows(values_only=True), start=1):
            for c, value in enumerate(row, start=1):
                if cell_matches(
                    value, query, regex=regex, match_cell=match_cell, match_case=match_case
                ):
                    matches.append((r, c))
        return matches

    def copy_to(self, document: WorkbookDocument) -> WorkbookSheet:
        name = copy_name(self.name, document.workbook.sheetnames)
        target = document.workbook.create_sheet(title=name)
        for row in self.worksheet.iter_rows(values_only=True):
            target.append(list(row))
        document.changed()
        return WorkbookSheet(document, target.title)


class WorkbookDocument:
    """An ``.xlsx`` workbook exposed as a sheetdb document.

    Parameters:
        path: Location of the workbook file.
        workbook: Already loaded openpyxl workbook for ``path``.
        autosave: Save after every write.
        lock_expiry_seconds: Expiry of cross-process lock rows.
    """

    def __init__(
        self,
        path: str | Path,
        workbook: Workbook,
        *,
        autosave: bool = True,
        lock_expiry_seconds: int = 300,
    ):
        self.path = Path(path)
        self.workbook = workbook
        self.autosave = autosave
        self.lock_expiry_seconds = lock_expiry_seconds

    @classmethod
    def open(cls, path: str | Path, **kwargs: Any) -> WorkbookDocument:
        """Load an existing workbook."""
        try:
            workbook = load_workbook(path)
        except _LOAD_ERRORS as exc:
            raise StorageError(f"Cannot open workbook {path}", cause=exc) from exc
        return cls(path, workbook, **kwargs)

    @classmethod
    def create(
        cls,
        path: str | Path,
        sheets: Mapping[str, Sequence[Sequence[Any]]] | None = None,
        **kwargs: Any,
    ) -> WorkbookDocument:
        """Create a new workbook file holding ``sheets``."""
        workbook = Workbook()
        if sheets:
            workbook.remove(workbook.active)
        for name, rows in (sheets or {}).items():
            worksheet = workbook.create_sheet(title=name)
            for row in rows:
                worksheet.append([_cell_out(v) for v in row])
        document = cls(path, workbook, **kwargs)
        document.save()
        return document

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock.sqlite")

    def sheets(self) -> list[WorkbookSheet]:
        return [WorkbookSheet(self, ws.title) for ws in self.workbook.worksheets]

    def sheet(self, name: str) -> WorkbookSheet:
        return WorkbookSheet(self, self.workbook[name].title)

    def changed(self) -> None:
        if self.autosave:
            self.save()

    def save(self, path: str | Path | None = None) -> None:
        target = Path(path) if path is not None else self.path
        try:
            self.workbook.save(target)
        except OSError as exc:
            raise StorageError(f"Cannot save workbook to {target}", cause=exc) from exc

    def reload(self) -> None:
        """Re-read the file to pick up writes made by other processes."""
        try:
            self.workbook = load_workbook(self.path)
        except _LOAD_ERRORS as exc:
            raise StorageError(f"Cannot reload workbook {self.path}", cause=exc) from exc

    def copy_to(self, destination: str) -> WorkbookDocument:
        """Save a copy of the workbook.

        ``destination`` is a file path, or an existing directory in which case
        the copy is named ``<stem>_<UTC timestamp><suffix>``.
        """
        target = Path(destination)
        if target.is_dir():
            stamp = utcnow().strftime("%Y%m%dT%H%M%SZ")
            target = target / f"{self.path.stem}_{stamp}{self.path.suffix or '.xlsx'}"
        self.save(target)
        logger.info("workbook_copied", source=str(self.path), destination=str(target))
        return WorkbookDocument.open(
            target, autosave=self.autosave, lock_expiry_seconds=self.lock_expiry_seconds
        )

    def lock(self, name: str) -> SqliteLock:
        return SqliteLock(self.lock_path, name, expiry_seconds=self.lock_expiry_seconds)


__all__ = ["WorkbookSheet", "WorkbookDocument"]
