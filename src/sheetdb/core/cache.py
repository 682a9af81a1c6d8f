"""
Per-collection record cache and indexes.

Reading a sheet is slow and billed per call, so each collection materializes
its records once per *generation* and builds lookups on top of that single
read. A generation ends on every successful mutation (and on an explicit
:meth:`CollectionCache.clear`), after which the next read rebuilds everything.

Architecture:
    ::

        CollectionCache
        ├── headers()        — header row, read once per generation
        ├── data()           — all non-blank rows → Record (O(rows), once)
        ├── index(field)     — value → Record        (built on demand)
        ├── related(field)   — value → [Record, ...] (built on demand)
        ├── enforce_unique() — ConflictError on a duplicate value
        └── clear()          — drop the generation (idempotent)

Invariants:
    - An index is either absent or fully consistent with the last ``data()``;
      nothing is patched incrementally.
    - A row whose primary-key column is blank is padding or a deleted row
      and is never materialized.

Tags:
    cache, index, materialization, sheetdb
"""

from __future__ import annotations

from typing import Any

from sheetdb.core.errors import ConflictError
from sheetdb.core.logging import get_logger
from sheetdb.core.protocols import RecordSchema, Sheet
from sheetdb.core.records import (
    KEY_FIELD,
    ROW_INDEX_OFFSET,
    Record,
    cell_text,
    is_blank,
    row_to_record,
)

logger = get_logger(__name__)


class CollectionCache:
    """Lazily materialized view of one sheet.

    Parameters:
        sheet: The backing sheet.
        schema: Optional hook applied to every record read.
        pk_column: 0-based column holding the primary key.
    """

    def __init__(
        self,
        sheet: Sheet,
        *,
        schema: RecordSchema | None = None,
        pk_column: int = 0,
    ) -> None:
        self.sheet = sheet
        self.schema = schema
        self.pk_column = pk_column
        self._headers: list[str] | None = None
        self._data: list[Record] | None = None
        self._index: dict[str, dict[Any, Record]] = {}
        self._related: dict[str, dict[Any, list[Record]]] = {}

    @property
    def name(self) -> str:
        return self.sheet.name

    @property
    def is_built(self) -> bool:
        """True once :meth:`data` has materialized this generation."""
        return self._data is not None

    def headers(self) -> list[str]:
        """The header row, trailing blank cells dropped."""
        if self._headers is None:
            width = self.sheet.last_column()
            if width == 0:
                self._headers = []
            else:
                [row] = self.sheet.read_range(1, 1, 1, width)
                while row and is_blank(row[-1]):
                    row = row[:-1]
                self._headers = [cell_text(h) for h in row]
        return self._headers

    def to_record(self, row: list[Any], row_index: int) -> Record:
        """Map a raw row read from the sheet, applying the schema if bound."""
        record = row_to_record(row, row_index, self.headers())
        if self.schema is not None:
            return self.schema.from_storage(record)
        return record

    def is_live_row(self, row: list[Any]) -> bool:
        return self.pk_column < len(row) and not is_blank(row[self.pk_column])

    def data(self) -> list[Record]:
        """All records, in row order."""
        if self._data is None:
            headers = self.headers()
            last_row = self.sheet.last_row()
            records: list[Record] = []
            if headers and last_row >= ROW_INDEX_OFFSET:
                values = self.sheet.read_range(
                    ROW_INDEX_OFFSET, 1, last_row - 1, len(headers)
                )
                for row_index, row in enumerate(values):
                    if self.is_live_row(row):
                        records.append(self.to_record(row, row_index))
            self._data = records
            logger.debug("collection_materialized", collection=self.name, count=len(records))
        return self._data

    def index(self, field: str = KEY_FIELD) -> dict[Any, Record]:
        """Map each value of ``field`` to its record; later rows win."""
        if field not in self._index:
            self._index[field] = {record.get(field): record for record in self.data()}
        return self._index[field]

    def related(self, field: str) -> dict[Any, list[Record]]:
        """Group records by the value of ``field``, preserving row order."""
        if field not in self._related:
            groups: dict[Any, list[Record]] = {}
            for record in self.data():
                groups.setdefault(record.get(field), []).append(record)
            self._related[field] = groups
        return self._related[field]

    def enforce_unique(self, record: Record, field: str) -> None:
        """Raise :class:`ConflictError` if another record shares ``record[field]``.

        Always scans the materialized records, excluding the record's own row.
        """
        value = record.get(field)
        for other in self.data():
            if record.key is not None and other.key == record.key:
                continue
            if other.get(field) == value:
                raise ConflictError(self.name, field, value)

    def clear(self) -> None:
        """Drop the current generation."""
        self._headers = None
        self._data = None
        self._index = {}
        self._related = {}


__all__ = ["CollectionCache"]
