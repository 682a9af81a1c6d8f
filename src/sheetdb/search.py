"""
Record lookup and full-text search.

Two access paths exist side by side:

- **Cache path** — :meth:`SearchEngine.find` always goes through the
  collection's unique index, paying one full read per cache generation.
- **Live path** — :meth:`SearchEngine.fts`, :meth:`SearchEngine.get` and
  :meth:`SearchEngine.stream` read the backing store directly and always
  reflect its current state, whatever the cache holds.

:meth:`SearchEngine.lookup` picks between them: the index when the cache is
already materialized, otherwise an exact-cell text search, which avoids
forcing a full load to fetch a single record.

Tags:
    search, lookup, full-text, sheetdb
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from sheetdb.core.cache import CollectionCache
from sheetdb.core.logging import get_logger
from sheetdb.core.records import KEY_FIELD, ROW_INDEX_OFFSET, Record, cell_text

logger = get_logger(__name__)


class SearchEngine:
    """Read paths of a collection."""

    def __init__(self, cache: CollectionCache):
        self.cache = cache

    @property
    def sheet(self):
        return self.cache.sheet

    def find(self, value: Any, field: str = KEY_FIELD) -> Record | None:
        """Record whose ``field`` equals ``value``, via the cached index."""
        if field == KEY_FIELD and isinstance(value, str) and value.isdigit():
            value = int(value)
        return self.cache.index(field).get(value)

    def lookup(self, value: Any, field: str = "id") -> Record | None:
        """Single record by value, without forcing a full load.

        Both paths compare cells by their displayed text (``1`` matches
        ``"1"``) and, like the index, the last matching row wins.
        """
        wanted = cell_text(value)
        if self.cache.is_built:
            index = self.cache.index(field)
            hit = index.get(value)
            if hit is not None:
                return hit
            candidates = list(index.values())
        else:
            candidates = self.fts(wanted, match_cell=True)
        found = None
        for record in candidates:
            if cell_text(record.get(field)) == wanted:
                found = record
        return found

    def fts(
        self,
        query: str,
        *,
        regex: bool = False,
        match_cell: bool = False,
        match_case: bool = False,
    ) -> list[Record]:
        """Records with at least one cell matching ``query``, in row order."""
        headers = self.cache.headers()
        if not headers:
            return []
        matches = self.sheet.find_all(
            query, regex=regex, match_cell=match_cell, match_case=match_case
        )
        rows = sorted({row for row, _ in matches if row >= ROW_INDEX_OFFSET})
        records = []
        for row in rows:
            [values] = self.sheet.read_range(row, 1, 1, len(headers))
            if self.cache.is_live_row(values):
                records.append(self.cache.to_record(values, row - ROW_INDEX_OFFSET))
        logger.debug("fts_completed", collection=self.cache.name, query=query, count=len(records))
        return records

    def get(self, key: int | str) -> Record | None:
        """Read one row by key straight from the store; None if blank."""
        key = int(key)
        if key < ROW_INDEX_OFFSET:
            return None
        headers = self.cache.headers()
        if not headers:
            return None
        [values] = self.sheet.read_range(key, 1, 1, len(headers))
        if not self.cache.is_live_row(values):
            return None
        return self.cache.to_record(values, key - ROW_INDEX_OFFSET)

    def stream(self, chunk_size: int) -> Iterator[list[Record]]:
        """Yield records in chunks of up to ``chunk_size`` rows read directly."""
        headers = self.cache.headers()
        if not headers:
            return
        chunk_size = max(1, chunk_size)
        last_row = self.sheet.last_row()
        start = ROW_INDEX_OFFSET
        while start <= last_row:
            count = min(chunk_size, last_row - start + 1)
            values = self.sheet.read_range(start, 1, count, len(headers))
            chunk = [
                self.cache.to_record(row, start - ROW_INDEX_OFFSET + offset)
                for offset, row in enumerate(values)
                if self.cache.is_live_row(row)
            ]
            if chunk:
                yield chunk
            start += count


__all__ = ["SearchEngine"]
