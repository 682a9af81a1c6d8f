"""
A sheet exposed as a collection of records.

:class:`Collection` binds one named sheet to its cache, its read paths
(:class:`~sheetdb.search.SearchEngine`) and its write paths
(:class:`~sheetdb.mutations.MutationEngine`), and hosts the maintenance
operations that physically relocate rows (sort, defrag, wipe, archive).

Architecture:
    ::

        Collection("Task")
        ├── cache      CollectionCache   data / index / related / enforce_unique
        ├── search     SearchEngine      find / lookup / fts / get / stream
        ├── mutations  MutationEngine    add / update / upsert / patch / delete / batch
        ├── preflight(records) → Preflight
        └── sort / defrag / wipe / archive / inspect / write_headers / pk

Row identity:
    sort, defrag, wipe and archive move or remove rows. Every ``_key`` held
    from before one of them is invalid afterwards; re-read before writing.

Examples:
    >>> tasks = Collection(doc.sheet("Task"), lock=doc.lock(batch_lock_name("Task")))
    >>> task = tasks.lookup("task-003", "id")
    >>> task["done"] = True
    >>> tasks.update_one(task)
    Record({...}, key=4)

Tags:
    collection, crud, sheetdb
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from sheetdb.backends.locks import ThreadLock
from sheetdb.core.cache import CollectionCache
from sheetdb.core.logging import get_logger
from sheetdb.core.protocols import Document, NamedLock, RecordSchema, Sheet
from sheetdb.core.records import KEY_FIELD, ROW_INDEX_OFFSET, Record
from sheetdb.core.settings import SheetDBSettings, get_settings
from sheetdb.mutations import MutationEngine, RecordLike
from sheetdb.responses import UsageReport
from sheetdb.search import SearchEngine
from sheetdb.transaction import Preflight

logger = get_logger(__name__)


def batch_lock_name(collection: str) -> str:
    """Name of the lock guarding block rewrites of ``collection``."""
    return f"sheetdb:batch:{collection}"


class Collection:
    """CRUD access to the records of one sheet.

    Parameters:
        sheet: The backing sheet; row 1 holds the headers.
        schema: Optional validation hook applied on every write and read.
        lock: Named lock for :meth:`batch`; a process-local lock by default.
        settings: Runtime settings; :func:`get_settings` by default.
        pk_column: 0-based primary-key column.
    """

    def __init__(
        self,
        sheet: Sheet,
        *,
        schema: RecordSchema | None = None,
        lock: NamedLock | None = None,
        settings: SheetDBSettings | None = None,
        pk_column: int = 0,
    ):
        self.sheet = sheet
        self.schema = schema
        self.settings = settings or get_settings()
        self.lock = lock or ThreadLock(batch_lock_name(sheet.name))
        self.cache = CollectionCache(sheet, schema=schema, pk_column=pk_column)
        self.search = SearchEngine(self.cache)
        self.mutations = MutationEngine(
            self.cache, lock=self.lock, lock_timeout=self.settings.lock_timeout_seconds
        )

    @property
    def name(self) -> str:
        return self.sheet.name

    def __repr__(self) -> str:
        return f"Collection({self.name!r})"

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def pk(self, column_index: int) -> Collection:
        """Set the 0-based primary-key column (only needed when not 0)."""
        self.cache.pk_column = column_index
        self.cache.clear()
        return self

    def headers(self) -> list[str]:
        return list(self.cache.headers())

    def write_headers(self, fields: Mapping[str, Any] | Iterable[str]) -> Collection:
        """Replace the header row with ``fields`` (a record's keys, or names)."""
        names = [name for name in fields if name != KEY_FIELD]
        self.sheet.clear_range(1, 1, 1, max(self.sheet.max_columns(), len(names)))
        self.sheet.write_range(1, 1, [names])
        self.cache.clear()
        logger.info("headers_written", collection=self.name, headers=names)
        return self

    def row_count(self) -> int:
        """Last used row, header included."""
        return self.sheet.last_row()

    # ------------------------------------------------------------------ #
    # Cached reads
    # ------------------------------------------------------------------ #

    def data(self) -> list[Record]:
        return self.cache.data()

    def index(self, field: str = "id") -> dict[Any, Record]:
        return self.cache.index(field)

    def related(self, field: str) -> dict[Any, list[Record]]:
        return self.cache.related(field)

    def enforce_unique(self, record: RecordLike, field: str) -> Collection:
        self.cache.enforce_unique(Record.from_mapping(record), field)
        return self

    def clear_cached(self) -> Collection:
        self.cache.clear()
        return self

    def find(self, value: Any, field: str = KEY_FIELD) -> Record | None:
        return self.search.find(value, field)

    # ------------------------------------------------------------------ #
    # Live reads
    # ------------------------------------------------------------------ #

    def lookup(self, value: Any, field: str = "id") -> Record | None:
        return self.search.lookup(value, field)

    def fts(
        self,
        query: str,
        *,
        regex: bool = False,
        match_cell: bool = False,
        match_case: bool = False,
    ) -> list[Record]:
        return self.search.fts(query, regex=regex, match_cell=match_cell, match_case=match_case)

    def get(self, key: int | str) -> Record | None:
        return self.search.get(key)

    def stream(self, chunk_size: int | None = None) -> Iterator[list[Record]]:
        return self.search.stream(chunk_size or self.settings.stream_chunk_size)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def add_one(self, record: RecordLike, *, bypass_schema: bool = False) -> Record:
        return self.mutations.add_one(record, bypass_schema=bypass_schema)

    def add(self, records: Iterable[RecordLike], *, bypass_schema: bool = False) -> list[Record]:
        return self.mutations.add(records, bypass_schema=bypass_schema)

    def update(
        self, records: Iterable[RecordLike], *, bypass_schema: bool = False
    ) -> list[Record]:
        return self.mutations.update(records, bypass_schema=bypass_schema)

    def update_one(self, record: RecordLike, *, bypass_schema: bool = False) -> Record:
        return self.mutations.update_one(record, bypass_schema=bypass_schema)

    def upsert(
        self, records: Iterable[RecordLike], *, bypass_schema: bool = False
    ) -> list[Record]:
        return self.mutations.upsert(records, bypass_schema=bypass_schema)

    def upsert_one(self, record: RecordLike, *, bypass_schema: bool = False) -> Record:
        return self.mutations.upsert_one(record, bypass_schema=bypass_schema)

    def patch(
        self, patches: Iterable[RecordLike], *, bypass_schema: bool = False
    ) -> list[Record]:
        return self.mutations.patch(patches, bypass_schema=bypass_schema)

    def delete(self, records: Iterable[RecordLike]) -> None:
        self.mutations.delete(records)

    def batch(self, records: Iterable[RecordLike], *, bypass_schema: bool = False) -> list[Record]:
        return self.mutations.batch(records, bypass_schema=bypass_schema)

    def preflight(self, records: RecordLike | Iterable[RecordLike]) -> Preflight:
        """Validate ``records`` once and return single-use commit actions."""
        return Preflight(self.mutations, records)

    # ------------------------------------------------------------------ #
    # Maintenance (invalidates held keys)
    # ------------------------------------------------------------------ #

    def sort(self, field: str, ascending: bool = True) -> Collection:
        """Sort rows by ``field``; an unknown field is a no-op."""
        headers = self.cache.headers()
        if field not in headers:
            logger.warning("sort_field_unknown", collection=self.name, field=field)
            return self
        self.sheet.sort(headers.index(field) + 1, ascending)
        self.cache.clear()
        logger.info("collection_sorted", collection=self.name, field=field, ascending=ascending)
        return self

    def defrag(self) -> Collection:
        """Compact non-blank rows to the top and drop trailing rows."""
        headers = self.cache.headers()
        last_row = self.sheet.last_row()
        if not headers or last_row < ROW_INDEX_OFFSET:
            return self
        width = max(self.sheet.max_columns(), len(headers))
        values = self.sheet.read_range(ROW_INDEX_OFFSET, 1, last_row - 1, width)
        kept = [row for row in values if self.cache.is_live_row(row)]
        if not kept:
            return self

        max_rows = self.sheet.max_rows()
        if len(kept) + 1 == max_rows:
            return self

        self.sheet.clear_range(ROW_INDEX_OFFSET, 1, max_rows - 1, width)
        self.sheet.write_range(ROW_INDEX_OFFSET, 1, kept)
        self.sheet.delete_rows(len(kept) + ROW_INDEX_OFFSET, max_rows - len(kept) - 1)
        self.cache.clear()
        logger.info(
            "collection_defragmented",
            collection=self.name,
            rows=len(kept),
            removed=max_rows - len(kept) - 1,
        )
        return self

    def wipe(self) -> Collection:
        """Delete every row below the header row."""
        max_rows = self.sheet.max_rows()
        if max_rows > 1:
            self.sheet.delete_rows(ROW_INDEX_OFFSET, max_rows - 1)
            logger.info("collection_wiped", collection=self.name, rows=max_rows - 1)
        self.cache.clear()
        return self

    def archive(self, destination: Document) -> Collection:
        """Copy the sheet into ``destination``, then wipe it here."""
        copy = self.sheet.copy_to(destination)
        logger.info(
            "collection_archived",
            collection=self.name,
            destination=destination.name,
            sheet=copy.name,
        )
        return self.wipe()

    def inspect(self) -> UsageReport:
        total_columns = self.sheet.max_columns()
        total_rows = self.sheet.max_rows()
        total_cells = total_columns * total_rows
        return UsageReport(
            name=self.name,
            total_columns=total_columns,
            total_rows=total_rows,
            total_cells=total_cells,
            usage_percent=round(total_cells / self.settings.cell_cap * 100, 2),
        )


__all__ = ["Collection", "batch_lock_name"]
