"""
Write paths of a collection.

The backing store is row-positional and may be changed by other executions
between the moment a record is read and the moment it is written back. Each
write path therefore carries its own lightweight consistency
check:

::

    ┌────────────┬──────────────────────────────────────────────────────┐
    │ add_one    │ target row's key cell must still be blank            │
    │ add        │ first destination cell must be blank (whole block)   │
    │ update     │ optimistic check: key cell at _key == record's key   │
    │ delete     │ optimistic check, then blank the row (never removed) │
    │ patch      │ resolve _key through the cache, merge, update        │
    │ upsert     │ split NEW / EXISTING → add / update                  │
    │ batch      │ named lock + one full-block rewrite                  │
    └────────────┴──────────────────────────────────────────────────────┘

Limits:
    - The optimistic check compares a single cell (the primary-key column),
      not the full row.
    - Two ``add_one`` calls racing from separate executions can both see a
      blank target row. Callers needing more must serialize externally.
    - Nothing here retries. A ``StaleWriteError`` means the caller has to
      re-read and decide again.

After every successful write the collection cache is cleared, so the next
read reflects the post-mutation state.

Tags:
    mutation, optimistic-concurrency, batch, lock, sheetdb
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sheetdb.core.cache import CollectionCache
from sheetdb.core.errors import (
    LockTimeoutError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
    WriteConflictError,
)
from sheetdb.core.logging import get_logger
from sheetdb.core.protocols import NamedLock
from sheetdb.core.records import (
    BLANK,
    KEY_FIELD,
    ROW_INDEX_OFFSET,
    Record,
    as_record,
    cell_text,
    is_blank,
    record_to_row,
)

logger = get_logger(__name__)

RecordLike = Record | Mapping[str, Any]


class MutationEngine:
    """Add/update/upsert/patch/delete/batch for one collection.

    Parameters:
        cache: The collection's cache (also gives access to sheet and schema).
        lock: Named lock guarding :meth:`batch`.
        lock_timeout: Seconds :meth:`batch` waits for ``lock``.
    """

    def __init__(self, cache: CollectionCache, *, lock: NamedLock, lock_timeout: float):
        self.cache = cache
        self.lock = lock
        self.lock_timeout = lock_timeout

    @property
    def sheet(self):
        return self.cache.sheet

    @property
    def name(self) -> str:
        return self.cache.name

    # ------------------------------------------------------------------ #
    # Schema application
    # ------------------------------------------------------------------ #

    def prepare(
        self, records: Iterable[RecordLike], *, ignore_errors: bool = False
    ) -> list[Record]:
        """Validate/normalize records for writing; copies when no schema."""
        schema = self.cache.schema
        prepared = []
        for record in map(as_record, records):
            if schema is None:
                prepared.append(record.copy())
            else:
                prepared.append(
                    schema.to_storage(
                        record, is_new=record.is_new, throw_on_error=not ignore_errors
                    )
                )
        return prepared

    def present(self, records: Iterable[Record]) -> list[Record]:
        """Records as handed back to callers (schema-coerced, or copies)."""
        schema = self.cache.schema
        if schema is None:
            return [record.copy() for record in records]
        return [schema.from_storage(record) for record in records]

    def _records(self, records: Iterable[RecordLike], bypass_schema: bool) -> list[Record]:
        if bypass_schema:
            return [as_record(record) for record in records]
        return self.prepare(records)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _pk_value(self, row: list[Any]) -> Any:
        pk = self.cache.pk_column
        return row[pk] if pk < len(row) else BLANK

    def _require_pk(self, row: list[Any]) -> None:
        if is_blank(self._pk_value(row)):
            headers = self.cache.headers()
            field = headers[self.cache.pk_column] if self.cache.pk_column < len(headers) else None
            raise ValidationError(
                f"{self.name} record has a blank primary key",
                collection=self.name,
                field=field,
            )

    def _read_pk_cell(self, row: int) -> Any:
        [[value]] = self.sheet.read_range(row, self.cache.pk_column + 1, 1, 1)
        return value

    def _check_drift(self, record: Record, row: list[Any], operation: str) -> None:
        """Optimistic-write check: the key cell at ``_key`` must match."""
        if record.key is None or record.key < ROW_INDEX_OFFSET:
            raise NotFoundError(self.name, record.key, operation=operation)
        expected = self._pk_value(row)
        found = self._read_pk_cell(record.key)
        if cell_text(found) != cell_text(expected):
            logger.warning(
                "stale_write_detected",
                collection=self.name,
                operation=operation,
                row=record.key,
                expected=cell_text(expected),
                found=cell_text(found),
            )
            raise StaleWriteError(self.name, row=record.key, expected=expected, found=found)

    # ------------------------------------------------------------------ #
    # Adds
    # ------------------------------------------------------------------ #

    def add_one(self, record: RecordLike, *, bypass_schema: bool = False) -> Record:
        """Append one record; returns it with its assigned ``_key``."""
        [to_save] = self._records([record], bypass_schema)
        headers = self.cache.headers()
        row = record_to_row(to_save, headers)
        self._require_pk(row)

        target = self.sheet.last_row() + 1
        occupant = self._read_pk_cell(target)
        if not is_blank(occupant):
            raise WriteConflictError(self.name, target, occupant)

        self.sheet.write_range(target, 1, [row])
        to_save.key = target
        self.cache.clear()
        logger.info("record_added", collection=self.name, key=target)
        return self.present([to_save])[0]

    def add(self, records: Iterable[RecordLike], *, bypass_schema: bool = False) -> list[Record]:
        """Append records as one contiguous block."""
        to_save = self._records(records, bypass_schema)
        if not to_save:
            return []
        headers = self.cache.headers()
        rows = [record_to_row(record, headers) for record in to_save]
        for row in rows:
            self._require_pk(row)

        first = self.sheet.last_row() + 1
        occupant = self._read_pk_cell(first)
        if not is_blank(occupant):
            raise WriteConflictError(self.name, first, occupant)

        self.sheet.write_range(first, 1, rows)
        for offset, record in enumerate(to_save):
            record.key = first + offset
        self.cache.clear()
        logger.info("records_added", collection=self.name, count=len(to_save), first_key=first)
        return self.present(to_save)

    # ------------------------------------------------------------------ #
    # Updates
    # ------------------------------------------------------------------ #

    def update(
        self, records: Iterable[RecordLike], *, bypass_schema: bool = False
    ) -> list[Record]:
        """Rewrite existing records in place, checking each row for drift."""
        to_save = self._records(records, bypass_schema)
        if not to_save:
            return []
        headers = self.cache.headers()
        written = 0
        try:
            for record in to_save:
                row = record_to_row(record, headers)
                self._check_drift(record, row, "update")
                self.sheet.write_range(record.key, 1, [row])
                written += 1
        finally:
            if written:
                self.cache.clear()
        logger.info("records_updated", collection=self.name, count=written)
        return self.present(to_save)

    def update_one(self, record: RecordLike, *, bypass_schema: bool = False) -> Record:
        return self.update([record], bypass_schema=bypass_schema)[0]

    def upsert(
        self, records: Iterable[RecordLike], *, bypass_schema: bool = False
    ) -> list[Record]:
        """Update EXISTING records and add NEW ones."""
        to_save = self._records(records, bypass_schema)
        if not to_save:
            return []
        updates = [record for record in to_save if not record.is_new]
        adds = [record for record in to_save if record.is_new]

        updated = self.update(updates, bypass_schema=True)
        added = self.add(adds, bypass_schema=True)
        self.cache.clear()
        return updated + added

    def upsert_one(self, record: RecordLike, *, bypass_schema: bool = False) -> Record:
        record = as_record(record)
        if record.is_new:
            return self.add_one(record, bypass_schema=bypass_schema)
        return self.update_one(record, bypass_schema=bypass_schema)

    def patch(
        self, patches: Iterable[RecordLike], *, bypass_schema: bool = False
    ) -> list[Record]:
        """Merge partial records onto their current stored state."""
        merged = []
        for patch in map(as_record, patches):
            existing = self.cache.index(KEY_FIELD).get(patch.key) if patch.key else None
            if existing is None:
                raise NotFoundError(self.name, patch.key, operation="patch")
            merged.append(existing.merged(patch))
        if not merged:
            return []
        return self.update(merged, bypass_schema=bypass_schema)

    # ------------------------------------------------------------------ #
    # Deletes
    # ------------------------------------------------------------------ #

    def delete(self, records: Iterable[RecordLike]) -> None:
        """Blank the rows of existing records after a drift check each."""
        to_delete = [as_record(record) for record in records]
        if not to_delete:
            return
        headers = self.cache.headers()
        blank_row = [BLANK] * len(headers)
        deleted = 0
        try:
            for record in to_delete:
                self._check_drift(record, record_to_row(record, headers), "delete")
                self.sheet.write_range(record.key, 1, [blank_row])
                deleted += 1
        finally:
            if deleted:
                self.cache.clear()
        logger.info("records_deleted", collection=self.name, count=deleted)

    # ------------------------------------------------------------------ #
    # Batch
    # ------------------------------------------------------------------ #

    def batch(
        self, records: Iterable[RecordLike], *, bypass_schema: bool = False
    ) -> list[Record]:
        """Apply updates and adds as a single locked full-block rewrite.

        Raises:
            LockTimeoutError: the lock was not acquired within ``lock_timeout``;
                the store is untouched.
            NotFoundError: an EXISTING record's key lies outside the data block.
        """
        to_save = self._records(records, bypass_schema)
        if not to_save:
            return []
        headers = self.cache.headers()
        width = len(headers)

        if not self.lock.try_acquire(self.lock_timeout):
            logger.warning(
                "batch_lock_timeout",
                collection=self.name,
                lock=self.lock.name,
                timeout=self.lock_timeout,
            )
            raise LockTimeoutError(self.name, self.lock.name, self.lock_timeout)
        try:
            last_row = self.sheet.last_row()
            block = (
                self.sheet.read_range(ROW_INDEX_OFFSET, 1, last_row - 1, width)
                if last_row >= ROW_INDEX_OFFSET
                else []
            )
            updates = 0
            new_keys: list[tuple[Record, int]] = []
            for record in to_save:
                row = record_to_row(record, headers)
                if record.is_new:
                    self._require_pk(row)
                    new_keys.append((record, ROW_INDEX_OFFSET + len(block)))
                    block.append(row)
                else:
                    offset = record.key - ROW_INDEX_OFFSET
                    if not 0 <= offset < len(block):
                        raise NotFoundError(self.name, record.key, operation="batch")
                    block[offset] = row
                    updates += 1
            self.sheet.write_range(ROW_INDEX_OFFSET, 1, block)
        finally:
            self.lock.release()

        for record, key in new_keys:
            record.key = key
        self.cache.clear()
        logger.info(
            "batch_committed",
            collection=self.name,
            updates=updates,
            adds=len(new_keys),
            rows=len(block),
        )
        return self.present(to_save)


__all__ = ["MutationEngine", "RecordLike"]
