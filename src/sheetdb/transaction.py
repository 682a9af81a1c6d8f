"""
Preflight: validate once, commit once.

A mixed set of new and existing records can be validated as a whole before
anything is written. If any record is rejected, :func:`Collection.preflight`
raises and nothing reaches the store. Otherwise the returned
:class:`Preflight` exposes commit actions bound to the validated records, and
exactly one of them may run.

The guarantee covers validation only. The commit itself keeps whatever
consistency its own write path provides (a ``batch`` commit is one locked
rewrite; an ``update`` commit is a sequence of single-row writes).

Examples:
    >>> tx = tasks.preflight([new_task, edited_task])
    >>> saved = tx.upsert()
    >>> tx.add()
    Traceback (most recent call last):
    ...
    TransactionAlreadyCompleteError: Preflight transaction on Task already complete; ...

Tags:
    transaction, preflight, validation, sheetdb
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TypeVar

from sheetdb.core.errors import TransactionAlreadyCompleteError
from sheetdb.core.logging import get_logger
from sheetdb.core.records import Record
from sheetdb.mutations import MutationEngine, RecordLike

logger = get_logger(__name__)

T = TypeVar("T")


class Preflight:
    """Validated records plus single-use commit actions."""

    def __init__(self, engine: MutationEngine, records: RecordLike | Iterable[RecordLike]):
        if isinstance(records, Mapping):
            records = [records]
        self._engine = engine
        self._records: list[Record] = engine.prepare(records)
        self._completed: str | None = None

    @property
    def completed(self) -> bool:
        return self._completed is not None

    def _transact(self, action: str, fn: Callable[[], T]) -> T:
        if self._completed is not None:
            raise TransactionAlreadyCompleteError(self._engine.name, action)
        # Consumed even if the write fails part-way; rows may already be written
        self._completed = action
        result = fn()
        logger.info(
            "preflight_committed",
            collection=self._engine.name,
            action=action,
            count=len(self._records),
        )
        return result

    # -- Commit actions ----------------------------------------------------

    def add_one(self) -> Record:
        return self._transact(
            "add_one", lambda: self._engine.add_one(self._records[0], bypass_schema=True)
        )

    def add(self) -> list[Record]:
        return self._transact(
            "add", lambda: self._engine.add(self._records, bypass_schema=True)
        )

    def update(self) -> list[Record]:
        return self._transact(
            "update", lambda: self._engine.update(self._records, bypass_schema=True)
        )

    def batch(self) -> list[Record]:
        return self._transact(
            "batch", lambda: self._engine.batch(self._records, bypass_schema=True)
        )

    def upsert(self) -> list[Record]:
        return self._transact(
            "upsert", lambda: self._engine.upsert(self._records, bypass_schema=True)
        )

    def upsert_one(self) -> Record:
        return self._transact(
            "upsert_one", lambda: self._engine.upsert_one(self._records[0], bypass_schema=True)
        )

    # -- Read-only views ---------------------------------------------------

    def record(self) -> Record:
        """The first validated record, as callers see it."""
        return self._engine.present(self._records[:1])[0]

    def records(self) -> list[Record]:
        """All validated records, as callers see them."""
        return self._engine.present(self._records)

    def __repr__(self) -> str:
        state = self._completed or "pending"
        return f"Preflight({self._engine.name!r}, records={len(self._records)}, {state})"


__all__ = ["Preflight"]
