"""
Records and the row ↔ record mapping.

A sheet stores a header row at row 1 and one record per row below it. A
:class:`Record` is the header-keyed view of one such row plus an explicit row
identity, ``key``, exposed under the reserved field name ``_key``:

- ``None`` for a record that has not been persisted yet
- the 1-based backing-store row number once it has been read or written

Row identity is positional. Anything that relocates rows (sort, defrag,
archive, wipe) invalidates every key held before it.

Architecture:
    ::

        row index i (0-based, header excluded)
              │
              ▼
        row_to_record(row, i, headers) ──► Record(key = i + 2, {h: row[n]})
        record_to_row(record, headers) ──► [record.get(h, "") for h in headers]

Examples:
    >>> headers = ["id", "name"]
    >>> rec = row_to_record(["a", "Alpha"], 0, headers)
    >>> rec.key, rec["name"]
    (2, 'Alpha')
    >>> record_to_row(Record({"id": "c"}), headers)
    ['c', '']

Tags:
    record, mapping, row-identity, sheetdb
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping, Sequence
from datetime import date, datetime
from typing import Any

ROW_INDEX_OFFSET = 2
"""Row number of the first data row (row 1 holds the headers)."""

KEY_FIELD = "_key"
"""Reserved field name under which a record's row identity is exposed."""

BLANK = ""


def is_blank(value: Any) -> bool:
    """True for an empty cell (``None`` or the empty string)."""
    return value is None or value == BLANK


def cell_text(value: Any) -> str:
    """Render a cell value the way a spreadsheet displays it.

    Used wherever two cells are compared for identity (drift checks, lookups,
    text search), so that ``7``, ``7.0`` and ``"7"`` compare equal.
    """
    if value is None:
        return BLANK
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


class Record(MutableMapping[str, Any]):
    """One logical row: header-keyed fields plus an optional row identity.

    Iteration and ``len()`` cover the header fields only. ``record["_key"]``
    reads and writes :attr:`key`.
    """

    __slots__ = ("key", "_fields")

    def __init__(
        self,
        fields: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        *,
        key: int | None = None,
    ):
        self._fields: dict[str, Any] = {}
        self.key = key
        if fields is not None:
            self.update(fields)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Record:
        """Build a record from a plain mapping that may carry ``_key``."""
        if isinstance(mapping, Record):
            return mapping
        fields = {k: v for k, v in mapping.items() if k != KEY_FIELD}
        return cls(fields, key=_coerce_key(mapping.get(KEY_FIELD)))

    @property
    def is_new(self) -> bool:
        return self.key is None

    @property
    def fields(self) -> dict[str, Any]:
        return self._fields

    def __getitem__(self, name: str) -> Any:
        if name == KEY_FIELD:
            return self.key
        return self._fields[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name == KEY_FIELD:
            self.key = _coerce_key(value)
        else:
            self._fields[name] = value

    def __delitem__(self, name: str) -> None:
        if name == KEY_FIELD:
            self.key = None
        else:
            del self._fields[name]

    def __contains__(self, name: object) -> bool:
        if name == KEY_FIELD:
            return self.key is not None
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Record):
            return self.key == other.key and self._fields == other._fields
        if isinstance(other, Mapping):
            return self.to_dict() == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Record({self._fields!r}, key={self.key!r})"

    def copy(self) -> Record:
        """Shallow copy, row identity included."""
        return Record(self._fields, key=self.key)

    def merged(self, patch: Mapping[str, Any]) -> Record:
        """Copy of this record with ``patch`` fields laid over it.

        The row identity is kept; a ``_key`` in the patch is ignored.
        """
        merged = self.copy()
        for name, value in patch.items():
            if name != KEY_FIELD:
                merged._fields[name] = value
        return merged

    def to_dict(self) -> dict[str, Any]:
        """Plain dict including ``_key``."""
        return {KEY_FIELD: self.key, **self._fields}


def _coerce_key(value: Any) -> int | None:
    if is_blank(value):
        return None
    return int(value)


def as_record(record: Record | Mapping[str, Any]) -> Record:
    """Accept a Record or any mapping (optionally carrying ``_key``)."""
    return Record.from_mapping(record)


def row_to_record(row: Sequence[Any], row_index: int, headers: Sequence[str]) -> Record:
    """Map a value row to a record.

    Args:
        row: Cell values in header order. A short row yields blank fields.
        row_index: 0-based index of the row below the header row.
        headers: Field names in column order.
    """
    record = Record(key=row_index + ROW_INDEX_OFFSET)
    for position, header in enumerate(headers):
        record.fields[header] = row[position] if position < len(row) else BLANK
    return record


def record_to_row(record: Mapping[str, Any], headers: Sequence[str]) -> list[Any]:
    """Project a record onto the header order; absent fields become blank."""
    row = []
    for header in headers:
        value = record.get(header, BLANK)
        row.append(BLANK if value is None else value)
    return row


__all__ = [
    "ROW_INDEX_OFFSET",
    "KEY_FIELD",
    "BLANK",
    "Record",
    "as_record",
    "cell_text",
    "is_blank",
    "row_to_record",
    "record_to_row",
]
