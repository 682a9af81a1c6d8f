"""
Helpers shared by the bundled backing stores.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from sheetdb.core.records import cell_text, is_blank


def cell_matches(
    value: Any,
    query: str,
    *,
    regex: bool = False,
    match_cell: bool = False,
    match_case: bool = False,
) -> bool:
    """Text-finder semantics for a single cell."""
    if is_blank(value):
        return False
    text = cell_text(value)
    if regex:
        flags = 0 if match_case else re.IGNORECASE
        if match_cell:
            return re.fullmatch(query, text, flags) is not None
        return re.search(query, text, flags) is not None
    if not match_case:
        text, query = text.casefold(), query.casefold()
    return text == query if match_cell else query in text


def sort_key(value: Any) -> tuple:
    """Order numbers, then dates, then text; blanks are handled by the caller."""
    if isinstance(value, bool):
        return (2, cell_text(value))
    if isinstance(value, int | float):
        return (0, value)
    if isinstance(value, datetime | date):
        if not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day)
        return (1, value.replace(tzinfo=None))
    return (2, str(value).casefold())


def sort_rows(rows: list[list[Any]], column: int, ascending: bool) -> list[list[Any]]:
    """Sort rows by a 0-based column; blank cells always sort last."""
    def value_at(row: list[Any]) -> Any:
        return row[column] if column < len(row) else None

    filled = [row for row in rows if not is_blank(value_at(row))]
    blanks = [row for row in rows if is_blank(value_at(row))]
    filled.sort(key=lambda row: sort_key(value_at(row)), reverse=not ascending)
    return filled + blanks


def copy_name(name: str, taken: Iterable[str]) -> str:
    """Name for a copied sheet that does not collide with ``taken``."""
    taken = set(taken)
    if name not in taken:
        return name
    candidate = f"Copy of {name}"
    counter = 2
    while candidate in taken:
        candidate = f"Copy of {name} {counter}"
        counter += 1
    return candidate


__all__ = ["cell_matches", "sort_key", "sort_rows", "copy_name"]
