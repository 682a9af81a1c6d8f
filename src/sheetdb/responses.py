"""
Typed usage reports returned by ``inspect()``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class UsageReport:
    """Grid usage of one collection against the document cell capacity."""

    name: str
    total_columns: int
    total_rows: int
    total_cells: int
    usage_percent: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class UsageSummary:
    """Totals across every collection of a registry."""

    total_columns: int = 0
    total_rows: int = 0
    total_cells: int = 0
    usage_percent: float = 0.0


@dataclass(frozen=True, slots=True)
class RegistryReport:
    """Result payload for :meth:`sheetdb.registry.Registry.inspect`."""

    summary: UsageSummary
    breakdowns: list[UsageReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = ["UsageReport", "UsageSummary", "RegistryReport"]
