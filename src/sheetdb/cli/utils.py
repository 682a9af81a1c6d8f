"""
CLI utility helpers -- output formatting and document loading.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from sheetdb.backends.workbook import WorkbookDocument
from sheetdb.core.errors import SheetDBError
from sheetdb.core.settings import get_settings
from sheetdb.registry import Registry

console = Console()
err_console = Console(stderr=True)


# ── Document helpers ─────────────────────────────────────────────────────


def open_registry(path: Path) -> Registry:
    """Open ``path`` as a workbook and bind its collections."""
    settings = get_settings()
    try:
        document = WorkbookDocument.open(path, lock_expiry_seconds=settings.lock_expiry_seconds)
    except SheetDBError as exc:
        fail(exc)
    return Registry.open(document, settings=settings)


def fail(error: SheetDBError) -> None:
    """Print ``error`` and exit with status 1."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {error.message}"
    )
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / record / dict to plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_items(items: list[Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of dataclasses/records as a Rich table or JSON."""
    if as_json:
        console.print_json(json.dumps([_to_dict(i) for i in items], default=str))
        return
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    _print_table(items, title=title)


def output_dict(data: dict[str, Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a single dict as JSON or key-value pairs."""
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    columns: list[str] = []
    rows = [_to_dict(item) for item in items]
    for row in rows:
        columns.extend(c for c in row if c not in columns)
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(row.get(c, "")) for c in columns))
    console.print(table)
