"""
Root Typer application for the sheetdb CLI.

Every command takes the path of an ``.xlsx`` workbook, opens it as a
:class:`~sheetdb.registry.Registry` and runs one maintenance operation.
Sheets whose name starts with the reserved prefix are never touched.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path

import typer
from typer import Typer

from sheetdb import __version__
from sheetdb.cli.utils import console, fail, open_registry, output_dict, output_items
from sheetdb.collection import Collection
from sheetdb.core.errors import SheetDBError
from sheetdb.core.logging import configure_logging
from sheetdb.core.settings import get_settings
from sheetdb.registry import Registry

app = Typer(
    name="sheetdb",
    help="sheetdb — maintain spreadsheet-backed collections.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

WorkbookArg = typer.Argument(..., exists=True, dir_okay=False, help="Workbook (.xlsx) file.")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("sheetdb")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"sheetdb {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log operations."),
) -> None:
    """sheetdb CLI — inspect, compact, wipe and archive workbook collections."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level if verbose else "WARNING",
        json_format=settings.json_logs,
    )


def _select(registry: Registry, name: str | None) -> list[Collection]:
    if name is None:
        return list(registry.values())
    if name not in registry:
        console.print(f"[bold red]Unknown collection[/bold red]: {name}")
        raise typer.Exit(code=1)
    return [registry[name]]


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("inspect")
def inspect_cmd(
    path: Path = WorkbookArg,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show grid usage per collection against the cell cap."""
    report = open_registry(path).inspect()
    if json_out:
        output_dict(report.to_dict(), as_json=True)
        return
    output_items(report.breakdowns, title="Collections")
    output_dict(report.to_dict()["summary"], title="Summary")


@app.command("dump")
def dump_cmd(
    path: Path = WorkbookArg,
    collection: str = typer.Argument(..., help="Collection (sheet) name."),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Print the records of one collection."""
    [target] = _select(open_registry(path), collection)
    records = target.data()
    if limit is not None:
        records = records[:limit]
    output_items(records, as_json=json_out, title=target.name)


@app.command("defrag")
def defrag_cmd(
    path: Path = WorkbookArg,
    collection: str | None = typer.Option(None, "--collection", "-c"),
) -> None:
    """Compact live rows to the top and drop trailing rows."""
    registry = open_registry(path)
    try:
        for target in _select(registry, collection):
            target.defrag()
            console.print(f"[green]Defragmented[/green] {target.name}")
    except SheetDBError as exc:
        fail(exc)


@app.command("wipe")
def wipe_cmd(
    path: Path = WorkbookArg,
    collection: str | None = typer.Option(None, "--collection", "-c"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete every data row (headers are kept)."""
    registry = open_registry(path)
    targets = _select(registry, collection)
    names = ", ".join(t.name for t in targets)
    if not yes:
        typer.confirm(f"Wipe all rows of {names}?", abort=True)
    try:
        for target in targets:
            target.wipe()
    except SheetDBError as exc:
        fail(exc)
    console.print(f"[green]Wiped[/green] {names}")


@app.command("archive")
def archive_cmd(
    path: Path = WorkbookArg,
    destination: Path = typer.Argument(..., help="Copy file path, or a directory."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Copy the workbook to DESTINATION, then wipe every collection."""
    registry = open_registry(path)
    if not yes:
        typer.confirm(f"Archive {path} to {destination} and wipe it?", abort=True)
    try:
        copy = registry.archive(str(destination))
    except SheetDBError as exc:
        fail(exc)
    console.print(f"[green]Archived[/green] {path} → {copy.path}")
