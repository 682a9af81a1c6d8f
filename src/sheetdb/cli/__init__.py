"""
CLI layer for sheetdb.

Provides a Typer application for maintaining workbook documents. All record
logic lives in :mod:`sheetdb.registry` and :mod:`sheetdb.collection`; this
package handles only terminal transport: argument parsing, coloured output,
and table formatting.

Entry point::

    sheetdb --help
"""

from sheetdb.cli.app import app

__all__ = ["app"]
