"""
Backing stores for sheetdb documents.

``MemoryDocument`` keeps sheets in process memory; ``WorkbookDocument`` maps
an ``.xlsx`` file through openpyxl. Both satisfy
:class:`sheetdb.core.protocols.Document`.
"""

from sheetdb.backends.locks import SqliteLock, ThreadLock
from sheetdb.backends.memory import MemoryDocument, MemorySheet
from sheetdb.backends.workbook import WorkbookDocument, WorkbookSheet

__all__ = [
    "MemoryDocument",
    "MemorySheet",
    "WorkbookDocument",
    "WorkbookSheet",
    "ThreadLock",
    "SqliteLock",
]
