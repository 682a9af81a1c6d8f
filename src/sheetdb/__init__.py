"""sheetdb -- table-like CRUD over documents made of named sheets.

Manifesto:
    A spreadsheet is a slow, row-positional store that people edit by hand
    while programs read and write it. sheetdb treats each sheet as a
    collection of header-keyed records, caches what it reads, checks a
    single key cell before every in-place write, and funnels bulk changes
    through one locked block rewrite.

Architecture::

    sheetdb.core         Records, cache, errors, settings, logging, protocols
    sheetdb.search       find / lookup / fts / get / stream
    sheetdb.mutations    add / update / upsert / patch / delete / batch
    sheetdb.transaction  Preflight (validate once, commit once)
    sheetdb.collection   Collection facade + maintenance (sort, defrag, ...)
    sheetdb.registry     Registry over every collection of a document
    sheetdb.backends     In-memory and openpyxl documents, named locks
    sheetdb.cli          ``sheetdb`` maintenance commands

Examples:
    >>> from sheetdb import MemoryDocument, Registry
    >>> doc = MemoryDocument.from_dict({"Task": [["id", "name"], ["t-1", "Write docs"]]})
    >>> registry = Registry.open(doc)
    >>> registry["Task"].lookup("t-1")
    Record({'id': 't-1', 'name': 'Write docs'}, key=2)

Tags:
    sheetdb, spreadsheet, crud, cache
"""

__version__ = "0.1.0"

from sheetdb.backends import MemoryDocument, WorkbookDocument
from sheetdb.collection import Collection
from sheetdb.core import (
    ConflictError,
    LockTimeoutError,
    ModelSchema,
    NotFoundError,
    Record,
    SchemaMissingError,
    SheetDBError,
    SheetDBSettings,
    StaleWriteError,
    StorageError,
    TransactionAlreadyCompleteError,
    ValidationError,
    WriteConflictError,
    configure_logging,
    get_settings,
)
from sheetdb.registry import Registry
from sheetdb.responses import RegistryReport, UsageReport, UsageSummary
from sheetdb.transaction import Preflight

__all__ = [
    "__version__",
    # Entry points
    "Registry",
    "Collection",
    "Preflight",
    "Record",
    "ModelSchema",
    # Backends
    "MemoryDocument",
    "WorkbookDocument",
    # Reports
    "UsageReport",
    "UsageSummary",
    "RegistryReport",
    # Configuration
    "SheetDBSettings",
    "get_settings",
    "configure_logging",
    # Errors
    "SheetDBError",
    "ValidationError",
    "SchemaMissingError",
    "ConflictError",
    "WriteConflictError",
    "StaleWriteError",
    "LockTimeoutError",
    "NotFoundError",
    "TransactionAlreadyCompleteError",
    "StorageError",
]
