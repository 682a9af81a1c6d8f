"""sheetdb.core -- domain-agnostic building blocks.

Architecture::

    records.py     Record type, row <-> record mapping, ROW_INDEX_OFFSET
    cache.py       CollectionCache (data / index / related / enforce_unique)
    protocols.py   Sheet, Document, NamedLock, RecordSchema protocols
    schema.py      ModelSchema (pydantic model as a RecordSchema)
    errors.py      SheetDBError hierarchy with categories and context
    settings.py    SheetDBSettings (pydantic-settings, SHEETDB_ prefix)
    logging.py     structlog configuration and context helpers
"""

from sheetdb.core.cache import CollectionCache
from sheetdb.core.errors import (
    ConflictError,
    ErrorCategory,
    ErrorContext,
    LockTimeoutError,
    NotFoundError,
    SchemaMissingError,
    SheetDBError,
    StaleWriteError,
    StorageError,
    TransactionAlreadyCompleteError,
    ValidationError,
    WriteConflictError,
    is_retryable,
)
from sheetdb.core.logging import LogContext, configure_logging, get_logger
from sheetdb.core.protocols import Document, NamedLock, RecordSchema, Sheet
from sheetdb.core.records import (
    KEY_FIELD,
    ROW_INDEX_OFFSET,
    Record,
    record_to_row,
    row_to_record,
)
from sheetdb.core.schema import ModelSchema
from sheetdb.core.settings import SheetDBSettings, get_settings

__all__ = [
    # records
    "KEY_FIELD",
    "ROW_INDEX_OFFSET",
    "Record",
    "record_to_row",
    "row_to_record",
    # cache
    "CollectionCache",
    # protocols
    "Document",
    "NamedLock",
    "RecordSchema",
    "Sheet",
    # schema
    "ModelSchema",
    # errors
    "ErrorCategory",
    "ErrorContext",
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
    "is_retryable",
    # settings
    "SheetDBSettings",
    "get_settings",
    # logging
    "configure_logging",
    "get_logger",
    "LogContext",
]
