"""
Structured error types for sheetdb.

Every failure raised by a collection, registry or backing store is a
``SheetDBError``. Errors carry a category, a retryable hint for the caller,
structured context (collection, field, value, row) and an optional chained
cause. Nothing in sheetdb retries on its own: a stale read has to be
re-evaluated by the caller, since a silent retry can overwrite a concurrent
edit.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        SheetDBError                           │
        │     (category, retryable, context, cause)                     │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ValidationError        ConflictError        NotFoundError    │
        │  (VALIDATION)           (CONFLICT)           (NOT_FOUND)      │
        │                              │                                │
        │                         WriteConflictError                    │
        │                         StaleWriteError                       │
        │                                                               │
        │  LockTimeoutError       SchemaMissingError   StorageError     │
        │  (CONCURRENCY)          (CONFIG)             (STORAGE)        │
        │                                                               │
        │  TransactionAlreadyCompleteError                              │
        │  (TRANSACTION)                                                │
        └──────────────────────────────────────────────────────────────┘

Retry hints:
    - ``WriteConflictError`` and ``LockTimeoutError`` are retryable: the
      same call, issued again, may land on a free destination or lock.
    - ``StaleWriteError`` is not: the record must be re-read first.

Examples:
    >>> err = StaleWriteError("Task", row=7, expected="t-1", found="t-9")
    >>> err.retryable
    False
    >>> err.context.collection
    'Task'
    >>> err.to_dict()["category"]
    'CONFLICT'

Tags:
    error-handling, exception-hierarchy, error-context, sheetdb
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    STORAGE = "STORAGE"               # Backend read/write/copy failures
    VALIDATION = "VALIDATION"         # Schema rejection, bad input
    CONFLICT = "CONFLICT"             # Uniqueness, occupied destination, drift
    CONCURRENCY = "CONCURRENCY"       # Lock not acquired in time
    NOT_FOUND = "NOT_FOUND"           # Unresolvable row identity
    CONFIG = "CONFIG"                 # Missing schema, invalid settings
    TRANSACTION = "TRANSACTION"       # Preflight misuse
    INTERNAL = "INTERNAL"             # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        collection: Name of the collection (sheet) involved
        operation: Collection operation that failed (``update``, ``batch``...)
        field: Field name involved, if any
        value: Offending value, if any
        row: Backing-store row number (the record's ``_key``), if any
        metadata: Additional key-value pairs
    """

    collection: str | None = None
    operation: str | None = None
    field: str | None = None
    value: Any = None
    row: int | None = None
    metadata: dict[str, Any] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["collection", "operation", "field", "row"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.metadata:
            result.update(self.metadata)
        return result


class SheetDBError(Exception):
    """
    Base exception for all sheetdb errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    can route on category and decide whether re-issuing the call is safe.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SheetDBError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("copy failed").with_context(
                collection="Task", operation="archive"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION / CONFIGURATION
# =============================================================================


class ValidationError(SheetDBError):
    """A record was rejected by the schema hook or failed a basic check."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        collection: str | None = None,
        field: str | None = None,
        value: Any = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault(
            "context", ErrorContext(collection=collection, field=field, value=value)
        )
        super().__init__(message, **kwargs)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["errors"] = self.errors
        return result


class SchemaMissingError(SheetDBError):
    """A schema map was supplied but a collection has no entry in it."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, collection: str):
        super().__init__(
            f"{collection} has no schema model provided",
            context=ErrorContext(collection=collection),
        )


# =============================================================================
# CONFLICTS
# =============================================================================


class ConflictError(SheetDBError):
    """Another record already holds a value that must be unique."""

    default_category = ErrorCategory.CONFLICT

    def __init__(self, collection: str, field: str, value: Any):
        super().__init__(
            f"{collection} {field} value {value!r} already exists",
            context=ErrorContext(collection=collection, field=field, value=value),
        )


class WriteConflictError(ConflictError):
    """The destination of an add was already occupied at write time."""

    default_retryable = True

    def __init__(self, collection: str, row: int, found: Any = None):
        SheetDBError.__init__(
            self,
            f"{collection} add destination row {row} is already occupied, try again",
            context=ErrorContext(
                collection=collection, operation="add", row=row, value=found
            ),
        )


class StaleWriteError(ConflictError):
    """The row at a record's ``_key`` no longer holds that record."""

    def __init__(self, collection: str, *, row: int, expected: Any, found: Any):
        SheetDBError.__init__(
            self,
            f"{collection} row {row} holds {found!r}, expected {expected!r}; "
            "re-read the record before writing",
            context=ErrorContext(
                collection=collection,
                row=row,
                value=expected,
                metadata={"found": found},
            ),
        )
        self.expected = expected
        self.found = found


# =============================================================================
# CONCURRENCY / LOOKUP / TRANSACTION
# =============================================================================


class LockTimeoutError(SheetDBError):
    """The named lock guarding a block rewrite was not acquired in time."""

    default_category = ErrorCategory.CONCURRENCY
    default_retryable = True

    def __init__(self, collection: str, lock_name: str, timeout: float):
        super().__init__(
            f"Could not acquire lock {lock_name!r} for {collection} within "
            f"{timeout:g}s, please try again",
            context=ErrorContext(
                collection=collection,
                operation="batch",
                metadata={"lock": lock_name, "timeout_seconds": timeout},
            ),
        )


class NotFoundError(SheetDBError):
    """A record's ``_key`` does not resolve to a stored row."""

    default_category = ErrorCategory.NOT_FOUND

    def __init__(self, collection: str, key: Any, *, operation: str | None = None):
        super().__init__(
            f"{collection} has no record with key {key!r}",
            context=ErrorContext(
                collection=collection, operation=operation, field="_key", value=key
            ),
        )


class TransactionAlreadyCompleteError(SheetDBError):
    """A preflight transaction was committed more than once."""

    default_category = ErrorCategory.TRANSACTION

    def __init__(self, collection: str, action: str):
        super().__init__(
            f"Preflight transaction on {collection} already complete; "
            f"refusing {action}()",
            context=ErrorContext(collection=collection, operation=action),
        )


# =============================================================================
# STORAGE
# =============================================================================


class StorageError(SheetDBError):
    """Backing-store failure (file I/O, lock database, copy)."""

    default_category = ErrorCategory.STORAGE


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if re-issuing the failed call is worth trying."""
    if isinstance(error, SheetDBError):
        return error.retryable
    return False


__all__ = [
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
]
