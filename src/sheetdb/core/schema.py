"""
Pydantic-backed record schema.

:class:`ModelSchema` satisfies :class:`~sheetdb.core.protocols.RecordSchema`
with a pydantic model class: records are validated (and coerced) against the
model before every write and coerced after every read (a stored row the model
rejects is returned as stored, with a warning). Blank cells are treated as
missing values, so optional model fields may be left empty in the sheet.

Examples:
    >>> from pydantic import BaseModel
    >>> class Task(BaseModel):
    ...     id: str
    ...     title: str
    ...     done: bool = False
    >>> schema = ModelSchema(Task)
    >>> schema.to_storage(Record({"id": "t-1", "title": "Write docs"}), is_new=True)
    Record({'id': 't-1', 'title': 'Write docs', 'done': False}, key=None)

Tags:
    schema, validation, pydantic, sheetdb
"""

from __future__ import annotations

from typing import Any

import pydantic
from pydantic import BaseModel

from sheetdb.core.errors import ValidationError
from sheetdb.core.logging import get_logger
from sheetdb.core.records import Record, is_blank

logger = get_logger(__name__)


class ModelSchema:
    """Validate records against a pydantic model class.

    Parameters:
        model: The pydantic model describing one row.
        name: Name used in error messages; defaults to the model class name.
    """

    def __init__(self, model: type[BaseModel], *, name: str | None = None):
        self.model = model
        self.name = name or model.__name__

    def to_storage(
        self, record: Record, *, is_new: bool, throw_on_error: bool = True
    ) -> Record:
        try:
            return self._validate(record)
        except ValidationError:
            if throw_on_error:
                raise
            return record.copy()

    def from_storage(self, record: Record) -> Record:
        """Coerce a stored row; a row the model rejects is returned as stored."""
        try:
            return self._validate(record)
        except ValidationError as exc:
            logger.warning(
                "stored_record_invalid",
                collection=self.name,
                key=record.key,
                field=exc.context.field,
                error=exc.message,
            )
            return record.copy()

    def _validate(self, record: Record) -> Record:
        payload = {k: v for k, v in record.items() if not is_blank(v)}
        try:
            instance = self.model.model_validate(payload)
        except pydantic.ValidationError as exc:
            errors = exc.errors(include_url=False)
            first: dict[str, Any] = errors[0] if errors else {}
            loc = first.get("loc") or ()
            raise ValidationError(
                f"{self.name} record rejected: {first.get('msg', exc)}",
                collection=self.name,
                field=str(loc[0]) if loc else None,
                value=first.get("input"),
                errors=[
                    {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                    for e in errors
                ],
                cause=exc,
            ) from exc
        return Record(instance.model_dump(), key=record.key)


__all__ = ["ModelSchema"]
