"""Tests for sheetdb.core.schema: pydantic models as record schemas."""

import pytest
from structlog.testing import capture_logs

from sheetdb.collection import Collection
from sheetdb.core.errors import ValidationError
from sheetdb.core.protocols import RecordSchema
from sheetdb.core.records import Record
from sheetdb.core.schema import ModelSchema
from tests._support import Task, quick_settings


@pytest.fixture
def schema() -> ModelSchema:
    return ModelSchema(Task)


class TestModelSchema:
    """ModelSchema validates and coerces records."""

    def test_satisfies_protocol(self, schema):
        assert isinstance(schema, RecordSchema)
        assert schema.name == "Task"

    def test_to_storage_fills_defaults(self, schema):
        stored = schema.to_storage(Record({"id": "t-1", "name": "Docs"}), is_new=True)
        assert stored.fields == {"id": "t-1", "name": "Docs", "done": False, "project": None}
        assert stored.is_new

    def test_key_is_preserved(self, schema):
        stored = schema.to_storage(Record({"id": "t-1", "name": "Docs"}, key=7), is_new=False)
        assert stored.key == 7

    def test_blank_cells_count_as_missing(self, schema):
        record = schema.from_storage(Record({"id": "t-1", "name": "Docs", "done": ""}, key=2))
        assert record["done"] is False

    def test_coerces_values(self, schema):
        record = schema.from_storage(Record({"id": "t-1", "name": "Docs", "done": "true"}))
        assert record["done"] is True

    def test_invalid_stored_row_is_returned_as_stored(self, schema):
        stored = Record({"id": "t-1", "name": "Docs", "done": "maybe"}, key=3)
        with capture_logs() as logs:
            record = schema.from_storage(stored)
        assert record == stored
        assert record is not stored
        assert logs[0]["event"] == "stored_record_invalid"
        assert logs[0]["field"] == "done"
        assert logs[0]["key"] == 3

    def test_bad_cell_does_not_break_reads(self, document):
        document.sheet("Task").write_range(3, 3, [["maybe"]])
        typed = Collection(
            document.sheet("Task"), schema=ModelSchema(Task), settings=quick_settings()
        )
        assert [r["done"] for r in typed.data()] == [False, "maybe", False]
        assert typed.lookup("t-2")["done"] == "maybe"

    def test_rejection_raises_validation_error(self, schema):
        with pytest.raises(ValidationError) as exc_info:
            schema.to_storage(Record({"id": "t-1"}), is_new=True)
        err = exc_info.value
        assert err.context.field == "name"
        assert err.context.collection == "Task"
        assert err.errors[0]["loc"] == ["name"]
        assert err.__cause__ is not None

    def test_rejection_tolerated_without_throw(self, schema):
        record = Record({"id": "t-1"})
        stored = schema.to_storage(record, is_new=True, throw_on_error=False)
        assert stored == record
        assert stored is not record

    def test_custom_name(self):
        assert ModelSchema(Task, name="Todo").name == "Todo"
