"""Tests for sheetdb.registry: collection binding and fan-out maintenance."""

import pytest
from pydantic import BaseModel

from sheetdb.backends.memory import MemoryDocument
from sheetdb.collection import batch_lock_name
from sheetdb.core.errors import SchemaMissingError, StorageError
from sheetdb.core.schema import ModelSchema
from sheetdb.registry import Registry
from sheetdb.responses import RegistryReport, UsageSummary
from tests._support import Task, quick_settings


class Project(BaseModel):
    id: str
    title: str


@pytest.fixture
def registry(document) -> Registry:
    return Registry.open(document, settings=quick_settings(cell_cap=100))


class TestOpen:
    """Binding sheets to collections."""

    def test_reserved_sheets_are_skipped(self, registry):
        assert list(registry) == ["Task", "Project"]
        assert len(registry) == 2
        assert "_meta" not in registry

    def test_mapping_access(self, registry):
        assert registry["Task"].lookup("t-1")["name"] == "Write docs"
        with pytest.raises(KeyError):
            registry["_meta"]

    def test_custom_reserved_prefix(self, document):
        registry = Registry.open(document, settings=quick_settings(reserved_prefix="P"))
        assert list(registry) == ["Task", "_meta"]

    def test_collections_use_document_locks(self, document, registry):
        assert registry["Task"].lock is document.lock(batch_lock_name("Task"))

    def test_collections_share_settings(self, registry):
        assert registry["Project"].settings is registry.settings

    def test_repr(self, registry):
        assert repr(registry) == "Registry('workspace', ['Task', 'Project'])"


class TestSchemas:
    """A schema map must cover every exposed sheet."""

    def test_schemas_are_bound(self, document):
        registry = Registry.open(
            document,
            schemas={"Task": ModelSchema(Task), "Project": ModelSchema(Project)},
            settings=quick_settings(),
        )
        assert isinstance(registry["Task"].schema, ModelSchema)
        assert registry["Task"].lookup("t-1")["done"] is False

    def test_missing_schema_fails_fast(self, document):
        with pytest.raises(SchemaMissingError) as exc_info:
            Registry.open(document, schemas={"Task": ModelSchema(Task)}, settings=quick_settings())
        assert exc_info.value.context.collection == "Project"

    def test_reserved_sheets_need_no_schema(self, document):
        Registry.open(
            document,
            schemas={"Task": ModelSchema(Task), "Project": ModelSchema(Project)},
            settings=quick_settings(),
        )


class TestMaintenance:
    """defrag / wipe / archive fan out over every collection."""

    def test_defrag(self, registry):
        registry["Task"].delete([registry["Task"].lookup("t-2")])
        registry.defrag()
        assert [r.key for r in registry["Task"].data()] == [2, 3]
        assert registry["Task"].sheet.max_rows() == 3

    def test_wipe(self, document, registry):
        registry.wipe()
        assert registry["Task"].data() == []
        assert registry["Project"].data() == []
        assert document.sheet("_meta").rows() == [["version"], [3]]

    def test_archive(self, document, registry):
        copy = registry.archive("workspace-2024")

        assert copy.name == "workspace-2024"
        assert copy.sheet_names() == ["Task", "Project", "_meta"]
        assert len(copy.sheet("Task").rows()) == 4
        assert registry["Task"].data() == []

    def test_failed_copy_aborts_before_wipe(self, document, registry, monkeypatch):
        def broken_copy(destination):
            raise StorageError(f"cannot copy to {destination}")

        monkeypatch.setattr(document, "copy_to", broken_copy)
        with pytest.raises(StorageError):
            registry.archive("anywhere")
        assert len(registry["Task"].data()) == 3


class TestInspect:
    """inspect sums usage and averages the percentage."""

    def test_inspect(self, registry):
        report = registry.inspect()

        assert report.summary == UsageSummary(
            total_columns=6, total_rows=7, total_cells=22, usage_percent=11.0
        )
        assert [b.name for b in report.breakdowns] == ["Task", "Project"]
        assert [b.usage_percent for b in report.breakdowns] == [16.0, 6.0]

    def test_to_dict(self, registry):
        d = registry.inspect().to_dict()
        assert d["summary"]["total_cells"] == 22
        assert d["breakdowns"][1]["name"] == "Project"

    def test_empty_registry(self):
        registry = Registry.open(
            MemoryDocument.from_dict({"_meta": [["version"]]}), settings=quick_settings()
        )
        assert registry.inspect() == RegistryReport(summary=UsageSummary())
