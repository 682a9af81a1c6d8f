"""Tests for sheetdb.backends.workbook: openpyxl-backed documents on disk."""

from pathlib import Path

import pytest

from sheetdb.backends.locks import SqliteLock
from sheetdb.backends.workbook import WorkbookDocument, WorkbookSheet
from sheetdb.core.errors import StorageError
from sheetdb.core.protocols import Document, Sheet
from sheetdb.registry import Registry
from tests._support import quick_settings


@pytest.fixture
def path(tmp_path: Path) -> Path:
    return tmp_path / "crm.xlsx"


@pytest.fixture
def workbook(path) -> WorkbookDocument:
    return WorkbookDocument.create(
        path,
        {
            "Task": [["id", "name"], ["t-1", "Docs"], ["t-2", "Ship"]],
            "_meta": [["version"], [3]],
        },
    )


class TestCreateAndOpen:
    """Files round-trip through openpyxl."""

    def test_satisfies_protocols(self, workbook):
        assert isinstance(workbook, Document)
        assert isinstance(workbook.sheet("Task"), Sheet)

    def test_create_writes_file(self, path, workbook):
        assert path.exists()
        reopened = WorkbookDocument.open(path)
        assert [s.name for s in reopened.sheets()] == ["Task", "_meta"]
        assert reopened.sheet("Task").read_range(2, 1, 2, 2) == [["t-1", "Docs"], ["t-2", "Ship"]]

    def test_name_and_lock_path(self, path, workbook):
        assert workbook.name == "crm"
        assert workbook.lock_path == path.with_name("crm.xlsx.lock.sqlite")

    def test_create_without_sheets_keeps_default(self, tmp_path):
        document = WorkbookDocument.create(tmp_path / "empty.xlsx")
        assert len(document.sheets()) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(StorageError):
            WorkbookDocument.open(tmp_path / "nope.xlsx")

    def test_not_a_workbook(self, tmp_path):
        bogus = tmp_path / "bogus.xlsx"
        bogus.write_text("id,name\n")
        with pytest.raises(StorageError) as exc_info:
            WorkbookDocument.open(bogus)
        assert exc_info.value.cause is not None


class TestSheetOperations:
    """Grid primitives persist immediately when autosave is on."""

    def test_dimensions(self, workbook):
        sheet = workbook.sheet("Task")
        assert (sheet.last_row(), sheet.last_column()) == (3, 2)
        assert (sheet.max_rows(), sheet.max_columns()) == (3, 2)

    def test_read_empty_span(self, workbook):
        assert workbook.sheet("Task").read_range(2, 1, 0, 2) == []

    def test_write_is_saved(self, path, workbook):
        workbook.sheet("Task").write_range(2, 2, [["Docs v2"]])
        assert WorkbookDocument.open(path).sheet("Task").read_range(2, 2, 1, 1) == [["Docs v2"]]

    def test_blank_write_clears_cell(self, path, workbook):
        workbook.sheet("Task").write_range(2, 1, [["", None]])
        sheet = WorkbookDocument.open(path).sheet("Task")
        assert sheet.read_range(2, 1, 1, 2) == [["", ""]]
        assert sheet.last_row() == 3

    def test_append_row(self, workbook):
        sheet = workbook.sheet("Task")
        sheet.append_row(["t-3", "Plan"])
        assert sheet.read_range(4, 1, 1, 2) == [["t-3", "Plan"]]

    def test_clear_range(self, workbook):
        sheet = workbook.sheet("Task")
        sheet.clear_range(2, 1, 2, 2)
        assert sheet.last_row() == 1

    def test_delete_rows(self, path, workbook):
        workbook.sheet("Task").delete_rows(2, 1)
        sheet = WorkbookDocument.open(path).sheet("Task")
        assert sheet.read_range(2, 1, 1, 2) == [["t-2", "Ship"]]
        assert sheet.max_rows() == 2

    def test_sort(self, workbook):
        sheet = workbook.sheet("Task")
        sheet.sort(1, ascending=False)
        assert sheet.read_range(1, 1, 3, 1) == [["id"], ["t-2"], ["t-1"]]

    def test_find_all(self, workbook):
        assert workbook.sheet("Task").find_all("t-") == [(2, 1), (3, 1)]
        assert workbook.sheet("Task").find_all("docs", match_cell=True) == [(2, 2)]

    def test_autosave_off(self, path):
        document = WorkbookDocument.create(path, {"Task": [["id"]]}, autosave=False)
        document.sheet("Task").append_row(["t-1"])
        assert WorkbookDocument.open(path).sheet("Task").last_row() == 1
        document.save()
        assert WorkbookDocument.open(path).sheet("Task").last_row() == 2

    def test_reload_sees_other_writers(self, path, workbook):
        other = WorkbookDocument.open(path)
        other.sheet("Task").write_range(3, 2, [["Ship v2"]])
        assert workbook.sheet("Task").read_range(3, 2, 1, 1) == [["Ship"]]
        workbook.reload()
        assert workbook.sheet("Task").read_range(3, 2, 1, 1) == [["Ship v2"]]


class TestCopies:
    """Document and sheet copies."""

    def test_copy_to_file(self, tmp_path, workbook):
        copy = workbook.copy_to(str(tmp_path / "backup.xlsx"))
        assert copy.path == tmp_path / "backup.xlsx"
        assert copy.sheet("Task").read_range(2, 1, 1, 1) == [["t-1"]]

    def test_copy_to_directory(self, tmp_path, workbook):
        archive = tmp_path / "archive"
        archive.mkdir()
        copy = workbook.copy_to(str(archive))
        assert copy.path.parent == archive
        assert copy.path.name.startswith("crm_")
        assert copy.path.suffix == ".xlsx"

    def test_sheet_copy_names(self, tmp_path, workbook):
        target = WorkbookDocument.create(tmp_path / "target.xlsx", {"Task": [["id"]]})
        copied = workbook.sheet("Task").copy_to(target)
        assert isinstance(copied, WorkbookSheet)
        assert copied.name == "Copy of Task"
        assert copied.read_range(3, 1, 1, 2) == [["t-2", "Ship"]]


class TestRegistryOverWorkbook:
    """Collections bound to a workbook use cross-process locks."""

    @pytest.fixture
    def registry(self, workbook) -> Registry:
        return Registry.open(workbook, settings=quick_settings())

    def test_lock(self, workbook):
        lock = workbook.lock("sheetdb:batch:Task")
        assert isinstance(lock, SqliteLock)
        assert lock.path == workbook.lock_path
        assert lock.expiry_seconds == 300

    def test_collections(self, workbook, registry):
        assert list(registry) == ["Task"]
        assert isinstance(registry["Task"].lock, SqliteLock)

    def test_writes_after_reload_are_saved(self, path, workbook, registry):
        workbook.reload()
        saved = registry["Task"].add_one({"id": "t-3", "name": "Plan"})
        assert saved.key == 4
        reopened = WorkbookDocument.open(path).sheet("Task")
        assert reopened.read_range(4, 1, 1, 2) == [["t-3", "Plan"]]

    def test_batch_persists(self, path, registry):
        saved = registry["Task"].batch(
            [{"_key": 3, "id": "t-2", "name": "Ship v2"}, {"id": "t-3", "name": "Plan"}]
        )
        assert [r.key for r in saved] == [3, 4]
        assert registry["Task"].lock.holder() is None
        reopened = WorkbookDocument.open(path).sheet("Task")
        assert reopened.read_range(3, 1, 2, 2) == [["t-2", "Ship v2"], ["t-3", "Plan"]]

    def test_defrag(self, path, registry):
        registry["Task"].delete([registry["Task"].lookup("t-1")])
        registry.defrag()
        reopened = WorkbookDocument.open(path).sheet("Task")
        assert reopened.read_range(2, 1, 1, 2) == [["t-2", "Ship"]]
        assert reopened.max_rows() == 2

    def test_archive(self, tmp_path, path, registry):
        copy = registry.archive(str(tmp_path / "old.xlsx"))
        assert copy.sheet("Task").last_row() == 3
        assert WorkbookDocument.open(path).sheet("Task").max_rows() == 1
