"""Tests for sheetdb.cli: maintenance commands via CliRunner.

Each test builds a real ``.xlsx`` workbook in ``tmp_path`` and re-opens it
after the command to check what was persisted.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from sheetdb import __version__
from sheetdb.backends.workbook import WorkbookDocument
from sheetdb.cli.app import app

runner = CliRunner()


@pytest.fixture
def workbook(tmp_path: Path) -> Path:
    path = tmp_path / "crm.xlsx"
    WorkbookDocument.create(
        path,
        {
            "Task": [
                ["id", "name"],
                ["t-1", "Docs"],
                [None, None],
                ["t-3", "Review"],
            ],
            "Project": [["id", "title"], ["p-1", "Docs"]],
            "_meta": [["version"], [3]],
        },
    )
    return path


def reopen(path: Path, sheet: str):
    return WorkbookDocument.open(path).sheet(sheet)


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.stdout.strip() == f"sheetdb {__version__}"

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "inspect" in result.output

    def test_missing_workbook(self, tmp_path):
        result = runner.invoke(app, ["inspect", str(tmp_path / "missing.xlsx")])
        assert result.exit_code == 2

    def test_unreadable_workbook(self, tmp_path):
        bogus = tmp_path / "bogus.xlsx"
        bogus.write_text("not a workbook")
        result = runner.invoke(app, ["inspect", str(bogus)])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestInspect:
    def test_json(self, workbook):
        result = runner.invoke(app, ["inspect", str(workbook), "--json"])
        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert [b["name"] for b in report["breakdowns"]] == ["Task", "Project"]
        assert report["breakdowns"][0]["total_cells"] == 8
        assert report["summary"]["total_cells"] == 12

    def test_table(self, workbook):
        result = runner.invoke(app, ["inspect", str(workbook)])
        assert result.exit_code == 0
        assert "Summary" in result.stdout
        assert "_meta" not in result.stdout


class TestDump:
    def test_json(self, workbook):
        result = runner.invoke(app, ["dump", str(workbook), "Task", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"_key": 2, "id": "t-1", "name": "Docs"},
            {"_key": 4, "id": "t-3", "name": "Review"},
        ]

    def test_limit(self, workbook):
        result = runner.invoke(app, ["dump", str(workbook), "Task", "-n", "1", "--json"])
        assert [r["id"] for r in json.loads(result.stdout)] == ["t-1"]

    def test_unknown_collection(self, workbook):
        result = runner.invoke(app, ["dump", str(workbook), "_meta"])
        assert result.exit_code == 1
        assert "Unknown collection" in result.output


class TestDefrag:
    def test_all_collections(self, workbook):
        result = runner.invoke(app, ["defrag", str(workbook)])
        assert result.exit_code == 0
        assert "Defragmented Task" in result.stdout
        assert "Defragmented Project" in result.stdout

        sheet = reopen(workbook, "Task")
        assert sheet.read_range(2, 1, 2, 2) == [["t-1", "Docs"], ["t-3", "Review"]]
        assert sheet.max_rows() == 3

    def test_one_collection(self, workbook):
        result = runner.invoke(app, ["defrag", str(workbook), "-c", "Project"])
        assert result.exit_code == 0
        assert "Task" not in result.stdout
        assert reopen(workbook, "Task").max_rows() == 4


class TestWipe:
    def test_with_yes(self, workbook):
        result = runner.invoke(app, ["wipe", str(workbook), "--yes"])
        assert result.exit_code == 0
        assert "Wiped Task, Project" in result.stdout
        assert reopen(workbook, "Task").max_rows() == 1
        assert reopen(workbook, "Project").max_rows() == 1
        assert reopen(workbook, "_meta").read_range(2, 1, 1, 1) == [[3]]

    def test_declined_confirmation(self, workbook):
        result = runner.invoke(app, ["wipe", str(workbook), "-c", "Task"], input="n\n")
        assert result.exit_code == 1
        assert reopen(workbook, "Task").last_row() == 4

    def test_confirmed(self, workbook):
        result = runner.invoke(app, ["wipe", str(workbook), "-c", "Task"], input="y\n")
        assert result.exit_code == 0
        assert reopen(workbook, "Task").max_rows() == 1
        assert reopen(workbook, "Project").max_rows() == 2


class TestArchive:
    def test_to_directory(self, tmp_path, workbook):
        archive = tmp_path / "archive"
        archive.mkdir()
        result = runner.invoke(app, ["archive", str(workbook), str(archive), "--yes"])

        assert result.exit_code == 0
        assert "Archived" in result.stdout
        [copy] = list(archive.glob("crm_*.xlsx"))
        assert reopen(copy, "Task").last_row() == 4
        assert reopen(workbook, "Task").max_rows() == 1

    def test_declined(self, tmp_path, workbook):
        result = runner.invoke(
            app, ["archive", str(workbook), str(tmp_path / "old.xlsx")], input="n\n"
        )
        assert result.exit_code == 1
        assert not (tmp_path / "old.xlsx").exists()
