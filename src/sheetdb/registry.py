"""
Registry of the collections in one document.

Opening a registry enumerates the document's sheets once and binds each to a
:class:`~sheetdb.collection.Collection`. Sheets whose name starts with the
reserved prefix (``"_"`` by default) hold metadata or scratch data and are
never exposed.

Manifesto:
    A missing schema is a deployment error, not a runtime surprise. When a
    schema map is given, every exposed sheet must have an entry and the
    registry refuses to open otherwise, before any collection is built.

Architecture:
    ::

        Registry.open(document, schemas=...)
        ├── registry["Task"]     → Collection
        ├── defrag() / wipe()    → fan out over every collection
        ├── archive(destination) → document.copy_to(...) then wipe()
        └── inspect()            → RegistryReport(summary, breakdowns)

Examples:
    >>> registry = Registry.open(doc, schemas={"Task": ModelSchema(Task)})
    >>> registry["Task"].data()
    [...]
    >>> registry.inspect().summary.total_cells
    40

Tags:
    registry, collections, maintenance, sheetdb
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from sheetdb.collection import Collection, batch_lock_name
from sheetdb.core.errors import SchemaMissingError
from sheetdb.core.logging import get_logger
from sheetdb.core.protocols import Document, RecordSchema
from sheetdb.core.settings import SheetDBSettings, get_settings
from sheetdb.responses import RegistryReport, UsageSummary

logger = get_logger(__name__)


class Registry(Mapping[str, Collection]):
    """Read-only ``name → Collection`` mapping over one document."""

    def __init__(
        self,
        document: Document,
        collections: Mapping[str, Collection],
        *,
        settings: SheetDBSettings | None = None,
    ):
        self.document = document
        self.settings = settings or get_settings()
        self._collections = dict(collections)

    @classmethod
    def open(
        cls,
        document: Document,
        *,
        schemas: Mapping[str, RecordSchema] | None = None,
        settings: SheetDBSettings | None = None,
    ) -> Registry:
        """Bind every non-reserved sheet of ``document`` to a collection.

        Raises:
            SchemaMissingError: ``schemas`` was given and lacks an entry for
                one of the exposed sheets.
        """
        settings = settings or get_settings()
        sheets = [
            sheet
            for sheet in document.sheets()
            if not sheet.name.startswith(settings.reserved_prefix)
        ]
        if schemas is not None:
            for sheet in sheets:
                if sheet.name not in schemas:
                    raise SchemaMissingError(sheet.name)

        collections: dict[str, Collection] = {}
        for sheet in sheets:
            collections[sheet.name] = Collection(
                sheet,
                schema=schemas[sheet.name] if schemas is not None else None,
                lock=document.lock(batch_lock_name(sheet.name)),
                settings=settings,
            )
        logger.info(
            "registry_opened",
            document=document.name,
            collections=list(collections),
            schemas=schemas is not None,
        )
        return cls(document, collections, settings=settings)

    # -- Mapping -------------------------------------------------------------

    def __getitem__(self, name: str) -> Collection:
        return self._collections[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._collections)

    def __len__(self) -> int:
        return len(self._collections)

    def __repr__(self) -> str:
        return f"Registry({self.document.name!r}, {list(self._collections)})"

    # -- Maintenance ---------------------------------------------------------

    def defrag(self) -> Registry:
        for collection in self._collections.values():
            collection.defrag()
        return self

    def wipe(self) -> Registry:
        for collection in self._collections.values():
            collection.wipe()
        logger.info("registry_wiped", document=self.document.name, count=len(self))
        return self

    def archive(self, destination: str) -> Any:
        """Copy the whole document to ``destination``, then wipe every collection.

        A failing copy propagates before anything is wiped. Returns the copy.
        """
        copy = self.document.copy_to(destination)
        logger.info("registry_archived", document=self.document.name, destination=destination)
        self.wipe()
        return copy

    def inspect(self) -> RegistryReport:
        """Usage of every collection plus totals.

        ``usage_percent`` in the summary is the mean of the per-collection
        percentages.
        """
        breakdowns = [collection.inspect() for collection in self._collections.values()]
        if not breakdowns:
            return RegistryReport(summary=UsageSummary())
        summary = UsageSummary(
            total_columns=sum(r.total_columns for r in breakdowns),
            total_rows=sum(r.total_rows for r in breakdowns),
            total_cells=sum(r.total_cells for r in breakdowns),
            usage_percent=round(sum(r.usage_percent for r in breakdowns) / len(breakdowns), 2),
        )
        return RegistryReport(summary=summary, breakdowns=breakdowns)


__all__ = ["Registry"]
