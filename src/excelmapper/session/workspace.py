"""Interactive mapping workspaces: one template, ordered sources, one registry."""

import asyncio
import logging
import uuid
from typing import Awaitable, Optional

from ..export import write_merged_table
from ..mapping import ColumnMapping, MappingRegistry
from ..merge import MergedTable, concatenate_rows
from ..workbook import (
    Workbook,
    preview_rows,
    read_workbook,
    select_header_row,
    select_sheet,
)
from .models import NotFoundError
from .store import RecordStore

logger = logging.getLogger(__name__)

ROLE_TEMPLATE = "template"
ROLE_SOURCE = "source"


class TemplateNotReadyError(Exception):
    """Raised when merging before a template with headers is available."""

    pass


class DuplicateWorkbookError(ValueError):
    """Raised when a workbook with the same file name is already loaded."""

    pass


class UnknownTemplateColumnError(ValueError):
    """Raised when mapping a column the template header row does not contain."""

    pass


class MapperWorkspace:
    """
    One operator's mapping session.

    The first ingested workbook becomes the template and later ones are
    sources, kept in upload order. Mapping edits take effect immediately;
    previews and exports are recomputed on every call.
    """

    def __init__(self, workspace_id: Optional[str] = None):
        self.id = workspace_id or str(uuid.uuid4())
        self.template: Optional[Workbook] = None
        self.sources: list[Workbook] = []
        self.registry = MappingRegistry()
        self._lock = asyncio.Lock()

    # Ingestion

    @staticmethod
    def _check_name(name: str, template: Optional[Workbook], sources: list[Workbook]):
        if template is not None and template.name == name:
            raise DuplicateWorkbookError(f"'{name}' is already loaded as the template")
        if any(s.name == name for s in sources):
            raise DuplicateWorkbookError(f"A source named '{name}' is already loaded")

    def _add(self, workbook: Workbook, as_template: bool = False) -> str:
        if as_template:
            self._check_name(workbook.name, None, self.sources)
            self.template = workbook
            return ROLE_TEMPLATE
        return self._add_all([workbook])[0][1]

    def _add_all(self, workbooks: list[Workbook]) -> list[tuple[Workbook, str]]:
        """Assign roles to a batch and commit it only if every name is free."""
        template = self.template
        sources = list(self.sources)
        results = []
        for workbook in workbooks:
            if template is None:
                template = workbook
                results.append((workbook, ROLE_TEMPLATE))
                continue
            self._check_name(workbook.name, template, sources)
            sources.append(workbook)
            results.append((workbook, ROLE_SOURCE))

        self.template = template
        self.sources = sources
        return results

    def ingest(self, content: bytes, name: str) -> tuple[Workbook, str]:
        """
        Parse an uploaded file and add it to the workspace.

        Returns:
            The workbook and its role ("template" or "source")

        Raises:
            ParseError: If the bytes are not a readable spreadsheet
            EmptyWorkbookError: If the workbook has no sheets
            DuplicateWorkbookError: If a file with that name is already loaded
        """
        workbook = read_workbook(content, name)
        role = self._add(workbook)
        logger.info(f"Workspace {self.id}: added {role} '{name}'")
        return workbook, role

    async def ingest_async(self, read: Awaitable[bytes], name: str) -> tuple[Workbook, str]:
        """Await the file bytes, parse them, then add the workbook under the lock.

        Several uploads may be in flight at once; the role decision and the
        append happen together so out-of-order completions never drop a file.
        """
        results = await self.ingest_many([(read, name)])
        return results[0]

    @staticmethod
    async def _read_workbook(read: Awaitable[bytes], name: str) -> Workbook:
        return read_workbook(await read, name)

    async def ingest_many(
        self, uploads: list[tuple[Awaitable[bytes], str]]
    ) -> list[tuple[Workbook, str]]:
        """
        Read and parse a batch of uploads concurrently, then add them all.

        The batch is all-or-nothing: if any file fails to read or parse, or
        a name collides, the workspace is left unchanged and the first error
        is raised. Within the batch the first file becomes the template when
        none is loaded yet; the rest are appended as sources in batch order.
        """
        parsed = await asyncio.gather(
            *(self._read_workbook(read, name) for read, name in uploads),
            return_exceptions=True,
        )
        for result in parsed:
            if isinstance(result, BaseException):
                raise result

        async with self._lock:
            results = self._add_all(parsed)
        for workbook, role in results:
            logger.info(f"Workspace {self.id}: added {role} '{workbook.name}'")
        return results

    def set_template(self, content: bytes, name: str) -> Workbook:
        """Replace the template with a newly uploaded file."""
        workbook = read_workbook(content, name)
        self._add(workbook, as_template=True)
        return workbook

    # Sheet and header selection

    def workbook(self, name: str) -> Workbook:
        if self.template is not None and self.template.name == name:
            return self.template
        for source in self.sources:
            if source.name == name:
                return source
        raise NotFoundError(f"File '{name}' not found in workspace")

    def role_of(self, workbook: Workbook) -> str:
        return ROLE_TEMPLATE if workbook is self.template else ROLE_SOURCE

    def select_sheet(self, name: str, sheet_name: str) -> Workbook:
        return select_sheet(self.workbook(name), sheet_name)

    def select_header_row(self, name: str, row_index: int) -> list[str]:
        return select_header_row(self.workbook(name), row_index)

    # Mappings

    def set_mapping(
        self,
        template_column: str,
        source_file: Optional[str],
        source_column: Optional[str] = None,
    ) -> ColumnMapping:
        if self.template is None or template_column not in self.template.headers:
            raise UnknownTemplateColumnError(
                f"'{template_column}' is not a template header"
            )
        return self.registry.set_mapping(template_column, source_file, source_column)

    def clear_mapping(self, template_column: str) -> bool:
        return self.registry.clear_mapping(template_column)

    # Merge and export

    def preview(self) -> MergedTable:
        """Concatenate mapped source rows under the template headers."""
        if self.template is None or not self.template.headers:
            raise TemplateNotReadyError("Select the template header row first")
        return concatenate_rows(self.template.headers, self.sources, self.registry)

    def export(self) -> bytes:
        table = self.preview()
        logger.info(f"Workspace {self.id}: exporting {table.row_count} row(s)")
        return write_merged_table(table)

    def describe_file(self, workbook: Workbook, preview_limit: int = 10) -> dict:
        data = workbook.summary()
        data["role"] = self.role_of(workbook)
        data["preview"] = preview_rows(workbook, preview_limit)
        return data

    def summary(self) -> dict:
        workbooks = ([self.template] if self.template else []) + self.sources
        return {
            "id": self.id,
            "template": self.template.summary() if self.template else None,
            "sources": [s.summary() for s in self.sources],
            "mappings": [m.to_wire() for m in self.registry],
            "issues": [str(issue) for issue in self.registry.validate(workbooks)],
        }


class WorkspaceManager:
    """Keyed collection of live workspaces."""

    def __init__(self, store: Optional[RecordStore[MapperWorkspace]] = None):
        self._store: RecordStore[MapperWorkspace] = store or RecordStore()

    def create(self) -> MapperWorkspace:
        workspace = MapperWorkspace()
        self._store.put(workspace.id, workspace)
        logger.info(f"Created workspace {workspace.id}")
        return workspace

    def get(self, workspace_id: str) -> MapperWorkspace:
        workspace = self._store.get(workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace '{workspace_id}' not found")
        return workspace

    def delete(self, workspace_id: str) -> bool:
        return self._store.delete(workspace_id)
