"""API routes for Excel Mapper."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, File, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from ..config import settings
from ..export import EXPORT_FILENAME, XLSX_MEDIA_TYPE, ExportError, write_merged_table
from ..mapping import ColumnMapping, MappingRegistry
from ..merge import lookup_join, lookup_table
from ..session import (
    MapperWorkspace,
    NotFoundError,
    SessionStore,
    TemplateNotReadyError,
    WorkspaceManager,
)
from ..workbook import EmptyWorkbookError, HeaderRowOutOfRangeError, ParseError

logger = logging.getLogger(__name__)

router = APIRouter()

# Global stores
_session_store: Optional[SessionStore] = None
_workspace_manager: Optional[WorkspaceManager] = None


def get_session_store() -> SessionStore:
    """Get the global template/source store."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store


def get_workspace_manager() -> WorkspaceManager:
    """Get the global workspace manager."""
    global _workspace_manager
    if _workspace_manager is None:
        _workspace_manager = WorkspaceManager()
    return _workspace_manager


class MappingPayload(BaseModel):
    """Mappings sent with preview and download requests."""

    model_config = ConfigDict(populate_by_name=True)

    mappings: list[ColumnMapping] = Field(default_factory=list)


class ProcessMappingRequest(MappingPayload):
    """Request to preview mapped template rows."""

    template_id: str = Field(alias="templateId")


class SheetSelectRequest(BaseModel):
    """Request to change the active sheet of a workspace file."""

    sheet: str


class HeaderRowRequest(BaseModel):
    """Request to choose the header row of a workspace file."""

    model_config = ConfigDict(populate_by_name=True)

    row_index: int = Field(alias="rowIndex")


def _xlsx_response(content: bytes) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )


async def _read_upload(upload: UploadFile) -> bytes:
    content = await upload.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File '{upload.filename}' exceeds {settings.max_upload_bytes} bytes",
        )
    return content


# Health check


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "excelmapper",
        "limits": {
            "max_upload_bytes": settings.max_upload_bytes,
            "max_rows_per_sheet": settings.max_rows_per_sheet,
            "preview_row_limit": settings.preview_row_limit,
        },
    }


# Stored template/source endpoints


async def _store_upload(file: Optional[UploadFile], kind: str) -> dict:
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    content = await _read_upload(file)
    store = get_session_store()
    try:
        if kind == "template":
            record = store.add_template(content, file.filename or "template.xlsx")
        else:
            record = store.add_source(content, file.filename or "source.xlsx")
        return record.to_response()
    except (ParseError, EmptyWorkbookError) as e:
        logger.error(f"Error processing {kind}: {e}")
        raise HTTPException(status_code=500, detail=f"Error processing {kind}: {e}")


@router.post("/excel/upload-template")
async def upload_template(file: Optional[UploadFile] = File(None)):
    """Upload a template workbook; its first sheet is keyed by header row 0."""
    return await _store_upload(file, "template")


@router.post("/excel/upload-source")
async def upload_source(file: Optional[UploadFile] = File(None)):
    """Upload a source workbook into the source store."""
    return await _store_upload(file, "source file")


@router.post("/excel/process-mapping")
async def process_mapping(request: ProcessMappingRequest):
    """
    Preview the template rows after applying the mappings.

    Each mapping looks up, in the named source, the first row whose source
    column equals the template row's value in the template column. Only the
    first rows (PREVIEW_ROW_LIMIT, default 5) are returned.
    """
    store = get_session_store()
    try:
        template = store.get_template(request.template_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        registry = MappingRegistry.from_list(request.mappings)
        rows = lookup_join(template, store.all_sources(), registry)
        preview = rows[: settings.preview_row_limit]
        return {
            "previewData": [
                {h: cell.to_json() for h, cell in row.items()} for row in preview
            ]
        }
    except Exception as e:
        logger.error(f"Error processing mapping: {e}")
        raise HTTPException(status_code=500, detail=f"Error processing mapping: {e}")


@router.api_route("/excel/download/{template_id}", methods=["GET", "POST"])
async def download_mapped_data(
    template_id: str, payload: Optional[MappingPayload] = Body(None)
):
    """Apply the mappings to every template row and download the result as .xlsx."""
    store = get_session_store()
    try:
        template = store.get_template(template_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        registry = MappingRegistry.from_list(payload.mappings if payload else [])
        table = lookup_table(template, store.all_sources(), registry)
        return _xlsx_response(write_merged_table(table))
    except Exception as e:
        logger.error(f"Error generating mapped data: {e}")
        raise HTTPException(status_code=500, detail=f"Error generating mapped data: {e}")


# Workspace endpoints


def _get_workspace(workspace_id: str) -> MapperWorkspace:
    try:
        return get_workspace_manager().get(workspace_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/mapper/workspaces")
async def create_workspace():
    """Start a new mapping workspace."""
    workspace = get_workspace_manager().create()
    return {"id": workspace.id}


@router.get("/mapper/workspaces/{workspace_id}")
async def get_workspace(workspace_id: str):
    """Describe the template, sources and mappings of a workspace."""
    return _get_workspace(workspace_id).summary()


@router.delete("/mapper/workspaces/{workspace_id}")
async def delete_workspace(workspace_id: str):
    """Discard a workspace."""
    if not get_workspace_manager().delete(workspace_id):
        raise HTTPException(status_code=404, detail="Workspace not found")
    return {"status": "ok", "message": "Workspace deleted"}


@router.post("/mapper/workspaces/{workspace_id}/files")
async def upload_workspace_files(workspace_id: str, files: list[UploadFile] = File(...)):
    """
    Add one or more workbooks to a workspace.

    The first file becomes the template when the workspace has none; the
    remaining files are appended as sources. Files are read and parsed
    concurrently and the batch is added only if every file succeeds.
    """
    workspace = _get_workspace(workspace_id)
    if not files:
        raise HTTPException(status_code=400, detail="No file uploaded")

    try:
        results = await workspace.ingest_many(
            [(_read_upload(f), f.filename) for f in files]
        )
    except (ParseError, EmptyWorkbookError) as e:
        logger.error(f"Error reading Excel file: {e}")
        raise HTTPException(status_code=500, detail=f"Error reading Excel file: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "files": [
            workspace.describe_file(workbook, settings.header_preview_rows)
            for workbook, _role in results
        ]
    }


@router.put("/mapper/workspaces/{workspace_id}/files/{file_name}/sheet")
async def select_workspace_sheet(workspace_id: str, file_name: str, request: SheetSelectRequest):
    """Switch the active sheet of a file; its header row must be chosen again."""
    workspace = _get_workspace(workspace_id)
    try:
        workbook = workspace.select_sheet(file_name, request.sheet)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return workspace.describe_file(workbook, settings.header_preview_rows)


@router.put("/mapper/workspaces/{workspace_id}/files/{file_name}/header-row")
async def select_workspace_header_row(
    workspace_id: str, file_name: str, request: HeaderRowRequest
):
    """Use the given row of the active sheet as the file's header row."""
    workspace = _get_workspace(workspace_id)
    try:
        workspace.select_header_row(file_name, request.row_index)
        workbook = workspace.workbook(file_name)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HeaderRowOutOfRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return workspace.describe_file(workbook, settings.header_preview_rows)


@router.put("/mapper/workspaces/{workspace_id}/mappings")
async def set_workspace_mapping(workspace_id: str, mapping: ColumnMapping):
    """Create or replace the mapping of one template column."""
    workspace = _get_workspace(workspace_id)
    try:
        stored = workspace.set_mapping(
            mapping.template_column, mapping.source_file, mapping.source_column
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return stored.to_wire()


@router.delete("/mapper/workspaces/{workspace_id}/mappings/{template_column}")
async def clear_workspace_mapping(workspace_id: str, template_column: str):
    """Remove the mapping of one template column."""
    workspace = _get_workspace(workspace_id)
    if not workspace.clear_mapping(template_column):
        raise HTTPException(status_code=404, detail="Mapping not found")
    return {"status": "ok", "message": "Mapping cleared"}


@router.get("/mapper/workspaces/{workspace_id}/preview")
async def preview_workspace(workspace_id: str):
    """Concatenate mapped source rows under the template headers."""
    workspace = _get_workspace(workspace_id)
    try:
        table = workspace.preview()
    except TemplateNotReadyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"headers": table.headers, "body": table.body, "rowCount": table.row_count}


@router.get("/mapper/workspaces/{workspace_id}/export")
async def export_workspace(workspace_id: str):
    """Download the concatenated preview as mapped_data.xlsx."""
    workspace = _get_workspace(workspace_id)
    try:
        content = workspace.export()
    except TemplateNotReadyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExportError as e:
        logger.error(f"Error exporting file: {e}")
        raise HTTPException(status_code=500, detail=f"Error exporting file: {e}")
    return _xlsx_response(content)
