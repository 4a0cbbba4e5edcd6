"""Workbook ingestion and sheet/header selection."""

from .models import (
    Cell,
    CellKind,
    EMPTY,
    Workbook,
    ParseError,
    SheetNotFoundError,
    EmptyWorkbookError,
    HeaderRowOutOfRangeError,
)
from .reader import read_workbook, read_sheet, list_sheets
from .selector import (
    select_sheet,
    select_header_row,
    data_rows,
    resolve_column,
    preview_rows,
)

__all__ = [
    "Cell",
    "CellKind",
    "EMPTY",
    "Workbook",
    "ParseError",
    "SheetNotFoundError",
    "EmptyWorkbookError",
    "HeaderRowOutOfRangeError",
    "read_workbook",
    "read_sheet",
    "list_sheets",
    "select_sheet",
    "select_header_row",
    "data_rows",
    "resolve_column",
    "preview_rows",
]
