"""Spreadsheet ingestion from uploaded bytes."""

import io
import logging
import zipfile
from typing import Any, Iterable, Optional

import openpyxl
import xlrd

from ..config import settings
from .models import (
    Cell,
    EMPTY,
    EmptyWorkbookError,
    Grid,
    ParseError,
    SheetNotFoundError,
    Workbook,
)

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

XLSX = "xlsx"
XLS = "xls"


def detect_format(content: bytes) -> str:
    """Return the container format of the given spreadsheet bytes."""
    if not content:
        raise ParseError("File is empty")
    if content.startswith(_ZIP_MAGIC):
        return XLSX
    if content.startswith(_OLE2_MAGIC):
        return XLS
    raise ParseError("File is not a recognized spreadsheet (expected .xlsx or .xls)")


def _normalize_grid(raw_rows: Iterable[Iterable[Any]], max_rows: int, sheet_name: str) -> Grid:
    """Convert raw row values to cells and pad every row to the widest one."""
    grid: Grid = []
    for row_idx, row in enumerate(raw_rows):
        if row_idx >= max_rows:
            logger.warning(
                f"Sheet '{sheet_name}' exceeds {max_rows} rows; remaining rows ignored"
            )
            break
        grid.append([Cell.from_raw(value) for value in row])

    width = max((len(row) for row in grid), default=0)
    for row in grid:
        if len(row) < width:
            row.extend([EMPTY] * (width - len(row)))
    return grid


# XLSX (openpyxl)


def _open_xlsx(content: bytes):
    try:
        return openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except zipfile.BadZipFile as exc:
        raise ParseError(f"Corrupt workbook archive: {exc}") from exc
    except Exception as exc:
        # openpyxl surfaces malformed package parts as assorted XML errors
        raise ParseError(f"Could not read workbook: {exc}") from exc


def _xlsx_sheet_names(content: bytes) -> list[str]:
    wb = _open_xlsx(content)
    try:
        return list(wb.sheetnames)
    finally:
        wb.close()


def _xlsx_rows(content: bytes, sheet_name: str, max_rows: int) -> Grid:
    wb = _open_xlsx(content)
    try:
        if sheet_name not in wb.sheetnames:
            raise SheetNotFoundError(f"Sheet '{sheet_name}' not found")
        ws = wb[sheet_name]
        return _normalize_grid(ws.iter_rows(values_only=True), max_rows, sheet_name)
    finally:
        wb.close()


# XLS (xlrd)


def _open_xls(content: bytes):
    try:
        return xlrd.open_workbook(file_contents=content, on_demand=True)
    except Exception as exc:
        raise ParseError(f"Could not read workbook: {exc}") from exc


def _xls_value(cell, datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_ERROR:
        return xlrd.error_text_from_code.get(cell.value, "#ERR")
    return cell.value


def _xls_sheet_names(content: bytes) -> list[str]:
    book = _open_xls(content)
    try:
        return list(book.sheet_names())
    finally:
        book.release_resources()


def _xls_rows(content: bytes, sheet_name: str, max_rows: int) -> Grid:
    book = _open_xls(content)
    try:
        if sheet_name not in book.sheet_names():
            raise SheetNotFoundError(f"Sheet '{sheet_name}' not found")
        sheet = book.sheet_by_name(sheet_name)
        raw_rows = (
            [_xls_value(cell, book.datemode) for cell in sheet.row(row_idx)]
            for row_idx in range(sheet.nrows)
        )
        return _normalize_grid(raw_rows, max_rows, sheet_name)
    finally:
        book.release_resources()


def list_sheets(content: bytes) -> list[str]:
    """Return the sheet names of a workbook in file order."""
    fmt = detect_format(content)
    names = _xlsx_sheet_names(content) if fmt == XLSX else _xls_sheet_names(content)
    if not names:
        raise EmptyWorkbookError("Workbook contains no sheets")
    return names


def read_sheet(content: bytes, sheet_name: str, max_rows: Optional[int] = None) -> Grid:
    """Parse the row grid of one sheet directly from the original bytes."""
    fmt = detect_format(content)
    limit = max_rows if max_rows is not None else settings.max_rows_per_sheet
    if fmt == XLSX:
        return _xlsx_rows(content, sheet_name, limit)
    return _xls_rows(content, sheet_name, limit)


def read_workbook(content: bytes, name: str, max_rows: Optional[int] = None) -> Workbook:
    """
    Ingest uploaded spreadsheet bytes.

    The first sheet in file order is selected and its grid loaded. Header
    state starts at row 0 with an empty header list until a header row is
    selected.

    Raises:
        ParseError: If the bytes are not a readable .xlsx or .xls file
        EmptyWorkbookError: If the workbook declares no sheets
    """
    sheet_names = list_sheets(content)
    first = sheet_names[0]
    rows = read_sheet(content, first, max_rows=max_rows)
    logger.info(
        f"Ingested workbook '{name}': {len(sheet_names)} sheet(s), "
        f"{len(rows)} row(s) in '{first}'"
    )
    return Workbook(
        name=name,
        content=content,
        sheet_names=sheet_names,
        selected_sheet=first,
        rows=rows,
    )
