"""Sheet and header-row selection for ingested workbooks."""

import logging
from typing import Optional

from .models import Cell, Grid, HeaderRowOutOfRangeError, Workbook
from .reader import read_sheet

logger = logging.getLogger(__name__)


def select_sheet(workbook: Workbook, sheet_name: str) -> Workbook:
    """
    Make ``sheet_name`` the active sheet of the workbook.

    The grid is parsed again from the original upload bytes and header state
    is reset, so a header row has to be selected again afterwards.

    Raises:
        SheetNotFoundError: If the workbook has no sheet with that name
    """
    workbook.rows = read_sheet(workbook.content, sheet_name)
    workbook.selected_sheet = sheet_name
    workbook.header_row = 0
    workbook.headers = []
    logger.info(f"Selected sheet '{sheet_name}' of '{workbook.name}' ({workbook.row_count} rows)")
    return workbook


def derive_headers(row: list[Cell]) -> list[str]:
    """Return the non-blank cell texts of a row, left to right, duplicates kept."""
    headers = []
    for cell in row:
        text = cell.text()
        if text.strip():
            headers.append(text)
    return headers


def select_header_row(workbook: Workbook, row_index: int) -> list[str]:
    """
    Use row ``row_index`` of the active sheet as the header row.

    Returns:
        The derived header list

    Raises:
        HeaderRowOutOfRangeError: If the index is outside the sheet grid
    """
    if row_index < 0 or row_index >= workbook.row_count:
        raise HeaderRowOutOfRangeError(
            f"Header row {row_index} is out of range for sheet "
            f"'{workbook.selected_sheet}' ({workbook.row_count} rows)"
        )
    workbook.header_row = row_index
    workbook.headers = derive_headers(workbook.rows[row_index])
    return workbook.headers


def data_rows(workbook: Workbook) -> Grid:
    """Rows strictly after the header row of the active sheet."""
    return workbook.rows[workbook.header_row + 1:]


def resolve_column(workbook: Workbook, column_name: str) -> Optional[int]:
    """
    Position of ``column_name`` in the header row, or None.

    A column only resolves when it is part of the derived header list. When a
    header name repeats, the leftmost occurrence wins.
    """
    if column_name not in workbook.headers:
        return None
    for index, cell in enumerate(workbook.rows[workbook.header_row]):
        if cell.text() == column_name:
            return index
    return None


def preview_rows(workbook: Workbook, limit: int = 10) -> list[list[str]]:
    """First rows of the active sheet as text, for picking a header row."""
    return [[cell.text() for cell in row] for row in workbook.rows[:limit]]
