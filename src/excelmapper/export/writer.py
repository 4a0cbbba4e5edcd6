"""Serialization of merged tables to .xlsx."""

import io
import logging
from typing import Iterable, Sequence

import openpyxl

from ..merge import MergedTable

logger = logging.getLogger(__name__)

EXPORT_SHEET_NAME = "Mapped Data"
EXPORT_FILENAME = "mapped_data.xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExportError(IOError):
    """Raised when a table cannot be serialized to a spreadsheet."""

    pass


def _append_text_row(ws, values: Sequence[str]):
    ws.append([value if value != "" else None for value in values])
    # Values are written as text; keep "=..." from turning into formulas
    for cell in ws[ws.max_row]:
        if cell.data_type == "f":
            cell.data_type = "s"


def write_table(headers: Sequence[str], body: Iterable[Sequence[str]]) -> bytes:
    """
    Serialize a header row plus body rows to a single-sheet workbook.

    The sheet is named "Mapped Data"; all values are written as text so that
    reading the file back yields the same cell text.

    Raises:
        ExportError: If the workbook cannot be built or saved
    """
    try:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = EXPORT_SHEET_NAME
        _append_text_row(ws, headers)
        row_count = 0
        for row in body:
            _append_text_row(ws, row)
            row_count += 1

        buffer = io.BytesIO()
        wb.save(buffer)
    except Exception as e:
        logger.error(f"Failed to serialize table: {e}")
        raise ExportError(f"Could not write spreadsheet: {e}") from e

    logger.info(f"Serialized {row_count} row(s) x {len(headers)} column(s) to xlsx")
    return buffer.getvalue()


def write_merged_table(table: MergedTable) -> bytes:
    """Serialize a :class:`MergedTable`."""
    return write_table(table.headers, table.body)
