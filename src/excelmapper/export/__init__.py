"""Spreadsheet export."""

from .writer import (
    EXPORT_FILENAME,
    EXPORT_SHEET_NAME,
    XLSX_MEDIA_TYPE,
    ExportError,
    write_table,
    write_merged_table,
)

__all__ = [
    "EXPORT_FILENAME",
    "EXPORT_SHEET_NAME",
    "XLSX_MEDIA_TYPE",
    "ExportError",
    "write_table",
    "write_merged_table",
]
