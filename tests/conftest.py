"""Pytest configuration and shared fixtures."""

import io
from datetime import date, datetime
from typing import Any

import openpyxl
import pytest
import xlwt
from fastapi.testclient import TestClient

from excelmapper.config import Settings
from excelmapper.session import SessionStore, WorkspaceManager


def make_xlsx(sheets: dict[str, list[list[Any]]]) -> bytes:
    """Build an .xlsx file in memory with the given sheets and rows."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def make_xls(sheets: dict[str, list[list[Any]]]) -> bytes:
    """Build a legacy .xls file in memory; dates get a date number format."""
    wb = xlwt.Workbook()
    date_style = xlwt.easyxf(num_format_str="YYYY-MM-DD")
    for title, rows in sheets.items():
        ws = wb.add_sheet(title)
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value is None:
                    continue
                if isinstance(value, (date, datetime)):
                    ws.write(r, c, value, date_style)
                else:
                    ws.write(r, c, value)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def read_xlsx(content: bytes) -> dict[str, list[list[Any]]]:
    """Read every sheet of an .xlsx file back as raw values."""
    wb = openpyxl.load_workbook(io.BytesIO(content))
    return {
        ws.title: [list(row) for row in ws.iter_rows(values_only=True)]
        for ws in wb.worksheets
    }


@pytest.fixture
def mock_settings() -> Settings:
    """Create settings with test values."""
    return Settings(
        host="127.0.0.1",
        port=8000,
        debug=False,
        cors_allow_origins=["*"],
        max_upload_bytes=1024 * 1024,
        max_rows_per_sheet=1000,
        preview_row_limit=5,
        header_preview_rows=10,
    )


@pytest.fixture
def template_bytes() -> bytes:
    """Template workbook: a title row above the header row on its first sheet."""
    return make_xlsx(
        {
            "Layout": [
                ["Quarterly import"],
                ["Name", "Amount"],
                ["Bob", "5"],
            ],
            "Notes": [["Free text"]],
        }
    )


@pytest.fixture
def source_a_bytes() -> bytes:
    """Source workbook A with the header on row 0."""
    return make_xlsx(
        {
            "Data": [
                ["Name", "Amount", "Date"],
                ["Alice", "100", "2024-01-01"],
                ["Carol", 250, "2024-02-01"],
            ]
        }
    )


@pytest.fixture
def source_b_bytes() -> bytes:
    """Source workbook B with two sheets and differently named columns."""
    return make_xlsx(
        {
            "Summary": [["Totals only"]],
            "Ledger": [
                ["Report generated 2024-03-31"],
                ["Customer", "Value"],
                ["Dave", 7.5],
                ["Erin", 12],
                ["Frank", None],
            ],
        }
    )


@pytest.fixture
def session_store() -> SessionStore:
    """A fresh template/source store."""
    return SessionStore()


@pytest.fixture
def workspace_manager() -> WorkspaceManager:
    """A fresh workspace manager."""
    return WorkspaceManager()


@pytest.fixture
def test_client(session_store, workspace_manager):
    """Create a test client whose routes use isolated stores."""
    from unittest.mock import patch

    from excelmapper.api import create_app

    app = create_app()
    with patch("excelmapper.api.routes.get_session_store", return_value=session_store), patch(
        "excelmapper.api.routes.get_workspace_manager", return_value=workspace_manager
    ):
        yield TestClient(app)


@pytest.fixture
def xlsx_factory():
    """Build .xlsx bytes from ``{sheet: rows}``."""
    return make_xlsx


@pytest.fixture
def xlsx_reader():
    """Read .xlsx bytes back into ``{sheet: rows}``."""
    return read_xlsx


@pytest.fixture
def xls_factory():
    """Build legacy .xls bytes from ``{sheet: rows}``."""
    return make_xls
