"""Data models for ingested workbooks."""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Union


class CellKind(str, Enum):
    """Kinds of cell value kept after ingestion."""

    TEXT = "text"
    NUMBER = "number"
    EMPTY = "empty"


@dataclass(frozen=True)
class Cell:
    """A single cell value: text, number, or empty."""

    kind: CellKind
    value: Union[str, float, None] = None

    @classmethod
    def of_text(cls, value: str) -> "Cell":
        return cls(CellKind.TEXT, value)

    @classmethod
    def of_number(cls, value: float) -> "Cell":
        return cls(CellKind.NUMBER, float(value))

    @classmethod
    def from_raw(cls, raw: Any) -> "Cell":
        """Build a cell from a value produced by a spreadsheet reader.

        Booleans become ``TRUE``/``FALSE`` text and dates become ISO text, so
        only plain numbers ever carry the NUMBER kind.
        """
        if raw is None:
            return EMPTY
        if isinstance(raw, bool):
            return cls.of_text("TRUE" if raw else "FALSE")
        if isinstance(raw, (int, float)):
            return cls.of_number(raw)
        if isinstance(raw, datetime):
            if raw.time() == time(0, 0):
                return cls.of_text(raw.date().isoformat())
            return cls.of_text(raw.isoformat(sep=" "))
        if isinstance(raw, (date, time)):
            return cls.of_text(raw.isoformat())
        text = str(raw)
        if not text.strip():
            return EMPTY
        return cls.of_text(text)

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY

    def text(self) -> str:
        """Render the cell as display text."""
        if self.kind == CellKind.EMPTY:
            return ""
        if self.kind == CellKind.NUMBER:
            if self.value.is_integer():
                return str(int(self.value))
            return str(self.value)
        return self.value

    def to_json(self) -> Union[str, float, None]:
        """Return the JSON-native value (number, string or null)."""
        if self.kind == CellKind.NUMBER and self.value.is_integer():
            return int(self.value)
        return self.value


EMPTY = Cell(CellKind.EMPTY)

Grid = list[list[Cell]]


@dataclass
class Workbook:
    """An ingested spreadsheet file.

    ``content`` keeps the original upload bytes; every sheet switch re-reads
    the grid from it rather than from a previously derived grid.
    """

    name: str
    content: bytes = field(repr=False)
    sheet_names: list[str]
    selected_sheet: str
    rows: Grid = field(default_factory=list, repr=False)
    header_row: int = 0
    headers: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def has_headers(self) -> bool:
        return bool(self.headers)

    def summary(self) -> dict:
        """Describe the workbook for API responses."""
        return {
            "name": self.name,
            "sheets": list(self.sheet_names),
            "selectedSheet": self.selected_sheet,
            "headerRow": self.header_row,
            "headers": list(self.headers),
            "rowCount": self.row_count,
        }


class ParseError(Exception):
    """Raised when uploaded bytes cannot be interpreted as a spreadsheet."""

    pass


class SheetNotFoundError(ParseError):
    """Raised when a requested sheet does not exist in the workbook."""

    pass


class EmptyWorkbookError(Exception):
    """Raised when a workbook declares zero sheets."""

    pass


class HeaderRowOutOfRangeError(ValueError):
    """Raised when a header row index falls outside the sheet grid."""

    pass
