"""Data models for server-held upload records."""

from dataclasses import dataclass, field

from ..workbook import Cell, Workbook, data_rows, resolve_column, select_header_row


@dataclass
class SessionRecord:
    """An uploaded file parsed into header-keyed rows (first sheet, header row 0)."""

    id: str
    name: str
    headers: list[str] = field(default_factory=list)
    data: list[dict[str, Cell]] = field(default_factory=list, repr=False)

    @classmethod
    def from_workbook(cls, record_id: str, workbook: Workbook) -> "SessionRecord":
        """
        Key the data rows of ``workbook`` by its first-row headers.

        Blank rows are skipped. When a header name repeats, its values come
        from the leftmost column carrying that name.
        """
        if workbook.row_count == 0:
            return cls(id=record_id, name=workbook.name)

        headers = select_header_row(workbook, 0)
        positions = {h: resolve_column(workbook, h) for h in headers}
        data = []
        for row in data_rows(workbook):
            if all(cell.is_empty for cell in row):
                continue
            data.append({h: row[pos] for h, pos in positions.items()})
        return cls(id=record_id, name=workbook.name, headers=list(headers), data=data)

    def rows_json(self, limit=None) -> list[dict]:
        """Row records with JSON-native values."""
        rows = self.data if limit is None else self.data[:limit]
        return [{h: cell.to_json() for h, cell in row.items()} for row in rows]

    def to_response(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "headers": list(self.headers),
            "data": self.rows_json(),
        }


class NotFoundError(Exception):
    """Raised when a stored record or workspace identifier is unknown."""

    pass
